# -*- coding: utf-8 -*-
"""
战略工作簿读取

把宿主保存的 .xlsx 读成 Snapshot。每个 sheet 第一行是列名，其余行按列名转成字典；
Formula_Elements / Parameters / Monthly_Values / Monthly_Targets 单元格里是 JSON 字符串，
由各实体的 from_dict 解析。

Calculated_Values / Achievements 是宿主的缓存，不读取：引擎总是重新计算。
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Union

import openpyxl

from ..core.snapshot import Snapshot, to_number
from ..utils import StrategyError

logger = logging.getLogger(__name__)

SHEET_PILLARS = "Strategic_Pillars"
SHEET_OBJECTIVES = "Objectives"
SHEET_KPIS = "KPIs"
SHEET_GLOBAL_VALUES = "Global_Values"
SHEET_MEASURES = "Measures"
SHEET_PARAMETER_VALUES = "Parameter_Values"
SHEET_SETTINGS = "Settings"


def _sheet_rows(wb, name: str) -> List[Dict[str, Any]]:
    """读取 sheet 为字典列表；sheet 不存在返回空列表"""
    if name not in wb.sheetnames:
        logger.debug("sheet %s not found", name)
        return []

    rows = wb[name].iter_rows(values_only=True)
    header = next(rows, None)
    if not header:
        return []
    columns = [str(h).strip() if h is not None else "" for h in header]

    records = []
    for row in rows:
        if row is None or all(v is None or v == "" for v in row):
            continue
        records.append({col: val for col, val in zip(columns, row) if col})
    return records


def _parameter_values(records: List[Dict[str, Any]]) -> Dict[str, Dict[str, Dict[str, Any]]]:
    """Measure_Code / Parameter_Name / Month_Key / Value 行 -> {度量: {参数: {期间: 值}}}"""
    result: Dict[str, Dict[str, Dict[str, Any]]] = {}
    for row in records:
        measure = row.get("Measure_Code")
        param = row.get("Parameter_Name")
        month = row.get("Month_Key")
        if not (measure and param and month):
            continue
        result.setdefault(str(measure), {}).setdefault(str(param), {})[str(month)] = row.get("Value")
    return result


def _settings(records: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Key / Value 行 -> 设置字典；数字字符串转成数字"""
    settings: Dict[str, Any] = {}
    for row in records:
        key = row.get("Key")
        if not key:
            continue
        value = row.get("Value")
        number = to_number(value)
        settings[str(key)] = number if number is not None else value
    return settings


def read_workbook(path: Union[str, Path]) -> Snapshot:
    """
    读取战略工作簿

    Args:
        path: .xlsx 路径

    Returns:
        Snapshot

    Raises:
        StrategyError: 文件不存在或无法打开
    """
    path = Path(path)
    if not path.exists():
        raise StrategyError(
            code="FILE_NOT_FOUND",
            message=f"文件不存在: {path}",
        )

    try:
        wb = openpyxl.load_workbook(path, data_only=True, read_only=True)
    except Exception as exc:
        raise StrategyError(
            code="INVALID_WORKBOOK",
            message=f"无法读取工作簿: {exc}",
            details={"path": str(path)},
        ) from exc

    try:
        data = {
            "pillars": _sheet_rows(wb, SHEET_PILLARS),
            "objectives": _sheet_rows(wb, SHEET_OBJECTIVES),
            "kpis": _sheet_rows(wb, SHEET_KPIS),
            "globalValues": _sheet_rows(wb, SHEET_GLOBAL_VALUES),
            "measures": _sheet_rows(wb, SHEET_MEASURES),
            "parameterValues": _parameter_values(_sheet_rows(wb, SHEET_PARAMETER_VALUES)),
            "settings": _settings(_sheet_rows(wb, SHEET_SETTINGS)),
        }
    finally:
        wb.close()

    logger.debug(
        "workbook %s: %d pillars, %d objectives, %d kpis, %d measures",
        path.name, len(data["pillars"]), len(data["objectives"]),
        len(data["kpis"]), len(data["measures"]),
    )
    return Snapshot.from_dict(data)
