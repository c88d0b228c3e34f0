# -*- coding: utf-8 -*-
"""
measure_tools.py - 度量计算原子工具

把度量公式里的引用替换为某期间的具体数值，再交给求值器。

引用类型:
- dataPoint:   参数录入值 (度量代码, 参数名, 期间)
- globalValue: 全局值的当月值
- measure-ref: 递归计算被引用度量的同期值

设计原则:
1. 纯函数：输入快照 + 期间，输出数值，不修改快照
2. 缺失的引用从记号流中去掉，不报错
3. 循环引用（A → B → A）使整条链结果为 None，绝不无限递归
4. 缓存由调用方通过 cache 参数显式提供，键为 (度量代码, 期间)

工具清单:
- resolve_measure: 单个度量单期计算值
- explain_measure: 带追溯信息的计算结果
- calculate_measures: 批量重算所有度量（宿主的"全部计算"）
"""

import logging
import math
from typing import Dict, Iterable, List, MutableMapping, Optional, Tuple

from ..core.cell import MeasureResult
from ..core.evaluator import evaluate
from ..core.snapshot import FormulaElement, Measure, Snapshot
from ..core.tokens import Token, normalize_token

logger = logging.getLogger(__name__)

Cache = MutableMapping[Tuple[str, str], Optional[float]]


class _CycleDetected(Exception):
    """解析链上再次遇到同一度量"""

    def __init__(self, path: Tuple[str, ...]):
        super().__init__(" → ".join(path))
        self.path = path


# ============================================================
# 引用替换
# ============================================================

def _reference_label(element: FormulaElement) -> str:
    code = element.reference_code or "?"
    if element.type == "dataPoint":
        return f"[{code}]"
    if element.type == "globalValue":
        return f"{{GV:{code}}}"
    return f"<M:{code}>"


def format_formula(measure: Measure) -> str:
    """公式的可读文本，如 "[收入] / {GV:FX} * 100" """
    parts = []
    for element in measure.formula_elements:
        if element.is_reference:
            parts.append(_reference_label(element))
        else:
            parts.append(repr(normalize_token(element.symbol)))
    return " ".join(parts)


def _reference_value(snapshot: Snapshot,
                     measure: Measure,
                     element: FormulaElement,
                     period: str,
                     path: Tuple[str, ...],
                     cache: Optional[Cache]) -> Optional[float]:
    code = element.reference_code
    if code is None:
        return None
    if element.type == "dataPoint":
        return snapshot.parameter_value(measure.code, code, period)
    if element.type == "globalValue":
        return snapshot.global_value(code, period)
    return _resolve(snapshot, code, period, path, cache)


def _substitute(snapshot: Snapshot,
                measure: Measure,
                period: str,
                path: Tuple[str, ...],
                cache: Optional[Cache]) -> Tuple[List[Token], Dict[str, Optional[float]], List[str], int]:
    """
    替换公式中的引用

    Returns:
        (记号序列, 各引用取值, 缺失引用, 引用总数)
    """
    tokens: List[Token] = []
    inputs: Dict[str, Optional[float]] = {}
    missing: List[str] = []
    references = 0

    for element in measure.formula_elements:
        if not element.is_reference:
            tokens.append(normalize_token(element.symbol))
            continue

        references += 1
        label = _reference_label(element)
        value = _reference_value(snapshot, measure, element, period, path, cache)
        inputs[label] = value
        if value is None:
            missing.append(label)
            continue
        tokens.append(Token.number(value))

    return tokens, inputs, missing, references


def _calculate(measure: Measure,
               tokens: List[Token],
               inputs: Dict[str, Optional[float]],
               missing: List[str],
               references: int) -> Optional[float]:
    if not measure.formula_elements:
        return None
    # 所有数据源都没有录入：本月尚未填报
    if references and len(missing) == references:
        logger.debug("measure %s: no data for any source", measure.code)
        return None
    if any(v is not None and math.isnan(v) for v in inputs.values()):
        return math.nan
    return evaluate(tokens)


def _resolve(snapshot: Snapshot,
             code: str,
             period: str,
             path: Tuple[str, ...],
             cache: Optional[Cache]) -> Optional[float]:
    key = (code, period)
    if cache is not None and key in cache:
        return cache[key]

    measure = snapshot.measures.get(code)
    if measure is None:
        logger.debug("measure %s not found", code)
        return None

    if code in path:
        logger.debug("cyclic measure reference: %s", " → ".join(path + (code,)))
        raise _CycleDetected(path + (code,))

    value = _calculate(measure, *_substitute(snapshot, measure, period, path + (code,), cache))

    if cache is not None:
        cache[key] = value
    return value


# ============================================================
# 公开工具
# ============================================================

def resolve_measure(measure_code: str,
                    period: str,
                    snapshot: Snapshot,
                    cache: Optional[Cache] = None) -> Optional[float]:
    """
    计算度量在某期间的值 (CalculatedValue)

    Args:
        measure_code: 度量代码
        period: 期间键 "YYYY-MM"
        snapshot: 数据快照
        cache: 可选的记忆化字典，键 (度量代码, 期间)

    Returns:
        float；无数据 / 循环引用 / 度量不存在返回 None；除以 0 返回 NaN

    Example:
        >>> resolve_measure("MSR-001", "2025-03", snapshot)
        120.0
    """
    try:
        return _resolve(snapshot, measure_code, period, (), cache)
    except _CycleDetected:
        return None


def explain_measure(measure_code: str, period: str, snapshot: Snapshot) -> MeasureResult:
    """
    带追溯信息的度量计算

    Returns:
        MeasureResult: value / formula / inputs / missing / error
    """
    measure = snapshot.measures.get(measure_code)
    if measure is None:
        return MeasureResult(measure_code, period, None, error="Measure not found")

    formula = format_formula(measure)
    if not measure.formula_elements:
        return MeasureResult(measure_code, period, None, formula, error="No formula defined")

    try:
        tokens, inputs, missing, references = _substitute(
            snapshot, measure, period, (measure_code,), None
        )
    except _CycleDetected as exc:
        return MeasureResult(
            measure_code, period, None, formula,
            error=f"Cyclic reference: {' → '.join(exc.path)}",
        )

    value = _calculate(measure, tokens, inputs, missing, references)

    error = None
    if value is None:
        # 全部缺失说明本月尚未填报，不算错误
        if missing and len(missing) < references:
            error = f"Missing: {', '.join(missing)}"
        elif not missing:
            error = "Invalid result"
    elif math.isnan(value):
        error = "Invalid result"

    return MeasureResult(measure_code, period, value, formula, inputs, missing, error)


def calculate_measures(snapshot: Snapshot,
                       periods: Iterable[str],
                       measure_codes: Optional[Iterable[str]] = None) -> Dict[str, Dict[str, Optional[float]]]:
    """
    批量重算度量计算值

    Args:
        snapshot: 数据快照
        periods: 期间列表
        measure_codes: 只算这些度量（默认全部）

    Returns:
        {度量代码: {期间: 值}}
    """
    codes = list(measure_codes) if measure_codes is not None else list(snapshot.measures)
    cache: Dict[Tuple[str, str], Optional[float]] = {}
    result: Dict[str, Dict[str, Optional[float]]] = {}
    for code in codes:
        result[code] = {p: resolve_measure(code, p, snapshot, cache) for p in periods}
    return result
