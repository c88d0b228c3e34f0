# -*- coding: utf-8 -*-
"""
Excel 导出工具

将计分卡结果导出为格式化的 Excel 文件，方便人类阅读
"""

import math
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from ..core.snapshot import Snapshot


class ScorecardWriter:
    """
    计分卡 Excel 导出

    使用方法:
        writer = ScorecardWriter()
        writer.write_scorecard(result, snapshot)
        writer.write_leverage(result["leverage"])
        writer.save("scorecard.xlsx")
    """

    def __init__(self):
        self.wb = Workbook()
        # 删除默认的 sheet
        self.wb.remove(self.wb.active)

        # 样式定义
        self.title_font = Font(bold=True, size=14)
        self.header_font = Font(bold=True, size=11)
        self.header_fill = PatternFill(start_color="DAEEF3", end_color="DAEEF3", fill_type="solid")
        self.thin_border = Border(
            left=Side(style='thin'),
            right=Side(style='thin'),
            top=Side(style='thin'),
            bottom=Side(style='thin')
        )

    @staticmethod
    def _cell_value(value: Any) -> Any:
        """NaN 写成空单元格"""
        if isinstance(value, float) and math.isnan(value):
            return None
        return value

    def _set_column_widths(self, ws, widths: List[int]):
        for i, width in enumerate(widths, start=1):
            ws.column_dimensions[get_column_letter(i)].width = width

    def _write_title(self, ws, row, title):
        cell = ws.cell(row=row, column=1, value=title)
        cell.font = self.title_font
        return row + 1

    def _write_header_row(self, ws, row, headers):
        for i, header in enumerate(headers, start=1):
            cell = ws.cell(row=row, column=i, value=header)
            cell.font = self.header_font
            cell.fill = self.header_fill
            cell.border = self.thin_border
            cell.alignment = Alignment(horizontal='center')
        return row + 1

    def _write_data_row(self, ws, row, data, is_total=False):
        for i, value in enumerate(data, start=1):
            cell = ws.cell(row=row, column=i, value=self._cell_value(value))
            cell.border = self.thin_border
            if isinstance(value, float):
                cell.number_format = '0.00'
                cell.alignment = Alignment(horizontal='right')
            else:
                cell.alignment = Alignment(horizontal='left')
            if is_total:
                cell.font = Font(bold=True)
        return row + 1

    def write_scorecard(self, result: Dict[str, Any], snapshot: Optional[Snapshot] = None,
                        sheet_name: str = "Scorecard"):
        """
        写入计分卡（各层级得分 + KPI 达成率）

        Args:
            result: build_scorecard() 的返回结果
            snapshot: 用于显示名称（可选）
            sheet_name: 工作表名称
        """
        ws = self.wb.create_sheet(title=sheet_name)
        self._set_column_widths(ws, [18, 36, 14, 14])

        def name_of(collection: str, code: str) -> str:
            if snapshot is None:
                return ""
            item = getattr(snapshot, collection).get(code)
            return item.name if item else ""

        rollups = result.get("rollups", {})
        changes = result.get("changes", {})

        row = self._write_title(ws, 1, f"计分卡 {result.get('period', '')}")
        row = self._write_data_row(ws, row, ["组织得分", "", rollups.get("overall"),
                                             changes.get("overall")], is_total=True)
        row += 1

        sections = [
            ("战略支柱", "pillars", "pillars"),
            ("业务单元", "business_units", None),
            ("战略目标", "objectives", "objectives"),
        ]
        for title, level, collection in sections:
            scores = rollups.get(level, {})
            if not scores:
                continue
            row = self._write_title(ws, row, title)
            row = self._write_header_row(ws, row, ["代码", "名称", "得分", "环比"])
            for code, score in scores.items():
                label = name_of(collection, code) if collection else ""
                delta = changes.get(level, {}).get(code)
                row = self._write_data_row(ws, row, [code, label, score, delta])
            row += 1

        row = self._write_title(ws, row, "KPI")
        row = self._write_header_row(ws, row, ["代码", "名称", "达成率", "状态"])
        statuses = result.get("kpi_status", {})
        for code, pct in result.get("kpi_achievements", {}).items():
            row = self._write_data_row(ws, row, [code, name_of("kpis", code), pct, statuses.get(code)])

    def write_values(self, result: Dict[str, Any], sheet_name: str = "Calculated_Values"):
        """写入度量计算值和达成率"""
        ws = self.wb.create_sheet(title=sheet_name)
        self._set_column_widths(ws, [18, 12, 14, 14])
        row = self._write_header_row(ws, 1, ["Measure_Code", "Month_Key", "Value", "Achievement"])

        achievements = result.get("achievements", {})
        for code, value in result.get("calculated_values", {}).items():
            row = self._write_data_row(ws, row, [code, result.get("period"), value,
                                                 achievements.get(code)])

    def write_leverage(self, leverage: List[Dict[str, Any]], sheet_name: str = "Leverage"):
        """写入杠杆排序"""
        ws = self.wb.create_sheet(title=sheet_name)
        self._set_column_widths(ws, [6, 16, 30, 16, 8, 12, 12, 12, 12, 12])
        headers = ["排名", "KPI", "名称", "目标", "层级", "综合权重",
                   "当前达成率", "差距", "杠杆得分", "+10%影响"]
        row = self._write_header_row(ws, 1, headers)

        for rank, item in enumerate(leverage, start=1):
            row = self._write_data_row(ws, row, [
                rank,
                item["kpi_code"],
                item["kpi_name"],
                item["objective_code"],
                item["level"],
                float(item["composite_weight"]),
                item["current_achievement"],
                float(item["achievement_gap"]),
                float(item["leverage_score"]),
                float(item["impact_of_10pct"]),
            ])

    def save(self, path: Union[str, Path]):
        """保存文件"""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        self.wb.save(path)
        return str(path)
