# -*- coding: utf-8 -*-
"""
输入输出模块

提供战略工作簿读取、计分卡 Excel 导出
"""

from .excel_writer import ScorecardWriter
from .workbook_reader import read_workbook

__all__ = ['ScorecardWriter', 'read_workbook']
