# -*- coding: utf-8 -*-
"""
核心模块

提供公式记号、求值器、数据快照、计算参数和带追溯的计算结果
"""

from .tokens import Token, TokenKind, normalize_token, normalize_tokens, format_tokens
from .evaluator import evaluate
from .cell import MeasureResult
from .settings import Settings
from .snapshot import (
    FormulaElement,
    Pillar,
    Objective,
    KPI,
    Measure,
    GlobalValue,
    Snapshot,
    to_number,
)
from .periods import parse_period, make_period, previous_period, year_to_date

__all__ = [
    'Token',
    'TokenKind',
    'normalize_token',
    'normalize_tokens',
    'format_tokens',
    'evaluate',
    'MeasureResult',
    'Settings',
    'FormulaElement',
    'Pillar',
    'Objective',
    'KPI',
    'Measure',
    'GlobalValue',
    'Snapshot',
    'to_number',
    'parse_period',
    'make_period',
    'previous_period',
    'year_to_date',
]
