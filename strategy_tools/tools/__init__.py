# -*- coding: utf-8 -*-
"""
原子工具

度量计算 → 达成率 → 加权汇总 → 杠杆分析，每一步都是无状态函数
"""

from .measure_tools import resolve_measure, explain_measure, calculate_measures, format_formula
from .achievement_tools import (
    Polarity,
    AchievementStatus,
    calc_achievement,
    target_for_period,
    achievement_status,
    calculate_achievements,
    kpi_achievements,
    employee_scorecard,
)
from .rollup_tools import weighted_rollup, pillar_for_objective, rollup_hierarchy, ytd_score, month_change
from .leverage_tools import composite_weight, leverage_ranking
from .scorecard_tools import build_scorecard, ytd_scorecard

__all__ = [
    'resolve_measure',
    'explain_measure',
    'calculate_measures',
    'format_formula',
    'Polarity',
    'AchievementStatus',
    'calc_achievement',
    'target_for_period',
    'achievement_status',
    'calculate_achievements',
    'kpi_achievements',
    'employee_scorecard',
    'weighted_rollup',
    'pillar_for_objective',
    'rollup_hierarchy',
    'ytd_score',
    'month_change',
    'composite_weight',
    'leverage_ranking',
    'build_scorecard',
    'ytd_scorecard',
]
