# -*- coding: utf-8 -*-
"""
scorecard_tools.py - 计分卡组合工具

把 度量计算 → 达成率 → 汇总 → 杠杆分析 串成一次调用，产出宿主需要的全部结果。
每次调用都从快照重新计算，不读取宿主缓存的计算值/达成率。
"""

import logging
from typing import Any, Dict, List, Optional

from ..core.periods import previous_period, year_to_date
from ..core.settings import Settings
from ..core.snapshot import Snapshot
from .achievement_tools import achievement_status, calculate_achievements, kpi_achievements
from .leverage_tools import leverage_ranking
from .measure_tools import calculate_measures
from .rollup_tools import month_change, rollup_hierarchy, ytd_score

logger = logging.getLogger(__name__)

_LEVELS = ("objectives", "business_units", "pillars")


def _period_rollups(snapshot: Snapshot, periods: List[str], settings: Settings):
    """按期间计算 计算值 / 达成率 / KPI达成率 / 汇总"""
    calculated = calculate_measures(snapshot, periods)
    achievements = calculate_achievements(snapshot, calculated, periods, settings)
    by_kpi = {p: kpi_achievements(snapshot, achievements, p) for p in periods}
    rollups = {p: rollup_hierarchy(snapshot, by_kpi[p], settings) for p in periods}
    return calculated, achievements, by_kpi, rollups


def _changes(current: Dict[str, Any], previous: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    result: Dict[str, Any] = {}
    for level in _LEVELS:
        before = previous[level] if previous else {}
        result[level] = {
            code: month_change(score, before.get(code)) for code, score in current[level].items()
        }
    result["overall"] = month_change(current["overall"], previous["overall"] if previous else None)
    return result


def build_scorecard(
    snapshot: Snapshot,
    period: str,
    settings: Optional[Settings] = None
) -> Dict[str, Any]:
    """
    某期间的完整计分卡

    Args:
        snapshot: 数据快照
        period: 期间 "YYYY-MM"
        settings: 计算参数（默认取快照的）

    Returns:
        {
            "period": 期间,
            "calculated_values": {度量代码: 计算值},
            "achievements": {度量代码: 达成率},
            "kpi_achievements": {KPI代码: 达成率},
            "kpi_status": {KPI代码: 分档},
            "rollups": {"objectives", "business_units", "pillars", "overall"},
            "changes": 与上月相比的变化（同结构；一月为 None）,
            "leverage": [杠杆排序]
        }
    """
    settings = settings or snapshot.settings
    prev = previous_period(period)
    periods = [prev, period] if prev else [period]

    calculated, achievements, by_kpi, rollups = _period_rollups(snapshot, periods, settings)
    current = rollups[period]
    logger.debug("scorecard %s: overall=%s", period, current["overall"])

    return {
        "period": period,
        "calculated_values": {code: values[period] for code, values in calculated.items()},
        "achievements": {code: values[period] for code, values in achievements.items()},
        "kpi_achievements": by_kpi[period],
        "kpi_status": {
            code: achievement_status(pct, settings) for code, pct in by_kpi[period].items()
        },
        "rollups": current,
        "changes": _changes(current, rollups.get(prev) if prev else None),
        "leverage": leverage_ranking(snapshot, by_kpi[period], period, settings),
    }


def ytd_scorecard(
    snapshot: Snapshot,
    period: str,
    settings: Optional[Settings] = None
) -> Dict[str, Any]:
    """
    年初至今计分卡：每个节点取一月到当期各月得分的平均（无数据月份跳过）

    Returns:
        {
            "period": 期间,
            "periods": [参与平均的期间],
            "objectives" / "business_units" / "pillars": {代码: YTD得分},
            "overall": YTD组织得分,
            "monthly": {期间: 当月组织得分}
        }
    """
    settings = settings or snapshot.settings
    periods = year_to_date(period)
    _, _, _, rollups = _period_rollups(snapshot, periods, settings)

    result: Dict[str, Any] = {"period": period, "periods": periods}
    for level in _LEVELS:
        codes = rollups[period][level].keys() if periods else []
        result[level] = {
            code: ytd_score(rollups[p][level].get(code) for p in periods) for code in codes
        }
    result["overall"] = ytd_score(rollups[p]["overall"] for p in periods)
    result["monthly"] = {p: rollups[p]["overall"] for p in periods}
    return result
