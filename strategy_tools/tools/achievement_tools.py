# -*- coding: utf-8 -*-
"""
achievement_tools.py - 达成率原子工具

把度量计算值 + KPI 目标 + 极性换算成封顶的达成率（%）。
设计为无状态的原子函数，不抛异常：数据不可用时返回 None。

工具清单:
- calc_achievement: 单个达成率
- target_for_period: KPI 在某期间的目标（月度目标 / 单一目标）
- achievement_status: 达成率分档
- calculate_achievements: 批量生成达成率表
- employee_scorecard: 员工KPI计分卡
"""

import logging
import math
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional

from ..core.periods import month_index
from ..core.settings import Settings
from ..core.snapshot import KPI, Snapshot, to_number
from .rollup_tools import weighted_rollup

logger = logging.getLogger(__name__)


# ============================================================
# 达成率
# ============================================================

class Polarity(Enum):
    """KPI极性"""
    POSITIVE = "positive"     # 越高越好
    NEGATIVE = "negative"     # 越低越好


_POLARITY_ALIASES = {
    "positive": Polarity.POSITIVE,
    "higher_better": Polarity.POSITIVE,
    "negative": Polarity.NEGATIVE,
    "lower_better": Polarity.NEGATIVE,
}


def parse_polarity(value: Any) -> Polarity:
    """宿主写 Positive/Negative，财务工具写 higher_better/lower_better；未知按越高越好"""
    if isinstance(value, Polarity):
        return value
    return _POLARITY_ALIASES.get(str(value or "").strip().lower(), Polarity.POSITIVE)


def calc_achievement(
    calculated_value: Optional[float],
    target: Any,
    polarity: Any = "Positive",
    cap: Optional[float] = 200.0
) -> Optional[float]:
    """
    计算达成率

    正向: 实际 / 目标 × 100
    负向: 目标 / 实际 × 100

    Args:
        calculated_value: 度量计算值（None / NaN 表示无数据）
        target: 目标值（可为字符串）
        polarity: Positive / Negative
        cap: 上限（%），None 表示不封顶

    Returns:
        达成率（%）；目标缺失或为 0、负向时实际为 0 返回 None。不设下限。

    Example:
        >>> calc_achievement(120, 100)
        120.0
        >>> calc_achievement(300, 100, cap=200)
        200.0
        >>> calc_achievement(80, 100, "Negative")
        125.0
    """
    if calculated_value is None or math.isnan(calculated_value):
        return None

    target_value = to_number(target)
    if not target_value:
        return None

    if parse_polarity(polarity) is Polarity.NEGATIVE:
        if calculated_value == 0:
            return None
        pct = target_value / calculated_value * 100
    else:
        pct = calculated_value / target_value * 100

    if cap is not None:
        pct = min(pct, cap)
    return pct


def target_for_period(kpi: KPI, period: str) -> Optional[float]:
    """
    KPI 在某期间的目标

    月度目标模式下按月下标（"0".."11"）或期间键取值，当月为空时回落到单一目标。
    """
    if kpi.target_mode == "monthly" and kpi.monthly_targets:
        index = month_index(period)
        for key in (period, str(index) if index is not None else None):
            if key is None:
                continue
            value = to_number(kpi.monthly_targets.get(key))
            if value is not None:
                return value
    return to_number(kpi.target)


# ============================================================
# 状态分档
# ============================================================

class AchievementStatus(Enum):
    """达成状态"""
    EXCELLENT = "excellent"   # 优秀
    GOOD = "good"             # 良好
    WARNING = "warning"       # 预警
    POOR = "poor"             # 较差
    NO_DATA = "no_data"       # 无数据


def achievement_status(pct: Optional[float], settings: Optional[Settings] = None) -> str:
    """
    达成率分档

    Example:
        >>> achievement_status(85)
        'good'
    """
    settings = settings or Settings()
    if pct is None or math.isnan(pct):
        return AchievementStatus.NO_DATA.value
    if pct >= settings.threshold_excellent:
        return AchievementStatus.EXCELLENT.value
    if pct >= settings.threshold_good:
        return AchievementStatus.GOOD.value
    if pct >= settings.threshold_warning:
        return AchievementStatus.WARNING.value
    return AchievementStatus.POOR.value


# ============================================================
# 批量达成率
# ============================================================

def calculate_achievements(
    snapshot: Snapshot,
    calculated: Mapping[str, Mapping[str, Optional[float]]],
    periods: Iterable[str],
    settings: Optional[Settings] = None
) -> Dict[str, Dict[str, Optional[float]]]:
    """
    由计算值表生成达成率表

    Args:
        snapshot: 数据快照（取度量所属KPI的目标和极性）
        calculated: {度量代码: {期间: 计算值}}
        periods: 期间列表
        settings: 计算参数（默认取快照的）

    Returns:
        {度量代码: {期间: 达成率}}；没有所属KPI的度量不出现在结果里
    """
    settings = settings or snapshot.settings
    periods = list(periods)
    result: Dict[str, Dict[str, Optional[float]]] = {}

    for code, by_period in calculated.items():
        measure = snapshot.measures.get(code)
        kpi = snapshot.kpis.get(measure.kpi_code) if measure and measure.kpi_code else None
        if kpi is None:
            logger.debug("measure %s has no KPI, skipped", code)
            continue
        result[code] = {
            period: calc_achievement(
                by_period.get(period),
                target_for_period(kpi, period),
                kpi.polarity,
                settings.overachievement_cap,
            )
            for period in periods
        }
    return result


def kpi_achievements(
    snapshot: Snapshot,
    achievements: Mapping[str, Mapping[str, Optional[float]]],
    period: str
) -> Dict[str, Optional[float]]:
    """把按度量的达成率表转成某期间按KPI的达成率 {KPI代码: 达成率}"""
    result: Dict[str, Optional[float]] = {}
    for code in snapshot.kpis:
        measure = snapshot.measure_for_kpi(code)
        result[code] = (achievements.get(measure.code) or {}).get(period) if measure else None
    return result


# ============================================================
# 员工计分卡
# ============================================================

def employee_scorecard(
    kpis: List[Dict[str, Any]],
    period: str = "current",
    settings: Optional[Settings] = None
) -> Dict[str, Any]:
    """
    员工KPI计分卡

    与组织KPI同样的权重 × 达成率模型，达成率上限使用员工上限。

    Args:
        kpis: 员工KPI列表
            [
                {
                    "code": "EK-01",
                    "name": "客户拜访",
                    "objective": "个人目标1",   # 可选，按个人目标分组
                    "weight": 40,
                    "target": 20,
                    "actual": 25,
                    "polarity": "Positive"
                },
                ...
            ]
        period: 期间
        settings: 计算参数

    Returns:
        {
            "period": 期间,
            "overall": 综合得分,
            "status": 分档,
            "by_objective": {个人目标: 得分},
            "kpis": [各KPI详情]
        }

    Example:
        >>> employee_scorecard([
        ...     {"name": "A", "weight": 50, "target": 100, "actual": 80},
        ...     {"name": "B", "weight": 50, "target": 100, "actual": 100}
        ... ])["overall"]
        90.0
    """
    settings = settings or Settings()
    cap = settings.employee_overachievement_cap

    rows = []
    groups: Dict[str, List[Dict[str, Any]]] = {}
    for i, kpi in enumerate(kpis or []):
        actual = to_number(kpi.get("actual"))
        pct = calc_achievement(actual, kpi.get("target"), kpi.get("polarity", "Positive"), cap)
        weight = to_number(kpi.get("weight")) or 0.0
        row = {
            "code": kpi.get("code", f"EK-{i + 1:02d}"),
            "name": kpi.get("name", ""),
            "objective": kpi.get("objective"),
            "weight": weight,
            "target": to_number(kpi.get("target")),
            "actual": actual,
            "achievement": pct,
            "status": achievement_status(pct, settings),
        }
        rows.append(row)
        if row["objective"]:
            groups.setdefault(row["objective"], []).append(row)

    overall = weighted_rollup(rows, settings.rollup_cap)
    return {
        "period": period,
        "overall": overall,
        "status": achievement_status(overall, settings),
        "by_objective": {
            name: weighted_rollup(items, settings.rollup_cap) for name, items in groups.items()
        },
        "kpis": rows,
    }
