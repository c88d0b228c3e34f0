# -*- coding: utf-8 -*-
"""
leverage_tools.py - 杠杆（敏感性）分析原子工具

按"提升这个KPI对组织得分影响最大"排序：
    综合权重 = KPI权重 / 100
    达成差距 = max(0, 100 - 当前达成率)，无数据视为 100
    杠杆得分 = 综合权重 × 达成差距
    提升10个百分点的影响 = 综合权重 × 10

综合权重默认只用KPI自身权重；compound=True 时再沿上级目标和支柱的权重连乘。
"""

import logging
import math
from typing import Any, Dict, List, Mapping, Optional, Set

from ..core.settings import Settings
from ..core.snapshot import KPI, Snapshot
from .rollup_tools import pillar_for_objective

logger = logging.getLogger(__name__)


def composite_weight(kpi: KPI, snapshot: Snapshot, compound: bool = False) -> float:
    """
    KPI 的综合权重（0~1）

    Args:
        kpi: KPI
        snapshot: 数据快照
        compound: 是否沿上级目标、支柱权重连乘

    Example:
        KPI 权重 40，目标权重 50，支柱权重 30
        compound=False -> 0.4
        compound=True  -> 0.4 × 0.5 × 0.3 = 0.06
    """
    weight = kpi.weight / 100
    if not compound:
        return weight

    visited: Set[str] = set()
    objective = snapshot.objectives.get(kpi.objective_code) if kpi.objective_code else None
    pillar_code = None
    while objective is not None and objective.code not in visited:
        visited.add(objective.code)
        weight *= objective.weight / 100
        if objective.pillar_code and objective.pillar_code in snapshot.pillars:
            pillar_code = objective.pillar_code
            break
        objective = snapshot.objectives.get(objective.parent_code) if objective.parent_code else None

    if pillar_code is not None:
        weight *= snapshot.pillars[pillar_code].weight / 100
    return weight


def leverage_ranking(
    snapshot: Snapshot,
    kpi_achievements: Mapping[str, Optional[float]],
    period: str = "",
    settings: Optional[Settings] = None,
    compound: Optional[bool] = None
) -> List[Dict[str, Any]]:
    """
    KPI 杠杆排序

    只分析启用的KPI，且其目标存在、启用、非运营类。

    Args:
        snapshot: 数据快照
        kpi_achievements: {KPI代码: 当期达成率}
        period: 期间（仅回显）
        settings: 计算参数
        compound: 覆盖 settings.compound_leverage_weights

    Returns:
        按杠杆得分降序的列表（同分保持KPI原顺序）
            [
                {
                    "kpi_code", "kpi_name", "objective_code", "objective_name", "level",
                    "pillar_code", "pillar_name", "kpi_weight", "composite_weight",
                    "current_achievement", "achievement_gap", "leverage_score",
                    "impact_of_10pct"
                },
                ...
            ]
    """
    settings = settings or snapshot.settings
    if compound is None:
        compound = settings.compound_leverage_weights

    results = []
    for kpi in snapshot.kpis.values():
        if not kpi.is_active:
            continue
        objective = snapshot.objectives.get(kpi.objective_code) if kpi.objective_code else None
        if objective is None or not objective.is_strategic:
            logger.debug("KPI %s excluded from leverage: objective unavailable", kpi.code)
            continue

        pillar_code = pillar_for_objective(objective.code, snapshot)
        pillar = snapshot.pillars.get(pillar_code) if pillar_code else None
        # 停用支柱不作归属
        if pillar is not None and not pillar.is_active:
            pillar_code, pillar = None, None

        current = kpi_achievements.get(kpi.code)
        if current is not None and math.isnan(current):
            current = None
        gap = max(0.0, 100 - current) if current is not None else 100.0
        weight = composite_weight(kpi, snapshot, compound)

        results.append({
            "period": period,
            "kpi_code": kpi.code,
            "kpi_name": kpi.name,
            "objective_code": objective.code,
            "objective_name": objective.name,
            "level": objective.level,
            "pillar_code": pillar_code,
            "pillar_name": pillar.name if pillar else "",
            "kpi_weight": kpi.weight,
            "composite_weight": weight,
            "current_achievement": current,
            "achievement_gap": gap,
            "leverage_score": weight * gap,
            "impact_of_10pct": weight * 10,
        })

    # sorted 是稳定排序，reverse 不改变同分项的先后
    return sorted(results, key=lambda r: r["leverage_score"], reverse=True)
