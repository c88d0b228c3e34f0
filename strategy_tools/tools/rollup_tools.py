# -*- coding: utf-8 -*-
"""
rollup_tools.py - 加权汇总原子工具

同一个加权平均算法用于所有层级：
    KPI → 目标 → (上级目标) → 支柱 → 组织
    目标 → 业务单元

设计原则:
1. 无数据（没有可用的达成率）返回 None，而不是 0
2. 权重 <= 0 的项不参与
3. 父子指针出现环时截断，回到已访问节点的那条边不贡献分数

工具清单:
- weighted_rollup: 加权汇总
- pillar_for_objective: 沿上级链找到所属支柱
- rollup_hierarchy: 整棵战略树的汇总得分
- ytd_score: 年初至今平均
- month_change: 环比变化
"""

import logging
import math
from typing import Any, Dict, Iterable, Mapping, Optional, Set

from ..core.settings import Settings
from ..core.snapshot import Objective, Snapshot, to_number

logger = logging.getLogger(__name__)


# ============================================================
# 加权汇总
# ============================================================

def _usable(value: Optional[float]) -> bool:
    return value is not None and not math.isnan(value)


def weighted_rollup(
    items: Iterable[Mapping[str, Any]],
    cap: Optional[float] = None
) -> Optional[float]:
    """
    加权汇总

    score = Σ(权重 × min(达成率, cap)) / Σ(权重)

    Args:
        items: [{"weight": 40, "achievement": 120}, ...]
        cap: 汇总时的达成率上限（None 表示不再封顶）

    Returns:
        得分；没有可用项时返回 None

    Example:
        >>> weighted_rollup([
        ...     {"weight": 50, "achievement": 80},
        ...     {"weight": 50, "achievement": 100}
        ... ])
        90.0
    """
    total_weight = 0.0
    weighted_sum = 0.0

    for item in items:
        # to_number 把 NaN 也当作无数据
        achievement = to_number(item.get("achievement"))
        weight = to_number(item.get("weight")) or 0.0
        if achievement is None or weight <= 0:
            continue
        if cap is not None:
            achievement = min(achievement, cap)
        weighted_sum += weight * achievement
        total_weight += weight

    if total_weight == 0:
        return None
    return weighted_sum / total_weight


# ============================================================
# 层级归属
# ============================================================

def pillar_for_objective(code: str, snapshot: Snapshot) -> Optional[str]:
    """
    沿上级目标链向上找支柱代码

    Returns:
        支柱代码；链断开、环或支柱不在快照里返回 None
    """
    visited: Set[str] = set()
    current = snapshot.objectives.get(code)
    while current is not None and current.code not in visited:
        visited.add(current.code)
        if current.pillar_code and current.pillar_code in snapshot.pillars:
            return current.pillar_code
        if not current.parent_code:
            break
        current = snapshot.objectives.get(current.parent_code)
    return None


# ============================================================
# 整树汇总
# ============================================================

class _HierarchyScorer:
    """带记忆的目标得分计算，作用域仅限一次 rollup_hierarchy 调用"""

    def __init__(self, snapshot: Snapshot, kpi_achievements: Mapping[str, Optional[float]],
                 cap: Optional[float]):
        self.snapshot = snapshot
        self.kpi_achievements = kpi_achievements
        self.cap = cap
        self.scores: Dict[str, Optional[float]] = {}

    def objective(self, code: str, path: Set[str] = frozenset()) -> Optional[float]:
        if code in self.scores:
            return self.scores[code]
        if code in path:
            logger.debug("objective parent cycle at %s", code)
            return None

        objective = self.snapshot.objectives[code]
        if not objective.is_active:
            self.scores[code] = None
            return None

        items = [
            {"weight": kpi.weight, "achievement": self.kpi_achievements.get(kpi.code)}
            for kpi in self.snapshot.objective_kpis(code)
            if kpi.is_active
        ]
        path = path | {code}
        for child in self.snapshot.child_objectives(code):
            if child.is_strategic:
                items.append({"weight": child.weight, "achievement": self.objective(child.code, path)})

        score = weighted_rollup(items, self.cap)
        self.scores[code] = score
        return score


def _node_items(objectives: Iterable[Objective], scores: Mapping[str, Optional[float]]):
    return [
        {"weight": o.weight, "achievement": scores.get(o.code)}
        for o in objectives if o.is_strategic
    ]


def _nested_in_unit(objective: Objective, snapshot: Snapshot) -> bool:
    parent = snapshot.objectives.get(objective.parent_code)
    return (parent is not None and parent.is_strategic
            and parent.business_unit_code == objective.business_unit_code)


def rollup_hierarchy(
    snapshot: Snapshot,
    kpi_achievements: Mapping[str, Optional[float]],
    settings: Optional[Settings] = None
) -> Dict[str, Any]:
    """
    计算整棵战略树的汇总得分

    Args:
        snapshot: 数据快照
        kpi_achievements: {KPI代码: 达成率}
        settings: 计算参数（rollup_cap 作为汇总上限）

    Returns:
        {
            "objectives": {目标代码: 得分},
            "business_units": {业务单元代码: 得分},
            "pillars": {支柱代码: 得分},
            "overall": 组织得分
        }
    """
    settings = settings or snapshot.settings
    cap = settings.rollup_cap
    scorer = _HierarchyScorer(snapshot, kpi_achievements, cap)

    objective_scores = {code: scorer.objective(code) for code in snapshot.objectives}

    # 上级目标在同一业务单元时，子目标得分已包含在上级得分里
    by_unit: Dict[str, list] = {}
    for objective in snapshot.objectives.values():
        if objective.business_unit_code and not _nested_in_unit(objective, snapshot):
            by_unit.setdefault(objective.business_unit_code, []).append(objective)
    unit_scores = {
        unit: weighted_rollup(_node_items(objectives, objective_scores), cap)
        for unit, objectives in by_unit.items()
    }

    pillar_scores: Dict[str, Optional[float]] = {}
    for code, pillar in snapshot.pillars.items():
        if not pillar.is_active:
            pillar_scores[code] = None
            continue
        pillar_scores[code] = weighted_rollup(
            _node_items(snapshot.l1_objectives(code), objective_scores), cap
        )

    overall = weighted_rollup(
        [
            {"weight": p.weight, "achievement": pillar_scores[p.code]}
            for p in snapshot.pillars.values() if p.is_active
        ],
        cap,
    )

    return {
        "objectives": objective_scores,
        "business_units": unit_scores,
        "pillars": pillar_scores,
        "overall": overall,
    }


# ============================================================
# 年初至今 / 环比
# ============================================================

def ytd_score(scores: Iterable[Optional[float]]) -> Optional[float]:
    """
    年初至今得分：有数据月份的简单平均

    Example:
        >>> ytd_score([80, None, 100])
        90.0
    """
    values = [s for s in scores if _usable(s)]
    if not values:
        return None
    return sum(values) / len(values)


def month_change(current: Optional[float], previous: Optional[float]) -> Optional[float]:
    """环比变化（百分点）；任一期无数据返回 None"""
    if not _usable(current) or not _usable(previous):
        return None
    return current - previous
