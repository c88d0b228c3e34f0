# -*- coding: utf-8 -*-
"""
rollup_tools 测试用例
"""

import math

import pytest
from strategy_tools.core.settings import Settings
from strategy_tools.core.snapshot import Snapshot
from strategy_tools.tools.rollup_tools import (
    weighted_rollup,
    pillar_for_objective,
    rollup_hierarchy,
    ytd_score,
    month_change,
)


def hierarchy(**settings):
    """
    P1 (60)                     P2 (40)
      O1 L1 (100, BU1)            O4 L1 (100, BU2)
        K1 40 / K2 60               K5 100
        O2 L2 (50, BU1)
          K3 100
          O3 L3 (50)
            K4 100
      OP L1 运营类
        K6 100
    """
    return Snapshot.from_dict({
        "pillars": [
            {"Code": "P1", "Name": "增长", "Weight": 60},
            {"Code": "P2", "Name": "效率", "Weight": 40},
        ],
        "objectives": [
            {"Code": "O1", "Level": "L1", "Weight": 100, "Pillar_Code": "P1", "Business_Unit_Code": "BU1"},
            {"Code": "O2", "Level": "L2", "Weight": 50, "Parent_Objective_Code": "O1",
             "Business_Unit_Code": "BU1"},
            {"Code": "O3", "Level": "L3", "Weight": 50, "Parent_Objective_Code": "O2"},
            {"Code": "OP", "Level": "L1", "Weight": 100, "Pillar_Code": "P1", "Is_Operational": True},
            {"Code": "O4", "Level": "L1", "Weight": 100, "Pillar_Code": "P2", "Business_Unit_Code": "BU2"},
        ],
        "kpis": [
            {"Code": "K1", "Objective_Code": "O1", "Weight": 40},
            {"Code": "K2", "Objective_Code": "O1", "Weight": 60},
            {"Code": "K3", "Objective_Code": "O2", "Weight": 100},
            {"Code": "K4", "Objective_Code": "O3", "Weight": 100},
            {"Code": "K5", "Objective_Code": "O4", "Weight": 100},
            {"Code": "K6", "Objective_Code": "OP", "Weight": 100},
        ],
        "settings": settings,
    })


class TestWeightedRollup:
    """加权汇总测试"""

    def test_equal_weights(self):
        assert weighted_rollup([
            {"weight": 50, "achievement": 80},
            {"weight": 50, "achievement": 100},
        ]) == pytest.approx(90)

    def test_objective_scenario(self):
        """KPI 40 × 120% + KPI 60 × 60% = 84"""
        assert weighted_rollup([
            {"weight": 40, "achievement": 120},
            {"weight": 60, "achievement": 60},
        ]) == pytest.approx(84)

    def test_no_usable_items(self):
        """全部无数据或权重 <= 0：None，不是 0"""
        assert weighted_rollup([]) is None
        assert weighted_rollup([
            {"weight": 0, "achievement": 80},
            {"weight": -5, "achievement": 90},
            {"weight": 50, "achievement": None},
            {"weight": 50, "achievement": math.nan},
        ]) is None

    def test_items_without_data_skipped(self):
        """无数据项不计入分母"""
        assert weighted_rollup([
            {"weight": 30, "achievement": 70},
            {"weight": 70, "achievement": None},
        ]) == pytest.approx(70)

    def test_cap(self):
        """300% 封顶后按 200 参与汇总"""
        assert weighted_rollup([{"weight": 1, "achievement": 300}], cap=200) == 200
        assert weighted_rollup([
            {"weight": 50, "achievement": 300},
            {"weight": 50, "achievement": 100},
        ], cap=200) == pytest.approx(150)

    def test_weight_sum_not_enforced(self):
        """权重之和不必为 100"""
        assert weighted_rollup([
            {"weight": 1, "achievement": 50},
            {"weight": 3, "achievement": 100},
        ]) == pytest.approx(87.5)

    def test_string_values(self):
        assert weighted_rollup([{"weight": "40", "achievement": "80"}]) == pytest.approx(80)


class TestPillarForObjective:
    """支柱归属测试"""

    def test_walks_ancestors(self):
        snapshot = hierarchy()
        assert pillar_for_objective("O1", snapshot) == "P1"
        assert pillar_for_objective("O3", snapshot) == "P1"
        assert pillar_for_objective("O4", snapshot) == "P2"

    def test_unresolved(self):
        snapshot = Snapshot.from_dict({
            "objectives": [{"Code": "X", "Level": "L2", "Parent_Objective_Code": "MISSING"}],
        })
        assert pillar_for_objective("X", snapshot) is None
        assert pillar_for_objective("NOPE", snapshot) is None

    def test_parent_cycle(self):
        """父指针成环时终止"""
        snapshot = Snapshot.from_dict({
            "objectives": [
                {"Code": "A", "Parent_Objective_Code": "B"},
                {"Code": "B", "Parent_Objective_Code": "A"},
            ],
        })
        assert pillar_for_objective("A", snapshot) is None


class TestRollupHierarchy:
    """整树汇总测试"""

    def test_full_tree(self):
        snapshot = hierarchy()
        result = rollup_hierarchy(snapshot, {
            "K1": 120, "K2": 60, "K3": 100, "K4": 80, "K5": 90, "K6": 10,
        })

        objectives = result["objectives"]
        assert objectives["O3"] == pytest.approx(80)
        # O2: K3 100 × 100 + O3 50 × 80
        assert objectives["O2"] == pytest.approx((100 * 100 + 50 * 80) / 150)
        # O1: K1 40 × 120 + K2 60 × 60 + O2 50 × O2得分
        expected_o1 = (40 * 120 + 60 * 60 + 50 * objectives["O2"]) / 150
        assert objectives["O1"] == pytest.approx(expected_o1)
        assert objectives["O4"] == pytest.approx(90)

        # 运营类目标不进入支柱
        assert result["pillars"]["P1"] == pytest.approx(expected_o1)
        assert result["pillars"]["P2"] == pytest.approx(90)
        assert result["overall"] == pytest.approx((60 * expected_o1 + 40 * 90) / 100)

        # BU1 只汇总根目标 O1，O2 已包含在 O1 得分里
        assert result["business_units"]["BU1"] == pytest.approx(expected_o1)
        assert result["business_units"]["BU2"] == pytest.approx(90)

    def test_unit_counts_nested_objective_once(self):
        """同一业务单元的上下级目标，子目标不重复计入"""
        snapshot = Snapshot.from_dict({
            "objectives": [
                {"Code": "O1", "Level": "L1", "Weight": 100, "Business_Unit_Code": "BU"},
                {"Code": "O2", "Level": "L2", "Weight": 100, "Parent_Objective_Code": "O1",
                 "Business_Unit_Code": "BU"},
                {"Code": "O3", "Level": "L2", "Weight": 100, "Parent_Objective_Code": "O1",
                 "Business_Unit_Code": "BU2"},
            ],
            "kpis": [
                {"Code": "K1", "Objective_Code": "O1", "Weight": 100},
                {"Code": "K2", "Objective_Code": "O2", "Weight": 100},
                {"Code": "K3", "Objective_Code": "O3", "Weight": 100},
            ],
        })
        result = rollup_hierarchy(snapshot, {"K1": 100, "K2": 0, "K3": 50})
        assert result["objectives"]["O1"] == pytest.approx(50)
        assert result["business_units"]["BU"] == pytest.approx(50)
        # 上级在其他业务单元时，本单元仍汇总该目标
        assert result["business_units"]["BU2"] == pytest.approx(50)

    def test_operational_objective_still_scored(self):
        """运营类目标本身有得分，但不参与上级汇总"""
        result = rollup_hierarchy(hierarchy(), {"K6": 10})
        assert result["objectives"]["OP"] == pytest.approx(10)
        assert result["pillars"]["P1"] is None

    def test_no_data(self):
        result = rollup_hierarchy(hierarchy(), {})
        assert all(v is None for v in result["objectives"].values())
        assert result["overall"] is None

    def test_inactive_nodes_excluded(self):
        snapshot = Snapshot.from_dict({
            "pillars": [{"Code": "P1", "Weight": 100}, {"Code": "P2", "Weight": 100, "Status": "Inactive"}],
            "objectives": [
                {"Code": "O1", "Weight": 100, "Pillar_Code": "P1"},
                {"Code": "O2", "Weight": 100, "Pillar_Code": "P2"},
                {"Code": "OX", "Weight": 100, "Parent_Objective_Code": "O1", "Status": "Inactive"},
            ],
            "kpis": [
                {"Code": "K1", "Objective_Code": "O1", "Weight": 50},
                {"Code": "K2", "Objective_Code": "O1", "Weight": 50, "Status": "Inactive"},
                {"Code": "K3", "Objective_Code": "O2", "Weight": 100},
                {"Code": "KX", "Objective_Code": "OX", "Weight": 100},
            ],
        })
        result = rollup_hierarchy(snapshot, {"K1": 80, "K2": 10, "K3": 50, "KX": 0})
        assert result["objectives"]["O1"] == pytest.approx(80)
        assert result["objectives"]["OX"] is None
        assert result["pillars"]["P2"] is None
        assert result["overall"] == pytest.approx(80)

    def test_rollup_cap_from_settings(self):
        snapshot = hierarchy(achievementCap=120)
        result = rollup_hierarchy(snapshot, {"K5": 200})
        assert result["objectives"]["O4"] == 120

    def test_explicit_settings_override(self):
        snapshot = hierarchy()
        result = rollup_hierarchy(snapshot, {"K5": 200}, Settings(rollup_cap=110))
        assert result["objectives"]["O4"] == 110

    def test_parent_cycle_terminates(self):
        """目标父指针成环不会无限递归"""
        snapshot = Snapshot.from_dict({
            "objectives": [
                {"Code": "A", "Weight": 100, "Parent_Objective_Code": "B"},
                {"Code": "B", "Weight": 100, "Parent_Objective_Code": "A"},
            ],
            "kpis": [
                {"Code": "KA", "Objective_Code": "A", "Weight": 100},
                {"Code": "KB", "Objective_Code": "B", "Weight": 100},
            ],
        })
        result = rollup_hierarchy(snapshot, {"KA": 80, "KB": 60})
        assert result["objectives"]["A"] is not None
        assert result["objectives"]["B"] is not None


class TestYtdAndChange:
    """年初至今与环比"""

    def test_ytd_skips_empty_months(self):
        assert ytd_score([80, None, 100]) == pytest.approx(90)
        assert ytd_score([None, math.nan]) is None
        assert ytd_score([]) is None

    def test_month_change(self):
        assert month_change(90, 84) == pytest.approx(6)
        assert month_change(90, None) is None
        assert month_change(None, 84) is None
