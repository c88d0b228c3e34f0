# -*- coding: utf-8 -*-
"""
战略绩效计算工具包

提供:
- 公式求值 (evaluate) - 记号序列 → 数值
- 度量计算 (resolve_measure) - 参数 / 全局值 / 其他度量 → 计算值
- 达成率 (calc_achievement) - 计算值 + 目标 + 极性 → 封顶达成率
- 加权汇总 (rollup_hierarchy) - KPI → 目标 → 支柱 → 组织
- 杠杆分析 (leverage_ranking) - 哪个KPI最值得提升
- 计分卡 (build_scorecard) - 一次产出以上全部结果

所有计算都是快照上的纯函数：数据缺失、公式错误、循环引用都降级为 None，不抛异常。

使用示例:
    from strategy_tools import Snapshot, build_scorecard

    snapshot = Snapshot.from_dict(data)
    result = build_scorecard(snapshot, "2025-03")
    print(result["rollups"]["overall"])

    # 原子工具
    from strategy_tools.tools import calc_achievement, weighted_rollup
    calc_achievement(120, 100)                        # 120.0
    weighted_rollup([{"weight": 40, "achievement": 120},
                     {"weight": 60, "achievement": 60}])  # 84.0
"""

from .core import (
    Token,
    evaluate,
    normalize_tokens,
    MeasureResult,
    Settings,
    Snapshot,
    Pillar,
    Objective,
    KPI,
    Measure,
    GlobalValue,
    FormulaElement,
)
from .tools import (
    resolve_measure,
    explain_measure,
    calculate_measures,
    calc_achievement,
    calculate_achievements,
    weighted_rollup,
    rollup_hierarchy,
    leverage_ranking,
    build_scorecard,
    ytd_scorecard,
)
from .utils import StrategyError
from . import tools

__version__ = "0.1.0"
__all__ = [
    'Token',
    'evaluate',
    'normalize_tokens',
    'MeasureResult',
    'Settings',
    'Snapshot',
    'Pillar',
    'Objective',
    'KPI',
    'Measure',
    'GlobalValue',
    'FormulaElement',
    'resolve_measure',
    'explain_measure',
    'calculate_measures',
    'calc_achievement',
    'calculate_achievements',
    'weighted_rollup',
    'rollup_hierarchy',
    'leverage_ranking',
    'build_scorecard',
    'ytd_scorecard',
    'StrategyError',
    'tools',
]
