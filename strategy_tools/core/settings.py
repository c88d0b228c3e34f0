# -*- coding: utf-8 -*-
"""
计算参数配置

宿主程序的管理设置（达成率上限、状态阈值）在这里统一成一个不可变对象。
from_dict 同时接受 snake_case 和宿主的 camelCase 键名。
"""

from dataclasses import dataclass, fields
from typing import Any, Dict, Optional


# 宿主键名 -> 字段名
_HOST_KEYS = {
    "overachievementCap": "overachievement_cap",
    "employeeOverachievementCap": "employee_overachievement_cap",
    "achievementCap": "rollup_cap",
    "thresholdExcellent": "threshold_excellent",
    "thresholdGood": "threshold_good",
    "thresholdWarning": "threshold_warning",
    "compoundLeverageWeights": "compound_leverage_weights",
}


_OPTIONAL_CAPS = ("overachievement_cap", "employee_overachievement_cap", "rollup_cap")


def _coerce(name: str, value: Any) -> Any:
    """表格里读出的设置可能是字符串"""
    if name == "compound_leverage_weights":
        if isinstance(value, str):
            return value.strip().lower() in ("true", "yes", "1")
        return bool(value)
    if value is None or value == "":
        if name in _OPTIONAL_CAPS:
            return None
        raise ValueError(f"setting {name} requires a number")
    return float(value)


@dataclass(frozen=True)
class Settings:
    """
    计算参数

    Attributes:
        overachievement_cap: 组织KPI达成率上限（%）
        employee_overachievement_cap: 员工KPI达成率上限（%）
        rollup_cap: 汇总时再次封顶（None 表示直接使用已封顶的达成率）
        threshold_excellent / threshold_good / threshold_warning: 状态分档阈值（%）
        compound_leverage_weights: 杠杆分析是否沿上级目标/支柱权重连乘
    """
    overachievement_cap: Optional[float] = 200.0
    employee_overachievement_cap: Optional[float] = 200.0
    rollup_cap: Optional[float] = None
    threshold_excellent: float = 100.0
    threshold_good: float = 80.0
    threshold_warning: float = 60.0
    compound_leverage_weights: bool = False

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "Settings":
        """从宿主设置字典构建，未知键忽略"""
        if not data:
            return cls()

        known = {f.name for f in fields(cls)}
        values: Dict[str, Any] = {}
        for key, value in data.items():
            name = _HOST_KEYS.get(key, key)
            if name in known:
                values[name] = _coerce(name, value)
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}
