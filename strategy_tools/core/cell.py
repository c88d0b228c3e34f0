# -*- coding: utf-8 -*-
"""
度量计算结果 - 带追溯信息

计算值不只存数字，还记录它是怎么来的：公式、各数据源的取值、缺失项
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


def _json_number(value: Optional[float]) -> Optional[float]:
    """NaN 在 JSON 中输出为 null"""
    if value is not None and math.isnan(value):
        return None
    return value


@dataclass
class MeasureResult:
    """
    单个度量在单个期间的计算结果（带追溯）

    value 为 None 表示无数据；NaN 表示无效（如除以 0）
    """
    measure_code: str
    period: str
    value: Optional[float]
    formula: str = ""                                         # 公式（人类可读）
    inputs: Dict[str, Optional[float]] = field(default_factory=dict)  # 各数据源取值
    missing: List[str] = field(default_factory=list)          # 缺失的数据源
    error: Optional[str] = None

    @property
    def is_valid(self) -> bool:
        """有可用于计算达成率的数值"""
        return self.value is not None and not math.isnan(self.value)

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典（用于JSON序列化）"""
        result = {
            "measure_code": self.measure_code,
            "period": self.period,
            "value": _json_number(self.value),
            "formula": self.formula,
            "inputs": {k: _json_number(v) for k, v in self.inputs.items()},
        }
        if self.missing:
            result["missing"] = self.missing
        if self.error:
            result["error"] = self.error
        return result

    def explain(self) -> str:
        """生成人类可读的解释"""
        if self.value is None:
            shown = "—"
        elif math.isnan(self.value):
            shown = "无效"
        else:
            shown = f"{self.value:,.2f}"

        lines = [
            f"【{self.measure_code} @ {self.period}】",
            f"  值: {shown}",
            f"  公式: {self.formula or '(未定义)'}",
        ]

        if self.inputs:
            lines.append("  计算过程:")
            for key, val in self.inputs.items():
                if isinstance(val, float):
                    lines.append(f"    {key} = {val:,.2f}")
                else:
                    lines.append(f"    {key} = {val}")

        if self.missing:
            lines.append(f"  缺失: {', '.join(self.missing)}")

        if self.error:
            lines.append(f"  错误: {self.error}")

        return "\n".join(lines)
