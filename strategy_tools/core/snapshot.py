# -*- coding: utf-8 -*-
"""
战略数据快照

引擎只读的数据模型：支柱 → L1/L2/L3 目标 → KPI → 度量，以及全局值和参数录入值。
from_dict 接受宿主持久化的 PascalCase 键（Code、Pillar_Code、Formula_Elements …）
也接受 snake_case 键。快照一旦建立，引擎不再修改。
"""

import json
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from .settings import Settings


# ============================================================
# 通用转换
# ============================================================

def to_number(value: Any) -> Optional[float]:
    """转换为有限浮点数；空值、非数字、NaN/inf 返回 None"""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip().rstrip("%").strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def to_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "1", "y")
    return bool(value)


def _json_field(value: Any, default: Any) -> Any:
    """宿主在表格单元格里以 JSON 字符串存结构化字段"""
    if isinstance(value, str):
        try:
            return json.loads(value) if value.strip() else default
        except json.JSONDecodeError:
            return default
    return default if value is None else value


def _get(data: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    """按顺序取第一个存在且非空的键"""
    for key in keys:
        value = data.get(key)
        if value is not None and value != "":
            return value
    return default


def _is_active(status: Optional[str]) -> bool:
    return (status or "Active").strip().lower() == "active"


# ============================================================
# 公式元素
# ============================================================

ELEMENT_TYPE_ALIASES = {
    "literal": "literal",
    "static": "literal",
    "number": "literal",
    "operator": "operator",
    "paren": "paren",
    "function": "function",
    "dataPoint": "dataPoint",
    "data-point": "dataPoint",
    "parameter": "dataPoint",
    "globalValue": "globalValue",
    "global-value": "globalValue",
    "measure-ref": "measure-ref",
    "measure": "measure-ref",
}

REFERENCE_TYPES = ("dataPoint", "globalValue", "measure-ref")


@dataclass(frozen=True)
class FormulaElement:
    """
    公式元素

    type: literal / operator / paren / function / dataPoint / globalValue / measure-ref
    引用类元素的代码取 code，缺省时取 value（宿主旧格式把代码放在 value 里）
    """
    type: str
    value: Any = None
    code: Optional[str] = None
    display: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> "FormulaElement":
        if not isinstance(data, Mapping):
            # 裸记号（数字或符号字符串）
            return cls(type="literal", value=data)
        raw_type = str(data.get("type", "literal"))
        return cls(
            type=ELEMENT_TYPE_ALIASES.get(raw_type, raw_type),
            value=data.get("value"),
            code=data.get("code"),
            display=data.get("display"),
        )

    @property
    def is_reference(self) -> bool:
        return self.type in REFERENCE_TYPES

    @property
    def reference_code(self) -> Optional[str]:
        if self.code not in (None, ""):
            return str(self.code)
        if self.value not in (None, ""):
            return str(self.value)
        return None

    @property
    def symbol(self) -> Any:
        """非引用元素交给规范化器的原始记号"""
        if self.value in (None, "") and self.display:
            return self.display
        return self.value


# ============================================================
# 层级实体
# ============================================================

@dataclass(frozen=True)
class Pillar:
    """战略支柱"""
    code: str
    name: str = ""
    weight: float = 0.0
    status: str = "Active"

    @property
    def is_active(self) -> bool:
        return _is_active(self.status)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Pillar":
        return cls(
            code=str(_get(data, "Code", "code", default="")),
            name=str(_get(data, "Name", "name", default="")),
            weight=to_number(_get(data, "Weight", "weight")) or 0.0,
            status=str(_get(data, "Status", "status", default="Active")),
        )


@dataclass(frozen=True)
class Objective:
    """
    战略目标（L1 挂支柱，L2 挂 L1，L3 挂 L2）

    运营类目标 (is_operational) 不参与战略汇总
    """
    code: str
    name: str = ""
    level: str = "L1"
    weight: float = 0.0
    pillar_code: Optional[str] = None
    parent_code: Optional[str] = None
    business_unit_code: Optional[str] = None
    is_operational: bool = False
    status: str = "Active"

    @property
    def is_active(self) -> bool:
        return _is_active(self.status)

    @property
    def is_strategic(self) -> bool:
        """参与战略汇总：启用且非运营类"""
        return self.is_active and not self.is_operational

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Objective":
        name = str(_get(data, "Name", "name", default=""))
        operational = _get(data, "Is_Operational", "is_operational", default=False)
        return cls(
            code=str(_get(data, "Code", "code", default="")),
            name=name,
            level=str(_get(data, "Level", "level", default="L1")).upper(),
            weight=to_number(_get(data, "Weight", "weight")) or 0.0,
            pillar_code=_get(data, "Pillar_Code", "pillar_code"),
            parent_code=_get(data, "Parent_Objective_Code", "Parent_Objective", "parent_code"),
            business_unit_code=_get(data, "Business_Unit_Code", "Business_Unit", "business_unit_code"),
            is_operational=to_bool(operational) or name == "Operational",
            status=str(_get(data, "Status", "status", default="Active")),
        )


@dataclass(frozen=True)
class KPI:
    """
    关键绩效指标

    target_mode 为 "monthly" 时优先使用 monthly_targets（按月下标或期间键）
    polarity: Positive（越高越好）/ Negative（越低越好）
    """
    code: str
    name: str = ""
    objective_code: Optional[str] = None
    weight: float = 0.0
    target: Any = None
    target_mode: str = "single"
    monthly_targets: Mapping[str, Any] = field(default_factory=dict)
    polarity: str = "Positive"
    status: str = "Active"
    business_unit_code: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return _is_active(self.status)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "KPI":
        monthly = _json_field(_get(data, "Monthly_Targets", "monthly_targets"), {})
        if isinstance(monthly, list):
            monthly = {str(i): v for i, v in enumerate(monthly)}
        return cls(
            code=str(_get(data, "Code", "KPI Code", "code", default="")),
            name=str(_get(data, "Name", "KPI Name (English)", "name", default="")),
            objective_code=_get(data, "Objective_Code", "objective_code"),
            weight=to_number(_get(data, "Weight", "weight")) or 0.0,
            target=_get(data, "Target", "target"),
            target_mode=str(_get(data, "Target_Mode", "target_mode", default="single")),
            monthly_targets={str(k): v for k, v in dict(monthly or {}).items()},
            polarity=str(_get(data, "Polarity", "polarity", default="Positive")),
            status=str(_get(data, "Status", "status", default="Active")),
            business_unit_code=_get(data, "Business_Unit_Code", "Business_Unit", "business_unit_code"),
        )


@dataclass(frozen=True)
class Measure:
    """度量：计算某个KPI实际值的公式及其参数"""
    code: str
    name: str = ""
    kpi_code: Optional[str] = None
    formula_elements: Tuple[FormulaElement, ...] = ()
    parameters: Tuple[str, ...] = ()
    status: str = "Active"

    @property
    def is_active(self) -> bool:
        return _is_active(self.status)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Measure":
        elements = _json_field(_get(data, "Formula_Elements", "formula_elements"), [])
        parameters = _json_field(_get(data, "Parameters", "parameters"), [])
        names = []
        for param in parameters or []:
            if isinstance(param, Mapping):
                param = param.get("name") or param.get("Name") or param.get("code")
            if param:
                names.append(str(param))
        return cls(
            code=str(_get(data, "Code", "code", default="")),
            name=str(_get(data, "Name", "name", default="")),
            kpi_code=_get(data, "KPI_Code", "kpi_code"),
            formula_elements=tuple(FormulaElement.from_dict(el) for el in elements or []),
            parameters=tuple(names),
            status=str(_get(data, "Status", "status", default="Active")),
        )


@dataclass(frozen=True)
class GlobalValue:
    """全局值：组织级常量或月度序列"""
    code: str
    name: str = ""
    type: str = "number"
    monthly_values: Mapping[str, Any] = field(default_factory=dict)

    def value_for(self, period: str) -> Optional[float]:
        return to_number(self.monthly_values.get(period))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "GlobalValue":
        monthly = _json_field(_get(data, "Monthly_Values", "monthly_values"), {})
        return cls(
            code=str(_get(data, "Code", "code", default="")),
            name=str(_get(data, "Name", "name", default="")),
            type=str(_get(data, "Type", "type", default="number")),
            monthly_values=dict(monthly or {}),
        )


# ============================================================
# 快照
# ============================================================

def _index(items: Iterable[Any]) -> Dict[str, Any]:
    """按 code 建索引；重复代码保留第一条"""
    indexed: Dict[str, Any] = {}
    for item in items:
        if item.code and item.code not in indexed:
            indexed[item.code] = item
    return indexed


@dataclass
class Snapshot:
    """
    引擎输入快照

    parameter_values: {度量代码: {参数名: {期间: 值}}}
    """
    pillars: Dict[str, Pillar] = field(default_factory=dict)
    objectives: Dict[str, Objective] = field(default_factory=dict)
    kpis: Dict[str, KPI] = field(default_factory=dict)
    measures: Dict[str, Measure] = field(default_factory=dict)
    global_values: Dict[str, GlobalValue] = field(default_factory=dict)
    parameter_values: Dict[str, Dict[str, Dict[str, Any]]] = field(default_factory=dict)
    settings: Settings = field(default_factory=Settings)

    def __post_init__(self):
        self._children: Dict[str, List[str]] = {}
        for objective in self.objectives.values():
            if objective.parent_code and objective.parent_code in self.objectives:
                self._children.setdefault(objective.parent_code, []).append(objective.code)

        self._kpis_by_objective: Dict[str, List[str]] = {}
        for kpi in self.kpis.values():
            if kpi.objective_code:
                self._kpis_by_objective.setdefault(kpi.objective_code, []).append(kpi.code)

    @classmethod
    def build(cls,
              pillars: Iterable[Pillar] = (),
              objectives: Iterable[Objective] = (),
              kpis: Iterable[KPI] = (),
              measures: Iterable[Measure] = (),
              global_values: Iterable[GlobalValue] = (),
              parameter_values: Optional[Dict[str, Dict[str, Dict[str, Any]]]] = None,
              settings: Optional[Settings] = None) -> "Snapshot":
        """从实体列表构建"""
        return cls(
            pillars=_index(pillars),
            objectives=_index(objectives),
            kpis=_index(kpis),
            measures=_index(measures),
            global_values=_index(global_values),
            parameter_values=parameter_values or {},
            settings=settings or Settings(),
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Snapshot":
        """
        从宿主 JSON 构建

        Args:
            data: {
                "pillars": [...], "objectives": [...], "kpis": [...],
                "measures": [...], "globalValues": [...],
                "parameterValues": {measure: {param: {period: value}}},
                "settings": {...}
            }
            achievements / calculatedValues 仅供展示调试，引擎会重新计算，不读取
        """
        return cls.build(
            pillars=(Pillar.from_dict(p) for p in data.get("pillars") or []),
            objectives=(Objective.from_dict(o) for o in data.get("objectives") or []),
            kpis=(KPI.from_dict(k) for k in data.get("kpis") or []),
            measures=(Measure.from_dict(m) for m in data.get("measures") or []),
            global_values=(GlobalValue.from_dict(g)
                           for g in _get(data, "globalValues", "global_values", default=[])),
            parameter_values=_get(data, "parameterValues", "parameter_values", default={}),
            settings=Settings.from_dict(data.get("settings")),
        )

    # ---------------- 查询 ----------------

    def parameter_value(self, measure_code: str, name: str, period: str) -> Optional[float]:
        by_param = self.parameter_values.get(measure_code) or {}
        return to_number((by_param.get(name) or {}).get(period))

    def global_value(self, code: str, period: str) -> Optional[float]:
        gv = self.global_values.get(code)
        return gv.value_for(period) if gv else None

    def measure_for_kpi(self, kpi_code: str) -> Optional[Measure]:
        """KPI 对应的度量（0 或 1 个，取第一个启用的）"""
        for measure in self.measures.values():
            if measure.kpi_code == kpi_code and measure.is_active:
                return measure
        return None

    def child_objectives(self, code: str) -> List[Objective]:
        return [self.objectives[c] for c in self._children.get(code, [])]

    def objective_kpis(self, code: str) -> List[KPI]:
        return [self.kpis[c] for c in self._kpis_by_objective.get(code, [])]

    def l1_objectives(self, pillar_code: str) -> List[Objective]:
        """挂在支柱下的根目标"""
        return [
            o for o in self.objectives.values()
            if o.pillar_code == pillar_code and o.parent_code not in self.objectives
        ]
