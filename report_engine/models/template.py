from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

"""Industry template models.

KPI formulas are a closed set of kinds. CUSTOM formulas refer to a named
calculation resolved through the dispatch table in services.templates, so
registry entries stay plain data.
"""

__all__ = [
    "KpiFormula",
    "KpiSpec",
    "ChartSpec",
    "Template",
]


class KpiFormula(Enum):
    SUM = "sum"
    AVERAGE = "average"
    COUNT = "count"
    GROWTH_RATE = "growth_rate"
    CUSTOM = "custom"


@dataclass(frozen=True)
class KpiSpec:
    id: str
    name: str
    formula: KpiFormula
    unit: str = ""
    column: str | None = None  # SUM / AVERAGE / GROWTH_RATE
    calc: str | None = None  # CUSTOM: name in the calculation table

    def __post_init__(self) -> None:
        if self.formula is KpiFormula.CUSTOM and not self.calc:
            raise ValueError(f"kpi '{self.id}': custom formula requires calc")
        if self.formula in (KpiFormula.SUM, KpiFormula.AVERAGE, KpiFormula.GROWTH_RATE) and not self.column:
            raise ValueError(f"kpi '{self.id}': {self.formula.value} formula requires column")


@dataclass(frozen=True)
class ChartSpec:
    """Rendering hint for template-specific charts (consumed by the renderer)."""
    type: str
    title: str
    x_column: str | None = None
    y_columns: tuple[str, ...] = ()
    group_by: str | None = None
    value_column: str | None = None
    calculated: bool = False


@dataclass(frozen=True)
class Template:
    id: str
    name: str
    description: str
    required_columns: tuple[str, ...]
    optional_columns: tuple[str, ...]
    kpis: tuple[KpiSpec, ...]
    chart_specs: tuple[ChartSpec, ...]
    ai_context: str

    def summary(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "requiredColumns": list(self.required_columns),
        }
