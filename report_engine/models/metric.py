from __future__ import annotations

from dataclasses import dataclass
from typing import Any

"""Metric model.

A Metric is the unit handed to the narration and rendering collaborators. Its
value is final: downstream consumers must not recompute it.
"""

__all__ = [
    "Metric",
]


@dataclass(frozen=True)
class Metric:
    """Named numeric result (always finite; empty inputs yield 0)."""
    name: str
    value: float
    unit: str = ""  # '', '$', '%', 'units', 'x', 'months'
    previous_value: float | None = None
    change: float | None = None  # percentage change vs previous_value
    change_direction: str | None = None  # up / down / neutral
    is_template_kpi: bool = False
    section: str | None = None  # vertical sheets only

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"name": self.name, "value": self.value, "unit": self.unit}
        if self.previous_value is not None:
            data["previousValue"] = self.previous_value
        if self.change is not None:
            data["change"] = self.change
        if self.change_direction is not None:
            data["changeDirection"] = self.change_direction
        if self.is_template_kpi:
            data["isTemplateKPI"] = True
        if self.section is not None:
            data["section"] = self.section
        return data
