from __future__ import annotations

from dataclasses import dataclass
from typing import Any

"""Chart payload models.

``Chart`` is a single-series chart (bar/line/pie/doughnut) whose data order is
the rendering order. ``ComparisonChart`` carries multi-series rows for the
compare workflow (grouped bars keyed by dataset label).
"""

__all__ = [
    "CHART_TYPES",
    "ChartPoint",
    "Chart",
    "ComparisonChart",
]

CHART_TYPES = ("bar", "line", "pie", "doughnut")


@dataclass(frozen=True)
class ChartPoint:
    label: str
    value: float

    def to_dict(self) -> dict[str, Any]:
        return {"label": self.label, "value": self.value}


@dataclass(frozen=True)
class Chart:
    id: str
    title: str
    type: str
    data: tuple[ChartPoint, ...]
    x_axis_label: str | None = None
    y_axis_label: str | None = None

    def __post_init__(self) -> None:
        if self.type not in CHART_TYPES:
            raise ValueError(f"unsupported chart type: {self.type}")

    @property
    def labels(self) -> list[str]:
        return [p.label for p in self.data]

    @property
    def values(self) -> list[float]:
        return [p.value for p in self.data]

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "type": self.type,
            "data": [p.to_dict() for p in self.data],
        }
        if self.x_axis_label is not None:
            data["xAxisLabel"] = self.x_axis_label
        if self.y_axis_label is not None:
            data["yAxisLabel"] = self.y_axis_label
        return data


@dataclass(frozen=True)
class ComparisonChart:
    id: str
    title: str
    type: str  # grouped_bar / bar
    data: tuple[dict[str, Any], ...]
    series: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "type": self.type,
            "data": [dict(d) for d in self.data],
        }
        if self.series:
            data["series"] = list(self.series)
        return data
