from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .chart import ComparisonChart

"""Comparison result models for the compare and period-comparison workflows."""

__all__ = [
    "ColumnSummary",
    "ColumnDelta",
    "DetailRow",
    "Insight",
    "ComparisonResult",
    "ColumnRanking",
    "RankedLabel",
    "MultiComparisonResult",
]


@dataclass(frozen=True)
class ColumnSummary:
    """Totals of one column across both datasets."""
    value_a: float
    value_b: float
    absolute_change: float
    percentage_change: float
    direction: str  # up / down / neutral

    def to_dict(self, labels: tuple[str, str] | None = None) -> dict[str, Any]:
        data: dict[str, Any] = {
            "valueA": self.value_a,
            "valueB": self.value_b,
            "absoluteChange": self.absolute_change,
            "percentageChange": self.percentage_change,
            "direction": self.direction,
        }
        if labels is not None:
            data[labels[0]] = self.value_a
            data[labels[1]] = self.value_b
        return data


@dataclass(frozen=True)
class ColumnDelta:
    value_a: float
    value_b: float
    change: float
    direction: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "valueA": self.value_a,
            "valueB": self.value_b,
            "change": self.change,
            "direction": self.direction,
        }


@dataclass(frozen=True)
class DetailRow:
    """Per-key deltas for a primary-key join.

    status: both / only_first / only_second
    comparisons keep compare-column order; the first entry drives sorting.
    """
    key: Any
    status: str
    comparisons: dict[str, ColumnDelta]

    @property
    def primary_delta(self) -> ColumnDelta | None:
        return next(iter(self.comparisons.values()), None)

    def to_dict(self, primary_key: str) -> dict[str, Any]:
        return {
            primary_key: self.key,
            "status": self.status,
            "comparisons": {col: d.to_dict() for col, d in self.comparisons.items()},
        }


@dataclass(frozen=True)
class Insight:
    type: str  # positive / negative
    metric: str
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "metric": self.metric, "message": self.message}


@dataclass(frozen=True)
class ComparisonResult:
    labels: tuple[str, str]
    summary: dict[str, ColumnSummary] = field(default_factory=dict)
    details: tuple[DetailRow, ...] = ()
    charts: tuple[ComparisonChart, ...] = ()
    insights: tuple[Insight, ...] = ()
    primary_key: str | None = None
    error: str | None = None  # set when the comparison could not be made

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        if self.error is not None:
            return {"error": self.error}
        return {
            "labels": list(self.labels),
            "summary": {col: s.to_dict(self.labels) for col, s in self.summary.items()},
            "details": [d.to_dict(self.primary_key or "key") for d in self.details],
            "charts": [c.to_dict() for c in self.charts],
            "insights": [i.to_dict() for i in self.insights],
        }


@dataclass(frozen=True)
class RankedLabel:
    label: str
    total: float


@dataclass(frozen=True)
class ColumnRanking:
    values: dict[str, float]  # dataset label -> total
    ranking: tuple[str, ...]  # labels, highest total first
    highest: RankedLabel
    lowest: RankedLabel
    average: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "values": dict(self.values),
            "ranking": list(self.ranking),
            "highest": {"label": self.highest.label, "total": self.highest.total},
            "lowest": {"label": self.lowest.label, "total": self.lowest.total},
            "average": self.average,
        }


@dataclass(frozen=True)
class MultiComparisonResult:
    summary: dict[str, ColumnRanking]
    rankings: tuple[dict[str, Any], ...]  # {rank, label, score}

    def to_dict(self) -> dict[str, Any]:
        return {
            "summary": {col: r.to_dict() for col, r in self.summary.items()},
            "rankings": [dict(r) for r in self.rankings],
        }
