from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .chart import Chart
from .metric import Metric
from .trend import TrendAnalysis

"""Report payload models.

The payload is what leaves the engine: narration and rendering collaborators
receive ``ReportPayload.to_dict()`` and treat every number in it as final.
"""

__all__ = [
    "ReportMeta",
    "PreviewTable",
    "ReportPayload",
]


@dataclass(frozen=True)
class ReportMeta:
    client: str
    period: str
    report_type: str
    generated_at: str  # ISO8601 UTC, 'Z' suffix
    template_id: str | None = None
    template_name: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "client": self.client,
            "period": self.period,
            "reportType": self.report_type,
            "generatedAt": self.generated_at,
        }
        if self.template_id is not None:
            data["templateId"] = self.template_id
            data["templateUsed"] = self.template_name or "Custom"
        return data


@dataclass(frozen=True)
class PreviewTable:
    """Bounded preview of the source data (20 rows horizontal / 30 vertical)."""
    name: str
    columns: tuple[str, ...]
    rows: tuple[dict[str, Any], ...]

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "columns": list(self.columns), "rows": [dict(r) for r in self.rows]}


@dataclass(frozen=True)
class ReportPayload:
    meta: ReportMeta
    metrics: tuple[Metric, ...]
    tables: tuple[PreviewTable, ...]
    charts: tuple[Chart, ...]
    trend_analysis: TrendAnalysis | None = None
    source_format: str = "horizontal"
    row_count: int = 0
    notes: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "meta": self.meta.to_dict(),
            "metrics": [m.to_dict() for m in self.metrics],
            "tables": [t.to_dict() for t in self.tables],
            "charts": [c.to_dict() for c in self.charts],
            "trendAnalysis": self.trend_analysis.to_dict() if self.trend_analysis else None,
            "notes": self.notes,
        }

    def summary(self) -> dict[str, Any]:
        return {
            "format": self.source_format,
            "rowCount": self.row_count,
            "metricsCount": len(self.metrics),
            "chartsCount": len(self.charts),
            "hasTrendAnalysis": self.trend_analysis is not None,
        }
