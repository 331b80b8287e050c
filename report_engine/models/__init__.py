"""Domain models for the spreadsheet report engine.

Sheet models describe raw and normalized data; the remaining models are the
payloads handed to narration and rendering collaborators.
"""

from .chart import Chart, ChartPoint, ComparisonChart
from .comparison import ComparisonResult, Insight, MultiComparisonResult
from .config_models import AnalysisSettings, EngineConfig
from .metric import Metric
from .report import PreviewTable, ReportMeta, ReportPayload
from .sheet import (
    CellValue,
    ExtractedMetric,
    FormatDecision,
    NormalizedTable,
    RawSheet,
    SectionEntry,
    SheetFormat,
    SheetMeta,
    SubTable,
)
from .template import ChartSpec, KpiFormula, KpiSpec, Template
from .trend import TrendAnalysis

__all__ = [
    # Configuration models
    "AnalysisSettings",
    "EngineConfig",
    # Sheet models
    "CellValue",
    "RawSheet",
    "SheetFormat",
    "FormatDecision",
    "NormalizedTable",
    "ExtractedMetric",
    "SectionEntry",
    "SubTable",
    "SheetMeta",
    # Analytics payloads
    "Metric",
    "Chart",
    "ChartPoint",
    "ComparisonChart",
    "ComparisonResult",
    "MultiComparisonResult",
    "Insight",
    "TrendAnalysis",
    # Templates
    "Template",
    "KpiSpec",
    "KpiFormula",
    "ChartSpec",
    # Report
    "ReportMeta",
    "PreviewTable",
    "ReportPayload",
]
