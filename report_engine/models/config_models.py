from __future__ import annotations

from dataclasses import dataclass, field

"""Config dataclasses for the report engine.

AnalysisSettings is the only part the analytics core sees; the rest is used
by the batch runner and CLI.
"""


@dataclass(frozen=True)
class AnalysisSettings:
    """Tunable knobs for metric/trend computation."""
    anomaly_threshold: float = 2.0  # |z| at or above this is an anomaly
    forecast_periods: int = 3
    moving_average_window: int = 3
    enable_trend_analysis: bool = True
    auto_detect_template: bool = True
    preview_horizontal_rows: int = 20
    preview_vertical_rows: int = 30


@dataclass(frozen=True)
class EngineConfig:
    """Root configuration object loaded from config/engine.yml."""
    output_directory: str
    logs_directory: str = "./logs"
    keep_na_strings: list[str] | None = None  # strings pandas must not turn into NaN
    analysis: AnalysisSettings = field(default_factory=AnalysisSettings)
