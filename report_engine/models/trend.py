from __future__ import annotations

from dataclasses import dataclass
from typing import Any

"""Trend analysis result models."""

__all__ = [
    "PeriodGrowth",
    "GrowthSummary",
    "GrowthRates",
    "Anomaly",
    "SeriesStats",
    "AnomalyReport",
    "ForecastPoint",
    "RegressionModel",
    "Forecast",
    "Pattern",
    "TrendClassification",
    "PeriodComparison",
    "TrendAnalysis",
]


@dataclass(frozen=True)
class PeriodGrowth:
    date: Any
    value: float
    previous_value: float
    growth_rate: float
    direction: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "value": self.value,
            "previousValue": self.previous_value,
            "growthRate": self.growth_rate,
            "direction": self.direction,
        }


@dataclass(frozen=True)
class GrowthSummary:
    average_growth_rate: float = 0.0
    compound_growth_rate: float = 0.0
    total_growth: float = 0.0
    start_value: float = 0.0
    end_value: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "averageGrowthRate": self.average_growth_rate,
            "compoundGrowthRate": self.compound_growth_rate,
            "totalGrowth": self.total_growth,
            "startValue": self.start_value,
            "endValue": self.end_value,
        }


@dataclass(frozen=True)
class GrowthRates:
    periods: tuple[PeriodGrowth, ...] = ()
    summary: GrowthSummary = GrowthSummary()

    def to_dict(self) -> dict[str, Any]:
        return {"periods": [p.to_dict() for p in self.periods], "summary": self.summary.to_dict()}


@dataclass(frozen=True)
class Anomaly:
    index: int
    value: float
    z_score: float
    type: str  # high / low
    deviation: float
    deviation_percent: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "value": self.value,
            "zScore": self.z_score,
            "type": self.type,
            "deviation": self.deviation,
            "deviationPercent": self.deviation_percent,
        }


@dataclass(frozen=True)
class SeriesStats:
    mean: float
    std_dev: float
    min: float
    max: float
    threshold: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "mean": self.mean,
            "stdDev": self.std_dev,
            "min": self.min,
            "max": self.max,
            "threshold": self.threshold,
        }


@dataclass(frozen=True)
class AnomalyReport:
    anomalies: tuple[Anomaly, ...] = ()
    stats: SeriesStats | None = None  # None when fewer than 3 points

    def to_dict(self) -> dict[str, Any]:
        return {
            "anomalies": [a.to_dict() for a in self.anomalies],
            "stats": self.stats.to_dict() if self.stats else None,
        }


@dataclass(frozen=True)
class ForecastPoint:
    period: int
    predicted_value: float  # never negative
    trend: str

    def to_dict(self) -> dict[str, Any]:
        return {"period": self.period, "predictedValue": self.predicted_value, "trend": self.trend}


@dataclass(frozen=True)
class RegressionModel:
    slope: float
    intercept: float
    r_squared: float

    def to_dict(self) -> dict[str, Any]:
        return {"slope": self.slope, "intercept": self.intercept, "rSquared": self.r_squared}


@dataclass(frozen=True)
class Forecast:
    predictions: tuple[ForecastPoint, ...] = ()
    model: RegressionModel | None = None
    confidence: str = "low"  # high / medium / low
    trend_direction: str | None = None  # upward / downward / flat

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "predictions": [p.to_dict() for p in self.predictions],
            "model": self.model.to_dict() if self.model else None,
            "confidence": self.confidence,
        }
        if self.trend_direction is not None:
            data["trendDirection"] = self.trend_direction
        return data


@dataclass(frozen=True)
class Pattern:
    type: str  # volatility / momentum / warning
    description: str
    length: int | None = None  # run length for momentum / warning

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": self.type, "description": self.description}
        if self.length is not None:
            data["length"] = self.length
        return data


@dataclass(frozen=True)
class TrendClassification:
    trend: str
    patterns: tuple[Pattern, ...] = ()
    change_percent: float = 0.0
    first_half_average: float = 0.0
    second_half_average: float = 0.0
    period_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "trend": self.trend,
            "changePercent": self.change_percent,
            "patterns": [p.to_dict() for p in self.patterns],
            "summary": {
                "firstPeriodAvg": self.first_half_average,
                "secondPeriodAvg": self.second_half_average,
                "periodCount": self.period_count,
            },
        }


@dataclass(frozen=True)
class PeriodComparison:
    current: float
    previous: float
    absolute_change: float
    percentage_change: float
    direction: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "current": self.current,
            "previous": self.previous,
            "absoluteChange": self.absolute_change,
            "percentageChange": self.percentage_change,
            "direction": self.direction,
        }


@dataclass(frozen=True)
class TrendAnalysis:
    date_column: str
    value_column: str
    growth_rates: GrowthRates
    anomalies: AnomalyReport
    forecast: Forecast
    trend_classification: TrendClassification
    moving_average: tuple[float | None, ...]
    period_comparison: PeriodComparison | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "dateColumn": self.date_column,
            "valueColumn": self.value_column,
            "periodComparison": self.period_comparison.to_dict() if self.period_comparison else None,
            "growthRates": self.growth_rates.to_dict(),
            "anomalies": self.anomalies.to_dict(),
            "forecast": self.forecast.to_dict(),
            "trends": self.trend_classification.to_dict(),
            "movingAverage": list(self.moving_average),
        }
