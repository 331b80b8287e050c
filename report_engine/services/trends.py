from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from typing import Any

import numpy as np
import pandas as pd

from ..excel.cells import parse_date, round_number, to_float
from ..models.comparison import ComparisonResult
from ..models.sheet import NormalizedTable
from ..models.trend import (
    Anomaly,
    AnomalyReport,
    Forecast,
    ForecastPoint,
    GrowthRates,
    GrowthSummary,
    Pattern,
    PeriodComparison,
    PeriodGrowth,
    RegressionModel,
    SeriesStats,
    TrendAnalysis,
    TrendClassification,
)
from .comparison import DEFAULT_LABELS, compare_datasets

"""Time-series trend analysis.

Every function walks rows in the order given; none of them sorts. Callers
that need chronological results sort by date first. Unparseable values
count as 0.
"""

__all__ = [
    "MIN_POINTS",
    "PERIOD_TYPES",
    "INSUFFICIENT_PERIODS",
    "series_values",
    "period_comparison",
    "growth_rates",
    "detect_anomalies",
    "forecast",
    "moving_average",
    "classify_trend",
    "analyze",
    "sort_by_date",
    "period_key",
    "compare_periods",
]

logger = logging.getLogger(__name__)

MIN_POINTS = 3
MIN_RUN = 3
INSUFFICIENT_PERIODS = "insufficient periods"

Rows = Sequence[Mapping[str, Any]]


def _direction(value: float) -> str:
    if value > 0:
        return "up"
    if value < 0:
        return "down"
    return "neutral"


def series_values(rows: Rows, value_column: str) -> list[float]:
    return [to_float(r.get(value_column)) or 0.0 for r in rows]


def period_comparison(current_rows: Rows, previous_rows: Rows | None, value_column: str) -> PeriodComparison:
    """Totals of two periods; the percentage is 0 when the previous total is not positive."""
    current = sum(series_values(current_rows, value_column))
    previous = sum(series_values(previous_rows or (), value_column))
    absolute = current - previous
    percentage = absolute / previous * 100 if previous > 0 else 0.0
    return PeriodComparison(
        current=round_number(current),
        previous=round_number(previous),
        absolute_change=round_number(absolute),
        percentage_change=round_number(percentage),
        direction=_direction(absolute),
    )


def growth_rates(rows: Rows, date_column: str, value_column: str) -> GrowthRates:
    """Period-over-period growth plus average and compound growth."""
    values = series_values(rows, value_column)
    if len(values) < 2:
        return GrowthRates()

    periods: list[PeriodGrowth] = []
    for i in range(1, len(values)):
        prev, cur = values[i - 1], values[i]
        rate = (cur - prev) / prev * 100 if prev > 0 else 0.0
        periods.append(
            PeriodGrowth(
                date=rows[i].get(date_column),
                value=round_number(cur),
                previous_value=round_number(prev),
                growth_rate=round_number(rate),
                direction=_direction(rate),
            )
        )

    first, last = values[0], values[-1]
    n_periods = len(values) - 1
    if first > 0 and last >= 0:
        cagr = ((last / first) ** (1 / n_periods) - 1) * 100
    else:
        cagr = 0.0
    total = (last - first) / first * 100 if first > 0 else 0.0
    summary = GrowthSummary(
        average_growth_rate=round_number(sum(p.growth_rate for p in periods) / len(periods)),
        compound_growth_rate=round_number(cagr),
        total_growth=round_number(total),
        start_value=round_number(first),
        end_value=round_number(last),
    )
    return GrowthRates(periods=tuple(periods), summary=summary)


def detect_anomalies(rows: Rows, value_column: str, threshold: float = 2.0) -> AnomalyReport:
    """Z-score outliers against the population mean and standard deviation.

    A point is flagged when |z| reaches the threshold. Fewer than three points
    yield no anomalies and no stats.
    """
    values = np.asarray(series_values(rows, value_column), dtype=float)
    if values.size < MIN_POINTS:
        return AnomalyReport()

    mean = float(values.mean())
    std = float(values.std())  # ddof=0
    anomalies: list[Anomaly] = []
    for index, value in enumerate(values.tolist()):
        z = (value - mean) / std if std > 0 else 0.0
        if std > 0 and abs(z) >= threshold:
            deviation = abs(value - mean)
            anomalies.append(
                Anomaly(
                    index=index,
                    value=round_number(value),
                    z_score=round_number(z),
                    type="high" if z > 0 else "low",
                    deviation=round_number(deviation),
                    deviation_percent=round_number(deviation / mean * 100 if mean > 0 else 0.0),
                )
            )
    stats = SeriesStats(
        mean=round_number(mean),
        std_dev=round_number(std),
        min=round_number(float(values.min())),
        max=round_number(float(values.max())),
        threshold=threshold,
    )
    return AnomalyReport(anomalies=tuple(anomalies), stats=stats)


def _confidence(r_squared: float) -> str:
    if r_squared > 0.7:
        return "high"
    if r_squared > 0.4:
        return "medium"
    return "low"


def forecast(rows: Rows, value_column: str, periods_ahead: int = 3) -> Forecast:
    """Least-squares line over the row index, projected ``periods_ahead`` steps.

    Predictions are clamped at 0.
    """
    y = np.asarray(series_values(rows, value_column), dtype=float)
    n = y.size
    if n < MIN_POINTS:
        return Forecast()

    x = np.arange(n, dtype=float)
    x_mean, y_mean = x.mean(), y.mean()
    denominator = float(((x - x_mean) ** 2).sum())
    slope = float(((x - x_mean) * (y - y_mean)).sum()) / denominator if denominator > 0 else 0.0
    intercept = float(y_mean) - slope * float(x_mean)

    ss_total = float(((y - y_mean) ** 2).sum())
    ss_residual = float(((y - (intercept + slope * x)) ** 2).sum())
    r_squared = 1 - ss_residual / ss_total if ss_total > 0 else 0.0

    if slope > 0:
        step_trend, direction = "increasing", "upward"
    elif slope < 0:
        step_trend, direction = "decreasing", "downward"
    else:
        step_trend, direction = "stable", "flat"

    predictions = tuple(
        ForecastPoint(
            period=i,
            predicted_value=round_number(max(0.0, intercept + slope * (n - 1 + i))),
            trend=step_trend,
        )
        for i in range(1, periods_ahead + 1)
    )
    return Forecast(
        predictions=predictions,
        model=RegressionModel(
            slope=round_number(slope),
            intercept=round_number(intercept),
            r_squared=round_number(r_squared),
        ),
        confidence=_confidence(r_squared),
        trend_direction=direction,
    )


def moving_average(rows: Rows, value_column: str, window: int = 3) -> list[float | None]:
    """Trailing simple moving average; the first ``window - 1`` entries are None."""
    if window < 1:
        raise ValueError(f"window must be >= 1: {window}")
    values = series_values(rows, value_column)
    result: list[float | None] = []
    for i in range(len(values)):
        if i < window - 1:
            result.append(None)
        else:
            result.append(round_number(sum(values[i - window + 1:i + 1]) / window))
    return result


def _first_run(values: Sequence[float], rising: bool) -> int | None:
    """Length (in steps) of the first run of at least 3 strict moves in one direction."""
    run = 0
    for prev, cur in zip(values, values[1:]):
        moved = cur > prev if rising else cur < prev
        if moved:
            run += 1
            continue
        if run >= MIN_RUN:
            return run
        run = 0
    return run if run >= MIN_RUN else None


_TREND_BANDS = (
    (10.0, "strong_growth"),
    (3.0, "moderate_growth"),
    (-3.0, "stable"),
    (-10.0, "moderate_decline"),
)


def classify_trend(rows: Rows, value_column: str) -> TrendClassification:
    values = series_values(rows, value_column)
    n = len(values)
    if n < MIN_POINTS:
        return TrendClassification(trend="insufficient_data", period_count=n)

    half = n // 2
    first_avg = sum(values[:half]) / half
    second_avg = sum(values[half:]) / (n - half)
    change = (second_avg - first_avg) / first_avg * 100 if first_avg > 0 else 0.0
    trend = next((name for floor, name in _TREND_BANDS if change > floor), "strong_decline")

    patterns: list[Pattern] = []
    if n >= 6:
        diffs = [b - a for a, b in zip(values, values[1:])]
        positive = sum(1 for d in diffs if d > 0)
        negative = sum(1 for d in diffs if d < 0)
        if abs(positive - negative) < n / 4:
            patterns.append(Pattern("volatility", "High variability in values"))
    growth_run = _first_run(values, rising=True)
    if growth_run is not None:
        patterns.append(Pattern("momentum", f"{growth_run} consecutive periods of growth", growth_run))
    decline_run = _first_run(values, rising=False)
    if decline_run is not None:
        patterns.append(Pattern("warning", f"{decline_run} consecutive periods of decline", decline_run))

    return TrendClassification(
        trend=trend,
        patterns=tuple(patterns),
        change_percent=round_number(change),
        first_half_average=round_number(first_avg),
        second_half_average=round_number(second_avg),
        period_count=n,
    )


def analyze(
    rows: Rows,
    date_column: str,
    value_column: str,
    *,
    previous_rows: Rows | None = None,
    anomaly_threshold: float = 2.0,
    forecast_periods: int = 3,
    moving_average_window: int = 3,
) -> TrendAnalysis:
    """Full trend analysis over rows in the given order."""
    logger.debug(f"trend analysis: {len(rows)} rows, {date_column} -> {value_column}")
    return TrendAnalysis(
        date_column=date_column,
        value_column=value_column,
        growth_rates=growth_rates(rows, date_column, value_column),
        anomalies=detect_anomalies(rows, value_column, anomaly_threshold),
        forecast=forecast(rows, value_column, forecast_periods),
        trend_classification=classify_trend(rows, value_column),
        moving_average=tuple(moving_average(rows, value_column, moving_average_window)),
        period_comparison=(
            period_comparison(rows, previous_rows, value_column) if previous_rows is not None else None
        ),
    )


def sort_by_date(rows: Rows, date_column: str) -> list[Mapping[str, Any]]:
    """Stable chronological sort; rows without a parseable date go last, in order."""
    def key(row: Mapping[str, Any]) -> tuple[bool, pd.Timestamp]:
        ts = parse_date(row.get(date_column))
        return (ts is None, ts if ts is not None else pd.Timestamp.min)

    return sorted(rows, key=key)


def _iso_week(ts: pd.Timestamp) -> str:
    year, week, _ = ts.isocalendar()
    return f"{year}-W{week:02d}"


PERIOD_TYPES: Mapping[str, Callable[[pd.Timestamp], str]] = {
    "day": lambda ts: ts.strftime("%Y-%m-%d"),
    "week": _iso_week,
    "month": lambda ts: ts.strftime("%Y-%m"),
    "quarter": lambda ts: f"{ts.year} Q{(ts.month - 1) // 3 + 1}",
    "year": lambda ts: str(ts.year),
}


def _check_period_type(period_type: str) -> None:
    if period_type not in PERIOD_TYPES:
        raise ValueError(f"unknown period type '{period_type}' (expected one of: {', '.join(PERIOD_TYPES)})")


def period_key(value: Any, period_type: str) -> str | None:
    _check_period_type(period_type)
    ts = parse_date(value)
    return PERIOD_TYPES[period_type](ts) if ts is not None else None


def compare_periods(rows: Rows, date_column: str, period_type: str = "month") -> ComparisonResult:
    """Compare the two most recent period buckets (previous -> current).

    Rows whose date does not parse are skipped. Fewer than two buckets give a
    result whose ``error`` is set instead of raising; an unknown
    ``period_type`` raises ValueError regardless of the rows.
    """
    _check_period_type(period_type)
    dated = []
    for row in rows:
        ts = parse_date(row.get(date_column))
        if ts is not None:
            dated.append((ts, row))
    dated.sort(key=lambda pair: pair[0])

    groups: dict[str, list[Mapping[str, Any]]] = {}
    for ts, row in dated:
        key = period_key(ts, period_type)
        groups.setdefault(key, []).append(row)

    if len(groups) < 2:
        logger.info(f"period comparison skipped: {len(groups)} {period_type} period(s) found")
        return ComparisonResult(labels=DEFAULT_LABELS, error=INSUFFICIENT_PERIODS)

    previous_key, current_key = sorted(groups)[-2:]
    columns: list[str] = []
    for row in rows:
        columns.extend(c for c in row if c not in columns)
    previous = NormalizedTable(columns=tuple(columns), rows=tuple(dict(r) for r in groups[previous_key]))
    current = NormalizedTable(columns=tuple(columns), rows=tuple(dict(r) for r in groups[current_key]))
    return compare_datasets(previous, current, labels=(previous_key, current_key))
