from __future__ import annotations

import logging

from ..excel.cells import cell_text, format_column_name, round_number, strip_number, to_float
from ..models.chart import Chart, ChartPoint
from ..models.sheet import ExtractedMetric, NormalizedTable, SubTable
from .metrics import numeric_columns

"""Chart data builder.

Chart ids are stable and consumed by the renderer:

- vertical: main-metrics-bar, ``<section>_table-chart``, percentage-metrics
- horizontal: main-bar-chart, distribution-pie-chart, trend-line-chart
"""

__all__ = [
    "CHART_SAMPLE_ROWS",
    "LABEL_KEYWORDS",
    "build_charts",
]

logger = logging.getLogger(__name__)

CHART_SAMPLE_ROWS = 5
LABEL_KEYWORDS = ("product", "category", "campaign", "name", "region", "month")
_DATE_KEYWORDS = ("date", "month", "period")
_MAIN_SECTIONS = ("main", "summary_statistics")

MAX_BAR_POINTS = 10
MAX_LINE_POINTS = 12
MAX_MAIN_METRICS = 8
MAX_PERCENT_METRICS = 6
PIE_RANGE = (2, 8)
SUB_TABLE_PIE_MAX = 6


# --- vertical -----------------------------------------------------------------

def _main_metrics_chart(metrics: tuple[ExtractedMetric, ...]) -> Chart | None:
    by_section: dict[str, list[ExtractedMetric]] = {}
    for m in metrics:
        if m.value != 0:
            by_section.setdefault(m.section, []).append(m)
    main: list[ExtractedMetric] = []
    for name in _MAIN_SECTIONS:
        if by_section.get(name):
            main = by_section[name]
            break
    chosen = [m for m in main if m.unit != "%" and m.value > 0][:MAX_MAIN_METRICS]
    if len(chosen) < 2:
        return None
    return Chart(
        id="main-metrics-bar",
        title="Key Metrics Overview",
        type="bar",
        data=tuple(ChartPoint(m.name, round_number(m.value)) for m in chosen),
    )


def _sub_table_chart(section_name: str, table: SubTable) -> Chart | None:
    if len(table.rows) < 2:
        return None
    first = table.rows[0]
    keys = list(first)
    label_key = keys[0]
    value_key = next((k for k in keys[1:] if strip_number(first[k]) is not None), None)
    if value_key is None:
        return None
    points = []
    for row in table.rows[:MAX_BAR_POINTS]:
        value = strip_number(row.get(value_key)) or 0.0
        if value != 0:
            points.append(ChartPoint(cell_text(row.get(label_key)) or "Unknown", value))
    if len(points) < 2:
        return None
    section_title = section_name.removesuffix("_table").replace("_", " ")
    return Chart(
        id=f"{section_name}-chart",
        title=f"{format_column_name(section_title)} - {format_column_name(value_key)}",
        type="pie" if len(points) <= SUB_TABLE_PIE_MAX else "bar",
        data=tuple(points),
    )


def _percentage_chart(metrics: tuple[ExtractedMetric, ...]) -> Chart | None:
    chosen = [m for m in metrics if m.unit == "%" and 0 < m.value <= 100][:MAX_PERCENT_METRICS]
    if len(chosen) < 2:
        return None
    return Chart(
        id="percentage-metrics",
        title="Rate Metrics (%)",
        type="bar",
        data=tuple(ChartPoint(m.name, round_number(m.value)) for m in chosen),
    )


def _vertical_charts(table: NormalizedTable) -> list[Chart]:
    charts: list[Chart | None] = [_main_metrics_chart(table.extracted_metrics)]
    charts.extend(_sub_table_chart(name, sub) for name, sub in table.sub_tables())
    charts.append(_percentage_chart(table.extracted_metrics))
    return [c for c in charts if c is not None]


# --- horizontal ---------------------------------------------------------------

def _label_column(columns: tuple[str, ...]) -> str:
    for col in columns:
        if any(k in col for k in LABEL_KEYWORDS):
            return col
    return columns[0]


def _horizontal_charts(table: NormalizedTable) -> list[Chart]:
    if not table.columns:
        return []
    numeric = numeric_columns(table, CHART_SAMPLE_ROWS)
    if not numeric:
        return []
    label_column = _label_column(table.columns)
    primary = numeric[0]

    aggregated: dict[str, float] = {}
    for row in table.rows:
        label = cell_text(row.get(label_column)) or "Unknown"
        aggregated[label] = aggregated.get(label, 0.0) + (to_float(row.get(primary)) or 0.0)

    points = tuple(ChartPoint(label, round_number(v)) for label, v in list(aggregated.items())[:MAX_BAR_POINTS])
    charts = [
        Chart(
            id="main-bar-chart",
            title=f"{format_column_name(primary)} by {format_column_name(label_column)}",
            type="bar",
            data=points,
            x_axis_label=format_column_name(label_column),
            y_axis_label=format_column_name(primary),
        )
    ]
    if PIE_RANGE[0] <= len(points) <= PIE_RANGE[1]:
        charts.append(
            Chart(
                id="distribution-pie-chart",
                title=f"{format_column_name(primary)} Distribution",
                type="pie",
                data=points,
            )
        )

    date_column = next((c for c in table.columns if any(k in c for k in _DATE_KEYWORDS)), None)
    if date_column is not None:
        series: dict[str, float] = {}
        for row in table.rows:
            key = cell_text(row.get(date_column)) or "Unknown"
            series[key] = series.get(key, 0.0) + (to_float(row.get(primary)) or 0.0)
        ordered = sorted(series.items())[:MAX_LINE_POINTS]
        if len(ordered) >= 2:
            charts.append(
                Chart(
                    id="trend-line-chart",
                    title=f"{format_column_name(primary)} Over Time",
                    type="line",
                    data=tuple(ChartPoint(label, round_number(v)) for label, v in ordered),
                    x_axis_label=format_column_name(date_column),
                    y_axis_label=format_column_name(primary),
                )
            )
    return charts


def build_charts(table: NormalizedTable, report_type: str | None = None) -> list[Chart]:
    """Chart payloads for a table (report_type is accepted for API symmetry)."""
    charts = _vertical_charts(table) if table.is_vertical else _horizontal_charts(table)
    logger.debug(f"built {len(charts)} charts ({table.format.value}, type={report_type})")
    return charts
