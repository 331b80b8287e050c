from __future__ import annotations

import logging
import math
from collections.abc import Mapping, Sequence
from typing import Any

from ..excel.cells import format_column_name, round_number, slugify, strip_number, to_float
from ..models.metric import Metric
from ..models.sheet import NormalizedTable, SubTable
from ..models.template import KpiFormula, KpiSpec, Template
from .templates import CUSTOM_CALCULATIONS

"""Metric calculation over a NormalizedTable.

Horizontal tables get Total/Average (and Highest/Lowest when the column
varies) for every numeric column, plus report-type extras. Vertical tables
reuse the extracted label/value metrics and expand embedded sub-tables.
Ratios never divide by zero: an empty or zero denominator yields 0.
"""

__all__ = [
    "METRIC_SAMPLE_ROWS",
    "SUB_TABLE_NUMERIC_KEYWORDS",
    "infer_unit",
    "numeric_columns",
    "column_values",
    "calculate_metrics",
    "calculate_template_kpis",
]

logger = logging.getLogger(__name__)

METRIC_SAMPLE_ROWS = 10

SUB_TABLE_NUMERIC_KEYWORDS = (
    "impression", "click", "view", "ctr", "rate", "user",
    "total", "unique", "value", "amount", "count",
)

_UNIT_KEYWORDS = (
    ("$", ("revenue", "cost", "price", "amount", "profit", "sales")),
    ("%", ("percent", "rate", "margin")),
    ("units", ("quantity", "count", "units", "stock")),
)


def infer_unit(column: str) -> str:
    lowered = column.lower()
    for unit, keywords in _UNIT_KEYWORDS:
        if any(k in lowered for k in keywords):
            return unit
    return ""


def numeric_columns(table: NormalizedTable, sample_rows: int = METRIC_SAMPLE_ROWS) -> list[str]:
    """Columns where at least one of the first ``sample_rows`` values parses as a number."""
    sample = table.rows[:sample_rows]
    return [c for c in table.columns if any(to_float(r.get(c)) is not None for r in sample)]


def column_values(rows: Sequence[Mapping[str, Any]], column: str) -> list[float]:
    """Parseable values of a column; unparseable cells are excluded, not zeroed."""
    values = []
    for row in rows:
        v = to_float(row.get(column))
        if v is not None:
            values.append(v)
    return values


def _column_total(rows: Sequence[Mapping[str, Any]], column: str) -> float:
    return sum(column_values(rows, column))


def _has_column(table: NormalizedTable, column: str) -> bool:
    return column in table.columns


# --- horizontal ---------------------------------------------------------------

def _column_metrics(table: NormalizedTable) -> list[Metric]:
    metrics: list[Metric] = []
    for col in numeric_columns(table):
        values = column_values(table.rows, col)
        if not values:
            continue
        total = sum(values)
        low, high = min(values), max(values)
        unit = infer_unit(col)
        label = format_column_name(col)
        metrics.append(Metric(f"Total {label}", round_number(total), unit))
        metrics.append(Metric(f"Average {label}", round_number(total / len(values)), unit))
        if high > low:
            metrics.append(Metric(f"Highest {label}", round_number(high), unit))
            metrics.append(Metric(f"Lowest {label}", round_number(low), unit))
    return metrics


def _sales_metrics(table: NormalizedTable) -> list[Metric]:
    metrics: list[Metric] = []
    rows = table.rows
    if _has_column(table, "revenue") and _has_column(table, "cost"):
        revenue = _column_total(rows, "revenue")
        cost = _column_total(rows, "cost")
        margin = (revenue - cost) / revenue * 100 if revenue > 0 else 0.0
        metrics.append(Metric("Profit Margin", round_number(margin), "%"))
    if _has_column(table, "quantity"):
        units = sum(math.trunc(v) for v in column_values(rows, "quantity"))
        metrics.append(Metric("Total Units Sold", units, "units"))
    return metrics


def _financial_metrics(table: NormalizedTable) -> list[Metric]:
    if not (_has_column(table, "category") and _has_column(table, "amount")):
        return []
    totals: dict[str, float] = {}
    for row in table.rows:
        category = str(row.get("category") or "Uncategorized")
        totals[category] = totals.get(category, 0.0) + (to_float(row.get("amount")) or 0.0)
    if not totals:
        return []
    # max() keeps the first category on ties
    largest = max(totals.values(), key=abs)
    return [Metric("Largest Category", round_number(abs(largest)), "$")]


def _marketing_metrics(table: NormalizedTable) -> list[Metric]:
    metrics: list[Metric] = []
    rows = table.rows
    if _has_column(table, "impressions") and _has_column(table, "clicks"):
        impressions = _column_total(rows, "impressions")
        clicks = _column_total(rows, "clicks")
        ctr = clicks / impressions * 100 if impressions > 0 else 0.0
        metrics.append(Metric("Click-Through Rate", round_number(ctr), "%"))
    if _has_column(table, "clicks") and _has_column(table, "conversions"):
        clicks = _column_total(rows, "clicks")
        conversions = _column_total(rows, "conversions")
        rate = conversions / clicks * 100 if clicks > 0 else 0.0
        metrics.append(Metric("Conversion Rate", round_number(rate), "%"))
    return metrics


_REPORT_TYPE_METRICS = {
    "sales": _sales_metrics,
    "financial": _financial_metrics,
    "marketing": _marketing_metrics,
}


# --- vertical -----------------------------------------------------------------

def _is_noise(raw_value: Any, value: float) -> bool:
    # text cells parsed to 0 are labels, not metrics
    return value == 0 and raw_value not in (None, "") and strip_number(raw_value) is None


def _sub_table_metrics(section_name: str, table: SubTable) -> list[Metric]:
    numeric_headers = [
        h for h in table.headers
        if any(k in h.lower() for k in SUB_TABLE_NUMERIC_KEYWORDS)
    ]
    if not table.rows or not numeric_headers:
        return []
    label_key = next(iter(table.rows[0]))
    section = section_name.removesuffix("_table")
    metrics: list[Metric] = []
    for row in table.rows:
        label = row.get(label_key)
        if label in (None, ""):
            continue
        for header in numeric_headers:
            raw = row.get(slugify(header))
            value = strip_number(raw)
            if value is None or value == 0:
                continue
            unit = "%" if "%" in str(raw) else ""
            metrics.append(Metric(f"{label} - {header}", round_number(value), unit, section=section))
    return metrics


def _vertical_metrics(table: NormalizedTable) -> list[Metric]:
    metrics = [
        Metric(m.name, m.value, m.unit, section=m.section)
        for m in table.extracted_metrics
        if not _is_noise(m.raw_value, m.value)
    ]
    for name, sub_table in table.sub_tables():
        metrics.extend(_sub_table_metrics(name, sub_table))
    return metrics


def calculate_metrics(table: NormalizedTable, report_type: str | None = None) -> list[Metric]:
    """Standard metrics for a table, in emission order."""
    if table.is_vertical:
        metrics = _vertical_metrics(table)
    else:
        metrics = _column_metrics(table)
        extra = _REPORT_TYPE_METRICS.get(report_type or "")
        if extra is not None:
            metrics.extend(extra(table))
    logger.debug(f"calculated {len(metrics)} metrics ({table.format.value}, type={report_type})")
    return metrics


# --- template KPIs ------------------------------------------------------------

def _kpi_value(kpi: KpiSpec, rows: Sequence[Mapping[str, Any]]) -> float | None:
    if kpi.formula is KpiFormula.SUM:
        return sum(to_float(r.get(kpi.column)) or 0.0 for r in rows)
    if kpi.formula is KpiFormula.AVERAGE:
        total = sum(to_float(r.get(kpi.column)) or 0.0 for r in rows)
        return total / len(rows) if rows else 0.0
    if kpi.formula is KpiFormula.COUNT:
        return float(len(rows))
    if kpi.formula is KpiFormula.GROWTH_RATE:
        if len(rows) < 2:
            return None
        first = to_float(rows[0].get(kpi.column)) or 0.0
        last = to_float(rows[-1].get(kpi.column)) or 0.0
        return (last - first) / first * 100 if first > 0 else 0.0
    calc = CUSTOM_CALCULATIONS.get(kpi.calc or "")
    if calc is None:
        logger.warning(f"kpi '{kpi.id}': unknown calculation '{kpi.calc}'")
        return None
    try:
        return calc(rows)
    except (ArithmeticError, KeyError, TypeError, ValueError) as e:
        logger.warning(f"kpi '{kpi.id}' dropped: {type(e).__name__}: {e}")
        return None


def calculate_template_kpis(template: Template, rows: Sequence[Mapping[str, Any]]) -> list[Metric]:
    """Template KPIs over raw rows in their natural order.

    A KPI whose result is missing, non-numeric or NaN is dropped on its own.
    """
    kpis: list[Metric] = []
    for kpi in template.kpis:
        value = _kpi_value(kpi, rows)
        if isinstance(value, bool) or not isinstance(value, (int, float)) or math.isnan(value):
            continue
        kpis.append(Metric(kpi.name, round_number(value), kpi.unit, is_template_kpi=True))
    return kpis
