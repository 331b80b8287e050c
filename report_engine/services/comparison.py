from __future__ import annotations

import logging
from collections.abc import Sequence

from ..excel.cells import format_column_name, round_number, to_float
from ..models.chart import ComparisonChart
from ..models.comparison import (
    ColumnDelta,
    ColumnRanking,
    ColumnSummary,
    ComparisonResult,
    DetailRow,
    Insight,
    MultiComparisonResult,
    RankedLabel,
)
from ..models.sheet import NormalizedTable

"""Dataset comparison engine.

Compares column totals between two normalized datasets and, when a primary
key is shared, joins them row by row. Percentage formulas follow one rule:
a zero or negative base yields 0 (summary) or 100/0 (row deltas), never an
error and never a non-finite value.
"""

__all__ = [
    "COMPARE_SAMPLE_ROWS",
    "DEFAULT_LABELS",
    "comparable_columns",
    "compare_datasets",
    "compare_many",
]

logger = logging.getLogger(__name__)

COMPARE_SAMPLE_ROWS = 5
DEFAULT_LABELS = ("Dataset 1", "Dataset 2")
INSIGHT_THRESHOLD = 10.0
TOP_MOVERS = 3


def _direction(value: float) -> str:
    if value > 0:
        return "up"
    if value < 0:
        return "down"
    return "neutral"


def _total(table: NormalizedTable, column: str) -> float:
    return sum(to_float(r.get(column)) or 0.0 for r in table.rows)


def comparable_columns(tables: Sequence[NormalizedTable]) -> list[str]:
    """Columns shared by every table whose first-table sample holds a number."""
    if not tables:
        return []
    first = tables[0]
    common = [c for c in first.columns if all(c in t.columns for t in tables[1:])]
    sample = first.rows[:COMPARE_SAMPLE_ROWS]
    return [c for c in common if any(to_float(r.get(c)) is not None for r in sample)]


def _summarize(
    dataset_a: NormalizedTable,
    dataset_b: NormalizedTable,
    columns: Sequence[str],
    labels: tuple[str, str],
) -> tuple[dict[str, ColumnSummary], list[Insight]]:
    summary: dict[str, ColumnSummary] = {}
    insights: list[Insight] = []
    for col in columns:
        total_a = _total(dataset_a, col)
        total_b = _total(dataset_b, col)
        absolute = total_b - total_a
        change = absolute / total_a * 100 if total_a > 0 else 0.0
        summary[col] = ColumnSummary(
            value_a=round_number(total_a),
            value_b=round_number(total_b),
            absolute_change=round_number(absolute),
            percentage_change=round_number(change),
            direction=_direction(absolute),
        )
        if abs(change) > INSIGHT_THRESHOLD:
            name = format_column_name(col)
            verb = "increased" if change > 0 else "decreased"
            insights.append(
                Insight(
                    type="positive" if change > 0 else "negative",
                    metric=name,
                    message=f"{name} {verb} by {abs(round_number(change))}% from {labels[0]} to {labels[1]}",
                )
            )
    return summary, insights


def _row_delta(value_a: float, value_b: float) -> ColumnDelta:
    if value_a > 0:
        change = (value_b - value_a) / value_a * 100
    else:
        change = 100.0 if value_b > 0 else 0.0
    return ColumnDelta(
        value_a=round_number(value_a),
        value_b=round_number(value_b),
        change=round_number(change),
        direction=_direction(change),
    )


def _join_rows(
    dataset_a: NormalizedTable,
    dataset_b: NormalizedTable,
    primary_key: str,
    columns: Sequence[str],
) -> list[DetailRow]:
    # later duplicates of a key win, as with a plain dict build
    map_a = {r.get(primary_key): r for r in dataset_a.rows}
    map_b = {r.get(primary_key): r for r in dataset_b.rows}
    keys = list(map_a) + [k for k in map_b if k not in map_a]

    details: list[DetailRow] = []
    for key in keys:
        row_a, row_b = map_a.get(key), map_b.get(key)
        if row_a is not None and row_b is not None:
            status = "both"
        elif row_a is not None:
            status = "only_first"
        else:
            status = "only_second"
        comparisons = {}
        for col in columns:
            if col == primary_key:
                continue
            value_a = (to_float(row_a.get(col)) or 0.0) if row_a is not None else 0.0
            value_b = (to_float(row_b.get(col)) or 0.0) if row_b is not None else 0.0
            comparisons[col] = _row_delta(value_a, value_b)
        details.append(DetailRow(key=key, status=status, comparisons=comparisons))

    # stable: equal changes keep key order
    details.sort(key=lambda d: abs(d.primary_delta.change) if d.primary_delta else 0.0, reverse=True)
    return details


def _mover_insights(details: Sequence[DetailRow]) -> list[Insight]:
    gainers = [d for d in details if d.primary_delta and d.primary_delta.direction == "up"][:TOP_MOVERS]
    decliners = [d for d in details if d.primary_delta and d.primary_delta.direction == "down"][:TOP_MOVERS]
    insights = []
    if gainers:
        insights.append(
            Insight("positive", "Top Performers", f"Top gainers: {', '.join(str(d.key) for d in gainers)}")
        )
    if decliners:
        insights.append(
            Insight("negative", "Attention Needed", f"Biggest declines: {', '.join(str(d.key) for d in decliners)}")
        )
    return insights


def _comparison_charts(
    summary: dict[str, ColumnSummary],
    details: Sequence[DetailRow],
    columns: Sequence[str],
    labels: tuple[str, str],
    primary_key: str | None,
) -> list[ComparisonChart]:
    charts = [
        ComparisonChart(
            id="summary-comparison",
            title="Key Metrics Comparison",
            type="grouped_bar",
            data=tuple(
                {
                    "metric": format_column_name(col),
                    labels[0]: summary[col].value_a,
                    labels[1]: summary[col].value_b,
                }
                for col in columns[:5]
            ),
            series=labels,
        ),
        ComparisonChart(
            id="change-chart",
            title="Percentage Change",
            type="bar",
            data=tuple(
                {
                    "metric": format_column_name(col),
                    "change": summary[col].percentage_change,
                    "direction": summary[col].direction,
                }
                for col in columns[:8]
            ),
        ),
    ]
    if details and primary_key:
        top = details[:10]
        detail_column = next(iter(top[0].comparisons), None)
        if detail_column is not None:
            charts.append(
                ComparisonChart(
                    id="detail-comparison",
                    title=f"{format_column_name(detail_column)} by {format_column_name(primary_key)}",
                    type="grouped_bar",
                    data=tuple(
                        {
                            "label": d.key,
                            labels[0]: d.comparisons[detail_column].value_a,
                            labels[1]: d.comparisons[detail_column].value_b,
                            "change": d.comparisons[detail_column].change,
                        }
                        for d in top
                        if detail_column in d.comparisons
                    ),
                    series=labels,
                )
            )
    return charts


def compare_datasets(
    dataset_a: NormalizedTable,
    dataset_b: NormalizedTable,
    *,
    primary_key: str | None = None,
    compare_columns: Sequence[str] | None = None,
    labels: tuple[str, str] = DEFAULT_LABELS,
) -> ComparisonResult:
    """Compare two datasets column by column (and row by row on ``primary_key``).

    Parameters
    ----------
    compare_columns: explicit columns; default = shared columns that look numeric in dataset A
    labels: display names of (A, B), used as series names in charts and insights
    """
    labels = (str(labels[0]), str(labels[1]))
    columns = list(compare_columns) if compare_columns else comparable_columns([dataset_a, dataset_b])
    summary, insights = _summarize(dataset_a, dataset_b, columns, labels)

    details: list[DetailRow] = []
    joined_on = None
    if primary_key and primary_key in dataset_a.columns and primary_key in dataset_b.columns:
        joined_on = primary_key
        details = _join_rows(dataset_a, dataset_b, primary_key, columns)
        insights.extend(_mover_insights(details))

    charts = _comparison_charts(summary, details, columns, labels, joined_on)
    logger.debug(
        f"compared {labels[0]} vs {labels[1]}: {len(columns)} columns, {len(details)} joined rows"
    )
    return ComparisonResult(
        labels=labels,
        summary=summary,
        details=tuple(details),
        charts=tuple(charts),
        insights=tuple(insights),
        primary_key=joined_on,
    )


def compare_many(
    datasets: Sequence[NormalizedTable],
    labels: Sequence[str] | None = None,
    compare_columns: Sequence[str] | None = None,
) -> MultiComparisonResult:
    """Rank any number of datasets by column totals.

    Overall score per dataset: sum over columns of (count - position) in that
    column's descending ranking.
    """
    names = list(labels) if labels else [f"Dataset {i + 1}" for i in range(len(datasets))]
    if len(names) != len(datasets):
        raise ValueError(f"expected {len(datasets)} labels, got {len(names)}")
    columns = list(compare_columns) if compare_columns else comparable_columns(datasets)

    summary: dict[str, ColumnRanking] = {}
    scores: dict[str, int] = {}
    for col in columns:
        totals = [RankedLabel(name, round_number(_total(ds, col))) for name, ds in zip(names, datasets)]
        totals.sort(key=lambda v: v.total, reverse=True)
        if not totals:
            continue
        summary[col] = ColumnRanking(
            values={v.label: v.total for v in totals},
            ranking=tuple(v.label for v in totals),
            highest=totals[0],
            lowest=totals[-1],
            average=round_number(sum(v.total for v in totals) / len(totals)),
        )
        for position, v in enumerate(totals):
            scores[v.label] = scores.get(v.label, 0) + (len(totals) - position)

    ordered = sorted(scores.items(), key=lambda kv: kv[1], reverse=True)
    rankings = tuple({"rank": i + 1, "label": label, "score": score} for i, (label, score) in enumerate(ordered))
    return MultiComparisonResult(summary=summary, rankings=rankings)
