from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from typing import Any

from ..models.sheet import (
    CellValue,
    ExtractedMetric,
    NormalizedTable,
    RawSheet,
    SectionEntry,
    SheetFormat,
    SheetMeta,
    SubTable,
)
from .cells import cell_text, is_blank, is_section_header, non_empty, parse_value, slugify, title_label
from .normalizer import EmptyInputError

"""Vertical / report-style sheet extraction.

Walks a label/value sheet once. Each row is offered to an ordered list of
named rules (blank, section header, metadata, sub-table, metric); the first
rule that claims the row returns the next extraction state and how many rows
it consumed. The state is threaded through the loop and returned, never
captured and mutated.

Output is a NormalizedTable with format VERTICAL whose flat rows are one per
extracted metric: columns = metric, value, raw_value, unit, section.
"""

__all__ = [
    "VERTICAL_COLUMNS",
    "MAIN_SECTION",
    "ExtractionState",
    "ROW_RULES",
    "extract_vertical",
    "read_sub_table",
]

logger = logging.getLogger(__name__)

VERTICAL_COLUMNS = ("metric", "value", "raw_value", "unit", "section")
MAIN_SECTION = "main"


@dataclass(frozen=True)
class ExtractionState:
    section: str = MAIN_SECTION
    pending: tuple[SectionEntry, ...] = ()
    sections: dict[str, Any] = field(default_factory=dict)
    metrics: tuple[ExtractedMetric, ...] = ()
    meta: SheetMeta = SheetMeta()

    def flush(self) -> ExtractionState:
        """Store pending entries under the current section."""
        if not self.pending:
            return self
        return replace(self, sections={**self.sections, self.section: self.pending}, pending=())


@dataclass(frozen=True)
class _RowView:
    cells: tuple[CellValue, ...]
    col_a: str
    col_b: CellValue

    @classmethod
    def of(cls, row: Any) -> _RowView:
        cells = tuple(row or ())
        return cls(
            cells=cells,
            col_a=cell_text(cells[0]) if cells else "",
            col_b=cells[1] if len(cells) > 1 else None,
        )


RuleResult = tuple[ExtractionState, int] | None
RowRule = Callable[[ExtractionState, _RowView, RawSheet, int], RuleResult]


def _skip_blank(state: ExtractionState, row: _RowView, raw: RawSheet, index: int) -> RuleResult:
    if not row.col_a and not non_empty(row.cells[1:]):
        return state, 1
    return None


def _open_section(state: ExtractionState, row: _RowView, raw: RawSheet, index: int) -> RuleResult:
    if not (is_section_header(row.col_a) and is_blank(row.col_b)):
        return None
    name = slugify(row.col_a.rstrip(":"))
    return replace(state.flush(), section=name), 1


_META_FIELDS = (
    (("generated", "date:"), "generated_date"),
    (("date range", "period"), "period"),
    (("advertiser", "client", "account"), "client"),
)


def _capture_metadata(state: ExtractionState, row: _RowView, raw: RawSheet, index: int) -> RuleResult:
    lowered = row.col_a.lower()
    for keywords, attr in _META_FIELDS:
        if any(k in lowered for k in keywords):
            value = None if is_blank(row.col_b) else cell_text(row.col_b)
            return replace(state, meta=replace(state.meta, **{attr: value})), 1
    return None


def read_sub_table(raw: RawSheet, header_index: int) -> SubTable:
    """Read an embedded table whose header row is ``raw[header_index]``.

    Data rows run until an empty first cell or a section-header-looking first
    cell. Values are mapped positionally onto the non-empty header cells.
    """
    headers = tuple(cell_text(h) for h in non_empty(raw[header_index]))
    keys = [slugify(h) for h in headers]
    rows: list[dict[str, CellValue]] = []
    for raw_row in raw[header_index + 1:]:
        cells = tuple(raw_row or ())
        first = cell_text(cells[0]) if cells else ""
        if not first or is_section_header(first):
            break
        rows.append({key: (cells[idx] if idx < len(cells) else None) for idx, key in enumerate(keys)})
    return SubTable(headers=headers, rows=tuple(rows))


def _capture_sub_table(state: ExtractionState, row: _RowView, raw: RawSheet, index: int) -> RuleResult:
    if len(non_empty(row.cells)) <= 2 or index + 1 >= len(raw):
        return None
    if len(non_empty(raw[index + 1] or ())) < 2:
        return None
    table = read_sub_table(raw, index)
    if not table.rows:
        return None
    name = f"{state.section}_table"
    logger.debug("sub-table %s: %d headers, %d rows", name, len(table.headers), len(table.rows))
    return replace(state, sections={**state.sections, name: table}), 1 + len(table.rows)


def _capture_metric(state: ExtractionState, row: _RowView, raw: RawSheet, index: int) -> RuleResult:
    if not row.col_a or is_blank(row.col_b):
        return None
    parsed = parse_value(row.col_b)
    name = title_label(row.col_a)
    metric = ExtractedMetric(
        name=name,
        value=parsed.numeric,
        raw_value=row.col_b,
        unit=parsed.unit,
        section=state.section,
    )
    entry = SectionEntry(metric=name, value=row.col_b, numeric_value=parsed.numeric)
    return replace(state, metrics=state.metrics + (metric,), pending=state.pending + (entry,)), 1


ROW_RULES: tuple[tuple[str, RowRule], ...] = (
    ("blank", _skip_blank),
    ("section_header", _open_section),
    ("metadata", _capture_metadata),
    ("sub_table", _capture_sub_table),
    ("metric", _capture_metric),
)


def _step(state: ExtractionState, raw: RawSheet, index: int) -> tuple[ExtractionState, int]:
    row = _RowView.of(raw[index])
    for _name, rule in ROW_RULES:
        result = rule(state, row, raw, index)
        if result is not None:
            return result
    return state, 1  # unclaimed row (e.g. a title with no value)


def extract_vertical(raw: RawSheet) -> NormalizedTable:
    """Split a label/value sheet into metrics, sections and report metadata."""
    state = ExtractionState()
    index = 0
    while index < len(raw):
        state, consumed = _step(state, raw, index)
        index += consumed
    state = state.flush()

    if not state.metrics and not state.sections:
        raise EmptyInputError("No metrics could be extracted from the report sheet")

    rows = tuple(
        {
            "metric": m.name,
            "value": m.value,
            "raw_value": m.raw_value,
            "unit": m.unit,
            "section": m.section,
        }
        for m in state.metrics
    )
    logger.debug("vertical extraction: %d metrics, %d sections", len(state.metrics), len(state.sections))
    return NormalizedTable(
        columns=VERTICAL_COLUMNS,
        rows=rows,
        format=SheetFormat.VERTICAL,
        extracted_metrics=state.metrics,
        sections=state.sections,
        sheet_meta=state.meta,
    )
