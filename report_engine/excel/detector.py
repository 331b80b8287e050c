from __future__ import annotations

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass

from ..models.sheet import FormatDecision, RawSheet, SheetFormat
from .cells import cell_text, is_blank, is_section_header, strip_number

"""Sheet format detection.

Classifies a raw grid as horizontal (one record per row) or vertical/report
(label/value pairs down column A). Detection is a pure function of a few
counters gathered over the first rows; the decision itself is an ordered list
of named rules, first match wins, and no match means horizontal.
"""

__all__ = [
    "SCAN_ROWS",
    "REPORT_INDICATORS",
    "SheetCounters",
    "DETECTION_RULES",
    "count_sheet",
    "detect_format",
]

logger = logging.getLogger(__name__)

SCAN_ROWS = 30

# "2024-01-05", "12 items", ".5": a leading number means data, not a label
_LEADING_NUMBER = re.compile(r"^\s*[-+]?(\d|\.\d)")

REPORT_INDICATORS = (
    "report",
    "summary",
    "statistics",
    "generated",
    "date range",
    "total",
    "metric",
    "value",
    "performance",
    "breakdown",
)


@dataclass(frozen=True)
class SheetCounters:
    label_count: int
    value_count: int
    section_count: int
    has_report_indicator: bool

    @property
    def vertical_ratio(self) -> float:
        return self.value_count / max(self.label_count, 1)


def _has_report_indicator(c: SheetCounters) -> bool:
    return c.has_report_indicator


def _has_section_headers(c: SheetCounters) -> bool:
    return c.section_count >= 2


def _mostly_label_value(c: SheetCounters) -> bool:
    return c.vertical_ratio > 0.5


DETECTION_RULES: tuple[tuple[str, Callable[[SheetCounters], bool]], ...] = (
    ("report_indicator", _has_report_indicator),
    ("section_headers", _has_section_headers),
    ("label_value_ratio", _mostly_label_value),
)


def _looks_like_value(cell: object) -> bool:
    if is_blank(cell):  # type: ignore[arg-type]
        return False
    return strip_number(cell) is not None or "%" in str(cell)


def count_sheet(raw: RawSheet, scan_rows: int = SCAN_ROWS) -> SheetCounters:
    """Gather detection counters over the first ``scan_rows`` rows."""
    label_count = 0
    value_count = 0
    section_count = 0
    for row in raw[:scan_rows]:
        col_a = cell_text(row[0]) if len(row) > 0 else ""
        col_b = row[1] if len(row) > 1 else None
        if is_section_header(col_a):
            section_count += 1
        if col_a and not _LEADING_NUMBER.match(col_a):
            label_count += 1
            if _looks_like_value(col_b):
                value_count += 1

    first_cell = cell_text(raw[0][0]).lower() if raw and len(raw[0]) > 0 else ""
    indicator = any(ind in first_cell for ind in REPORT_INDICATORS)
    return SheetCounters(
        label_count=label_count,
        value_count=value_count,
        section_count=section_count,
        has_report_indicator=indicator,
    )


def detect_format(raw: RawSheet) -> FormatDecision:
    """Classify the sheet layout. Never raises; borderline sheets are horizontal."""
    if len(raw) < 2:
        return FormatDecision(format=SheetFormat.HORIZONTAL)

    counters = count_sheet(raw)
    matched = next((name for name, rule in DETECTION_RULES if rule(counters)), None)
    if matched is None:
        fmt = SheetFormat.HORIZONTAL
    elif counters.section_count >= 2:
        fmt = SheetFormat.REPORT
    else:
        fmt = SheetFormat.VERTICAL

    logger.debug(
        "format=%s rule=%s labels=%d values=%d sections=%d ratio=%.2f",
        fmt.value,
        matched,
        counters.label_count,
        counters.value_count,
        counters.section_count,
        counters.vertical_ratio,
    )
    return FormatDecision(
        format=fmt,
        label_count=counters.label_count,
        value_count=counters.value_count,
        section_count=counters.section_count,
        vertical_ratio=counters.vertical_ratio,
        has_report_indicator=counters.has_report_indicator,
        matched_rule=matched,
    )
