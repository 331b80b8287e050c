from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

"""Sheet-level domain models: raw cell grid, format decision, normalized table.

RawSheet is the 2-D grid handed over by the reader. NormalizedTable is the
canonical output of both the horizontal normalizer and the vertical extractor;
everything downstream (metrics, charts, comparison, trends) reads it and never
mutates it.
"""

__all__ = [
    "CellValue",
    "RawSheet",
    "Row",
    "SheetFormat",
    "FormatDecision",
    "ExtractedMetric",
    "SectionEntry",
    "SubTable",
    "SheetMeta",
    "NormalizedTable",
]

CellValue = Union[str, int, float, None]
RawSheet = Sequence[Sequence[CellValue]]
Row = Mapping[str, Any]


class SheetFormat(Enum):
    """Layout of an uploaded sheet.

    - HORIZONTAL: one record per row, first row is the header
    - VERTICAL: label/value pairs down column A
    - REPORT: vertical layout with at least two section headers
    """
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"
    REPORT = "report"

    @property
    def is_vertical(self) -> bool:
        return self is not SheetFormat.HORIZONTAL


@dataclass(frozen=True)
class FormatDecision:
    """Outcome of format detection plus the counters that drove it.

    Counters are diagnostic only; they are not carried into NormalizedTable.
    """
    format: SheetFormat
    label_count: int = 0
    value_count: int = 0
    section_count: int = 0
    vertical_ratio: float = 0.0
    has_report_indicator: bool = False
    matched_rule: str | None = None  # None -> horizontal fallback


@dataclass(frozen=True)
class ExtractedMetric:
    """A label/value pair lifted out of a vertical sheet."""
    name: str
    value: float  # parsed numeric value (0 when unparseable)
    raw_value: CellValue  # cell exactly as read
    unit: str
    section: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "value": self.value,
            "rawValue": self.raw_value,
            "unit": self.unit,
            "section": self.section,
        }


@dataclass(frozen=True)
class SectionEntry:
    """Flat metric entry stored under a section name."""
    metric: str
    value: CellValue
    numeric_value: float


@dataclass(frozen=True)
class SubTable:
    """Embedded table found inside a vertical sheet.

    headers keep the original header text; row keys are the slugified headers.
    """
    headers: tuple[str, ...]
    rows: tuple[dict[str, CellValue], ...]


@dataclass(frozen=True)
class SheetMeta:
    """Best-effort report metadata scraped from vertical sheet labels."""
    client: str | None = None
    period: str | None = None
    generated_date: str | None = None


@dataclass(frozen=True)
class NormalizedTable:
    """Uniform row/column view of a sheet.

    Invariants:
    - every row has exactly the keys in ``columns``
    - row order is the source order
    - ``format`` is HORIZONTAL or VERTICAL (REPORT sheets normalize to VERTICAL)
    """
    columns: tuple[str, ...]
    rows: tuple[dict[str, CellValue], ...]
    format: SheetFormat = SheetFormat.HORIZONTAL
    extracted_metrics: tuple[ExtractedMetric, ...] = ()
    sections: Mapping[str, tuple[SectionEntry, ...] | SubTable] = field(default_factory=dict)
    sheet_meta: SheetMeta | None = None

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @property
    def is_vertical(self) -> bool:
        return self.format is SheetFormat.VERTICAL

    def sub_tables(self) -> list[tuple[str, SubTable]]:
        """Return (section_name, table) pairs for embedded tables, in insertion order."""
        return [(name, data) for name, data in self.sections.items() if isinstance(data, SubTable)]
