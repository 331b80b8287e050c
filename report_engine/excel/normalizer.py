from __future__ import annotations

from collections.abc import Iterable, Sequence

from ..models.sheet import CellValue, NormalizedTable, RawSheet, SheetFormat
from .cells import slugify

"""Horizontal (standard table) normalization.

Row 0 is the header. Header names are lowercased, trimmed and whitespace runs
become '_'. Each later row becomes a mapping with exactly those keys; missing
trailing cells are None, cells beyond the header are dropped.
"""

__all__ = [
    "EmptyInputError",
    "EmptySheetError",
    "MissingColumnsError",
    "normalize_header",
    "normalize_horizontal",
    "validate_columns",
]


class EmptyInputError(Exception):
    """Raised when a sheet has no usable data rows."""


class EmptySheetError(EmptyInputError):
    """Raised when a horizontal sheet has a header but zero data rows."""


class MissingColumnsError(Exception):
    """Raised when required columns for a report type are absent."""

    def __init__(self, report_type: str, missing: Sequence[str], found: Sequence[str]) -> None:
        self.report_type = report_type
        self.missing = list(missing)
        self.found = list(found)
        super().__init__(
            f"Missing required columns for {report_type} report: {', '.join(self.missing)}. "
            f"Found columns: {', '.join(self.found)}"
        )


def normalize_header(header: Sequence[CellValue]) -> tuple[str, ...]:
    """Normalize header cells into unique column names.

    Blank headers become ``column_<n>`` (1-based position); duplicates get a
    ``_<k>`` suffix so every row mapping keeps one key per source column.
    """
    columns: list[str] = []
    seen: set[str] = set()
    for idx, cell in enumerate(header):
        base = slugify(cell) if cell is not None and str(cell).strip() else f"column_{idx + 1}"
        name = base
        k = 1
        while name in seen:
            k += 1
            name = f"{base}_{k}"
        seen.add(name)
        columns.append(name)
    return tuple(columns)


def normalize_horizontal(raw: RawSheet) -> NormalizedTable:
    """Convert a standard table into column-keyed records."""
    if not raw:
        raise EmptyInputError("File is empty or has no data rows")
    columns = normalize_header(raw[0])
    data_part = raw[1:]
    if not data_part:
        raise EmptySheetError("File is empty or has no data rows")

    rows: list[dict[str, CellValue]] = []
    for raw_row in data_part:
        row: dict[str, CellValue] = {}
        for idx, col in enumerate(columns):
            row[col] = raw_row[idx] if idx < len(raw_row) else None
        rows.append(row)

    return NormalizedTable(columns=columns, rows=tuple(rows), format=SheetFormat.HORIZONTAL)


def validate_columns(columns: Iterable[str], required: Sequence[str], report_type: str) -> None:
    """Raise MissingColumnsError if any required column is absent."""
    present = list(columns)
    missing = [col for col in required if col not in present]
    if missing:
        raise MissingColumnsError(report_type, missing, present)
