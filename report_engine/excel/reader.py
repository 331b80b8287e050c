from __future__ import annotations

import csv
import math
from datetime import date, datetime, time
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd

from ..models.sheet import CellValue, RawSheet
from .normalizer import EmptyInputError

"""Spreadsheet reader: file -> RawSheet.

Only the first sheet of a workbook is read. Everything is read without a
header (header detection belongs to the normalizers) and every cell is
coerced into the closed variant str | int | float | None.
"""

__all__ = [
    "SUPPORTED_SUFFIXES",
    "UnsupportedFileError",
    "read_raw_sheet",
    "frame_to_raw_sheet",
    "coerce_cell",
]

SUPPORTED_SUFFIXES = (".xlsx", ".xls", ".csv")


class UnsupportedFileError(Exception):
    """Raised when the file extension is not a supported spreadsheet type."""


def _na_options(keep_na_strings: list[str] | None) -> dict[str, Any]:
    # pandas 既定の NA 文字列から keep_na_strings を除外
    if not keep_na_strings:
        return {"keep_default_na": True, "na_values": None}
    import pandas._libs.parsers as parsers

    custom_na = parsers.STR_NA_VALUES.copy() - set(keep_na_strings)
    return {"keep_default_na": False, "na_values": list(custom_na)}


def coerce_cell(value: Any) -> CellValue:
    """Coerce a pandas/numpy cell into str | int | float | None."""
    if value is None or value is pd.NaT:
        return None
    if isinstance(value, (bool, np.bool_)):
        return "TRUE" if value else "FALSE"
    if isinstance(value, pd.Timestamp):
        if pd.isna(value):
            return None
        value = value.to_pydatetime()
    if isinstance(value, datetime):
        if value.time() == time(0, 0):
            return value.date().isoformat()
        return value.isoformat()
    if isinstance(value, (date, time)):
        return value.isoformat()
    if isinstance(value, np.integer):
        return int(value)
    if isinstance(value, (float, np.floating)):
        f = float(value)
        if math.isnan(f):
            return None
        if math.isinf(f):
            return str(f)
        return int(f) if f.is_integer() else f
    if isinstance(value, int):
        return value
    text = str(value).strip()
    return text if text else None


def _csv_width(path: Path) -> int:
    with path.open(newline="", encoding="utf-8-sig") as f:
        return max((len(r) for r in csv.reader(f)), default=0)


def frame_to_raw_sheet(df: pd.DataFrame) -> RawSheet:
    """Header-less DataFrame -> tuple of row tuples (trailing empty cells trimmed)."""
    grid: list[tuple[CellValue, ...]] = []
    for raw in df.itertuples(index=False, name=None):
        cells = [coerce_cell(v) for v in raw]
        while cells and cells[-1] is None:
            cells.pop()
        grid.append(tuple(cells))
    # 末尾の空行は除去 (途中の空行はサブテーブル終端判定に使うため保持)
    while grid and not grid[-1]:
        grid.pop()
    return tuple(grid)


def read_raw_sheet(path: Path, keep_na_strings: list[str] | None = None) -> RawSheet:
    """Read the first sheet of an Excel/CSV file as a raw cell grid.

    Parameters
    ----------
    path: .xlsx / .xls / .csv file
    keep_na_strings: strings excluded from pandas' default NaN conversion (e.g. ['NA'])
    """
    suffix = path.suffix.lower()
    if suffix not in SUPPORTED_SUFFIXES:
        raise UnsupportedFileError(
            f"Only Excel (.xlsx, .xls) and CSV (.csv) files are allowed: {path.name}"
        )
    na = _na_options(keep_na_strings)
    if suffix == ".csv":
        # report 形式の CSV は行ごとに列数が異なるため最大列数で読む
        width = _csv_width(path)
        if width == 0:
            raise EmptyInputError("File is empty or has no data rows")
        try:
            df = pd.read_csv(
                path,
                header=None,
                names=list(range(width)),
                dtype=object,
                skip_blank_lines=False,
                encoding="utf-8-sig",
                **na,
            )
        except pd.errors.EmptyDataError as e:
            raise EmptyInputError("File is empty or has no data rows") from e
    else:
        xls = pd.ExcelFile(path)
        if not xls.sheet_names:
            raise EmptyInputError(f"workbook has no sheets: {path.name}")
        df = xls.parse(xls.sheet_names[0], header=None, **na)

    raw = frame_to_raw_sheet(df)
    if not raw:
        raise EmptyInputError("File is empty or has no data rows")
    return raw
