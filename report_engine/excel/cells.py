from __future__ import annotations

import math
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

import pandas as pd

from ..models.sheet import CellValue

"""Cell-level helpers shared by detection, normalization and analytics.

All numeric parsing in the engine goes through ``to_float`` (strict parse,
thousand separators allowed) or ``strip_number`` (additionally drops % and $).
Neither raises: an unparseable cell yields None and the caller decides whether
that means 0 or "exclude from aggregation".
"""

__all__ = [
    "ParsedValue",
    "cell_text",
    "is_blank",
    "non_empty",
    "to_float",
    "strip_number",
    "parse_value",
    "is_section_header",
    "slugify",
    "format_column_name",
    "title_label",
    "round_number",
    "parse_date",
    "find_column",
]

_NUMBER_DECORATIONS = re.compile(r"[%$,]")
_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class ParsedValue:
    numeric: float
    unit: str


def cell_text(value: CellValue) -> str:
    """Cell as stripped text; None -> ''."""
    if value is None:
        return ""
    return str(value).strip()


def is_blank(value: CellValue) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def non_empty(cells: Iterable[CellValue]) -> list[CellValue]:
    return [c for c in cells if not is_blank(c)]


def to_float(value: Any) -> float | None:
    """Parse a cell as a finite float, or None.

    Numbers pass through; strings are stripped of whitespace and thousand
    separators before ``float()``. Booleans, NaN and infinities are rejected.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        result = float(value)
    else:
        text = str(value).strip().replace(",", "")
        if not text:
            return None
        try:
            result = float(text)
        except ValueError:
            return None
    return result if math.isfinite(result) else None


def strip_number(value: Any) -> float | None:
    """Like ``to_float`` but ignores %, $ and , decorations."""
    if isinstance(value, str):
        return to_float(_NUMBER_DECORATIONS.sub("", value))
    return to_float(value)


def parse_value(value: CellValue) -> ParsedValue:
    """Parse a vertical-sheet value cell into (numeric, unit).

    '%' anywhere -> percent, '$' anywhere -> currency. Unparseable -> 0.
    """
    if value is None:
        return ParsedValue(0.0, "")
    text = str(value).strip()
    if "%" in text:
        num = to_float(text.replace("%", ""))
        return ParsedValue(num if num is not None else 0.0, "%")
    if "$" in text:
        num = to_float(text.replace("$", ""))
        return ParsedValue(num if num is not None else 0.0, "$")
    num = to_float(text)
    return ParsedValue(num if num is not None else 0.0, "")


def is_section_header(text: str) -> bool:
    """All-uppercase label longer than 3 chars, or a label ending with ':'.

    ``str.isupper`` needs at least one cased character, so dates and plain
    numbers ("2024-01-05") never count as headers.
    """
    text = text.strip()
    if not text:
        return False
    return (text.isupper() and len(text) > 3) or text.endswith(":")


def slugify(text: str) -> str:
    """Lowercase, trim, collapse whitespace runs to '_'."""
    return _WHITESPACE.sub("_", str(text).strip().lower())


def format_column_name(column: str) -> str:
    """'total_revenue' -> 'Total Revenue'."""
    return " ".join(word[:1].upper() + word[1:] for word in str(column).split("_"))


def title_label(text: str) -> str:
    """Shouted labels ('TOTAL IMPRESSIONS', 'CTR') become title case; others are kept."""
    text = text.strip()
    return text.title() if text.isupper() else text


def round_number(value: float, decimals: int = 2) -> float:
    """Round half away from zero; non-finite input -> 0.0."""
    if value is None or not math.isfinite(value):
        return 0.0
    factor = 10 ** decimals
    result = math.floor(abs(value) * factor + 0.5) / factor
    if value < 0 and result:
        return -result
    return result


def parse_date(value: Any) -> pd.Timestamp | None:
    """Parse a date-like cell; None when it is not a date."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (datetime, date)):
        ts = pd.Timestamp(value)
        return ts.tz_convert(None) if ts.tzinfo is not None else ts
    if isinstance(value, (int, float)):
        # bare numbers are not dates here (pandas would read them as epoch ns)
        return None
    text = str(value).strip()
    if not text:
        return None
    ts = pd.to_datetime(text, errors="coerce")
    if ts is None or pd.isna(ts):
        return None
    if ts.tzinfo is not None:
        ts = ts.tz_convert(None)
    return ts


def find_column(columns: Sequence[str], keywords: Sequence[str]) -> str | None:
    """First column whose name contains any keyword."""
    for col in columns:
        if any(k in col for k in keywords):
            return col
    return None
