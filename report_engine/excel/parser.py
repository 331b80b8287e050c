from __future__ import annotations

import json
import logging
import re
from datetime import UTC, datetime
from pathlib import PurePath

from ..models.report import ReportMeta
from ..models.sheet import FormatDecision, NormalizedTable, RawSheet
from .cells import cell_text, find_column
from .detector import detect_format
from .normalizer import normalize_horizontal, validate_columns
from .vertical import extract_vertical

"""Sheet parsing facade: raw grid -> NormalizedTable (+ report metadata).

Report-type column requirements apply to horizontal tables only; vertical
sheets carry their own labels and are never validated against them.
"""

__all__ = [
    "REQUIRED_COLUMNS",
    "OPTIONAL_COLUMNS",
    "DATE_KEYWORDS",
    "parse_sheet",
    "detect_report_type",
    "extract_metadata",
    "client_from_filename",
]

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS: dict[str, tuple[str, ...]] = {
    "sales": ("date", "product", "quantity", "revenue"),
    "financial": ("date", "category", "amount"),
    "marketing": ("campaign", "impressions", "clicks", "conversions"),
    "inventory": ("product", "stock", "reorder_level"),
    "custom": (),
}

OPTIONAL_COLUMNS: dict[str, tuple[str, ...]] = {
    "sales": ("region", "salesperson", "cost", "profit"),
    "financial": ("description", "account", "department"),
    "marketing": ("cost", "channel", "roi"),
    "inventory": ("supplier", "last_order_date", "unit_cost"),
    "custom": (),
}

DATE_KEYWORDS = ("date", "period", "month")

# report-type keyword groups, checked in order
_REPORT_TYPE_KEYWORDS = (
    ("marketing", ("impression", "click", "ctr", "advertising")),
    ("sales", ("revenue", "sales", "quantity")),
    ("financial", ("expense", "income", "balance")),
    ("inventory", ("stock", "inventory", "warehouse")),
)

_FILENAME_SUFFIX = re.compile(r"\.(xlsx?|csv)$", re.IGNORECASE)


def parse_sheet(
    raw: RawSheet, report_type: str | None = "custom"
) -> tuple[NormalizedTable, FormatDecision]:
    """Detect the layout and normalize the sheet.

    Raises:
        EmptyInputError: no usable data rows
        MissingColumnsError: horizontal table lacks the report type's required columns
    """
    decision = detect_format(raw)
    logger.info(f"Detected format: {decision.format.value}")
    if decision.format.is_vertical:
        table = extract_vertical(raw)
    else:
        table = normalize_horizontal(raw)
        required = REQUIRED_COLUMNS.get(report_type or "custom", ())
        if required:
            validate_columns(table.columns, required, report_type or "custom")
    logger.info(f"Parsed {table.row_count} rows with {len(table.columns)} columns")
    return table, decision


def detect_report_type(table: NormalizedTable) -> str:
    """Guess the report type from every piece of text in the table."""
    parts: list[str] = list(table.columns)
    parts.extend(m.name for m in table.extracted_metrics)
    parts.extend(table.sections.keys())
    parts.append(json.dumps([dict(r) for r in table.rows], default=str))
    text = " ".join(parts).lower()
    for report_type, keywords in _REPORT_TYPE_KEYWORDS:
        if any(k in text for k in keywords):
            return report_type
    return "custom"


def client_from_filename(filename: str) -> str:
    """'Acme_Report_2024.xlsx' -> 'Acme'."""
    stem = _FILENAME_SUFFIX.sub("", PurePath(filename).name)
    first = re.split(r"[_-]", stem)[0]
    return first or "Unknown Client"


def _infer_period(table: NormalizedTable) -> str:
    date_column = find_column(table.columns, DATE_KEYWORDS)
    if date_column is None:
        return "Unknown Period"
    dates = sorted(cell_text(r.get(date_column)) for r in table.rows if cell_text(r.get(date_column)))
    if not dates:
        return "Unknown Period"
    first, last = dates[0], dates[-1]
    return first if first == last else f"{first} - {last}"


def extract_metadata(
    table: NormalizedTable,
    filename: str,
    *,
    client: str | None = None,
    period: str | None = None,
    report_type: str | None = None,
) -> ReportMeta:
    """Resolve report metadata: explicit values win, then sheet labels, then heuristics."""
    generated_at = datetime.now(UTC).isoformat().replace("+00:00", "Z")
    if table.is_vertical:
        sheet_meta = table.sheet_meta
        return ReportMeta(
            client=client or (sheet_meta.client if sheet_meta else None) or client_from_filename(filename),
            period=period or (sheet_meta.period if sheet_meta else None) or "Unknown Period",
            report_type=report_type or detect_report_type(table),
            generated_at=generated_at,
        )
    return ReportMeta(
        client=client or client_from_filename(filename),
        period=period or _infer_period(table),
        report_type=report_type or "custom",
        generated_at=generated_at,
    )
