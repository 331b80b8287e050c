from __future__ import annotations

import json
import logging
from dataclasses import replace
from pathlib import Path
from typing import Any

import jsonschema
from jsonschema.exceptions import ValidationError

from ..excel.cells import find_column, format_column_name
from ..excel.parser import DATE_KEYWORDS, extract_metadata, parse_sheet
from ..models.config_models import AnalysisSettings
from ..models.report import PreviewTable, ReportPayload
from ..models.sheet import NormalizedTable, RawSheet
from ..models.template import Template
from ..models.trend import TrendAnalysis
from .charts import CHART_SAMPLE_ROWS, build_charts
from .metrics import calculate_metrics, calculate_template_kpis, numeric_columns
from .templates import detect_template, get_template
from .trends import analyze, sort_by_date

"""Report builder: RawSheet -> validated ReportPayload.

Steps: parse (detect + normalize) -> template selection -> metadata ->
template KPIs + standard metrics -> charts -> preview table -> optional
trend analysis -> schema validation.
"""

__all__ = [
    "SCHEMA_PATH",
    "VALUE_KEYWORDS",
    "ReportValidationError",
    "build_preview_table",
    "build_report",
    "validate_payload",
]

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).parent.parent / "contracts" / "report_schema.json"

VALUE_KEYWORDS = ("revenue", "amount", "mrr", "sales")


class ReportValidationError(Exception):
    """Raised when a built payload does not satisfy the report contract."""


def validate_payload(payload: dict[str, Any]) -> None:
    """Validate a serialized payload against contracts/report_schema.json.

    Raises:
        ReportValidationError: schema file missing/invalid or payload violates it
    """
    if not SCHEMA_PATH.exists():
        raise ReportValidationError(f"report schema not found: {SCHEMA_PATH}")
    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(payload, schema)
    except json.JSONDecodeError as e:
        raise ReportValidationError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        location = "/".join(str(p) for p in e.absolute_path) or "<root>"
        raise ReportValidationError(f"report payload invalid at {location}: {e.message}") from e


def build_preview_table(
    table: NormalizedTable,
    horizontal_rows: int = 20,
    vertical_rows: int = 30,
) -> PreviewTable:
    if table.is_vertical:
        shown = [m for m in table.extracted_metrics if m.value != 0 or m.raw_value not in (None, "")]
        return PreviewTable(
            name="Extracted Metrics",
            columns=("Metric", "Value", "Section"),
            rows=tuple(
                {
                    "Metric": m.name,
                    "Value": m.raw_value if m.raw_value not in (None, "") else m.value,
                    "Section": format_column_name(m.section or "main"),
                }
                for m in shown[:vertical_rows]
            ),
        )
    labels = [format_column_name(c) for c in table.columns]
    return PreviewTable(
        name="Data Preview",
        columns=tuple(labels),
        rows=tuple(
            {label: row.get(col) for label, col in zip(labels, table.columns)}
            for row in table.rows[:horizontal_rows]
        ),
    )


def _select_template(
    table: NormalizedTable, template_id: str | None, settings: AnalysisSettings
) -> Template | None:
    if template_id:
        return get_template(template_id)
    if settings.auto_detect_template and not table.is_vertical:
        detected = detect_template(table.columns)
        return get_template(detected) if detected else None
    return None


def _trend_columns(table: NormalizedTable) -> tuple[str, str] | None:
    date_column = find_column(table.columns, DATE_KEYWORDS)
    if date_column is None:
        return None
    value_column = find_column(table.columns, VALUE_KEYWORDS)
    if value_column is None:
        candidates = [c for c in numeric_columns(table, CHART_SAMPLE_ROWS) if c != date_column]
        value_column = candidates[0] if candidates else None
    if value_column is None:
        return None
    return date_column, value_column


def _trend_analysis(table: NormalizedTable, settings: AnalysisSettings) -> TrendAnalysis | None:
    if not settings.enable_trend_analysis or table.is_vertical:
        return None
    columns = _trend_columns(table)
    if columns is None:
        logger.debug("trend analysis skipped: no date/value column pair")
        return None
    date_column, value_column = columns
    return analyze(
        sort_by_date(table.rows, date_column),
        date_column,
        value_column,
        anomaly_threshold=settings.anomaly_threshold,
        forecast_periods=settings.forecast_periods,
        moving_average_window=settings.moving_average_window,
    )


def build_report(
    raw: RawSheet,
    filename: str,
    *,
    report_type: str | None = None,
    template_id: str | None = None,
    client: str | None = None,
    period: str | None = None,
    settings: AnalysisSettings | None = None,
) -> ReportPayload:
    """Build and validate the report payload for one sheet.

    Raises:
        EmptyInputError: no usable rows
        MissingColumnsError: report_type requires columns the table lacks
        UnknownTemplateError: explicit template_id not in the registry
        ReportValidationError: payload violates the report contract
    """
    settings = settings or AnalysisSettings()
    table, decision = parse_sheet(raw, report_type or "custom")
    template = _select_template(table, template_id, settings)
    if template is not None:
        logger.info(f"Using template: {template.name}")

    meta = extract_metadata(table, filename, client=client, period=period, report_type=report_type)
    if template is not None:
        meta = replace(meta, template_id=template.id, template_name=template.name)

    metrics = calculate_metrics(table, meta.report_type)
    if template is not None:
        metrics = calculate_template_kpis(template, table.rows) + metrics
    charts = build_charts(table, meta.report_type)
    preview = build_preview_table(table, settings.preview_horizontal_rows, settings.preview_vertical_rows)
    trend = _trend_analysis(table, settings)

    payload = ReportPayload(
        meta=meta,
        metrics=tuple(metrics),
        tables=(preview,),
        charts=tuple(charts),
        trend_analysis=trend,
        source_format=decision.format.value,
        row_count=table.row_count,
    )
    validate_payload(payload.to_dict())
    logger.info(
        f"Report built for {filename}: {len(metrics)} metrics, {len(charts)} charts"
        + (", trend analysis" if trend is not None else "")
    )
    return payload
