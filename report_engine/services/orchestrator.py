from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

from ..excel.normalizer import EmptyInputError, MissingColumnsError
from ..excel.reader import SUPPORTED_SUFFIXES, UnsupportedFileError, read_raw_sheet
from ..logging.error_log import ErrorLogBuffer, ErrorRecord
from ..models.config_models import EngineConfig
from ..models.processing_result import FileStat, ProcessingResult
from ..models.report import ReportPayload
from ..models.sheet import RawSheet
from .progress import ProgressTracker
from .report import ReportValidationError, build_report
from .templates import UnknownTemplateError, get_template

"""Batch report orchestration.

Each input file is handled on its own: read -> build report -> write
``<stem>.report.json``. A failing file is logged, recorded in the structured
error log and counted; the run always continues with the next file.
"""

__all__ = [
    "ProcessingError",
    "ReportOptions",
    "REPORT_SUFFIX",
    "scan_input_files",
    "process_all",
]

logger = logging.getLogger(__name__)

REPORT_SUFFIX = ".report.json"


class ProcessingError(Exception):
    """Fatal error that prevents the whole batch from running."""


@dataclass(frozen=True)
class ReportOptions:
    """Per-run overrides applied to every file of a batch."""
    report_type: str | None = None
    template_id: str | None = None
    client: str | None = None
    period: str | None = None


class _FileFailure(Exception):
    def __init__(self, stage: str, error_type: str, message: str) -> None:
        super().__init__(message)
        self.stage = stage
        self.error_type = error_type


def scan_input_files(directory: Path) -> list[Path]:
    """List spreadsheet files in a directory (non-recursive, sorted by name).

    Raises:
        ProcessingError: directory missing, not a directory or unreadable
    """
    if not directory.exists():
        raise ProcessingError(f"Directory not found: {directory}")
    if not directory.is_dir():
        raise ProcessingError(f"Path is not a directory: {directory}")
    try:
        return sorted(
            p for p in directory.iterdir()
            if p.is_file() and p.suffix.lower() in SUPPORTED_SUFFIXES
        )
    except OSError as e:
        raise ProcessingError(f"Error reading directory {directory}: {e}") from e


def _read(path: Path, config: EngineConfig) -> RawSheet:
    try:
        return read_raw_sheet(path, config.keep_na_strings)
    except UnsupportedFileError as e:
        raise _FileFailure("read", "UNSUPPORTED_FILE", str(e)) from e
    except EmptyInputError as e:
        raise _FileFailure("read", "EMPTY_INPUT", str(e)) from e
    except Exception as e:  # pandas / openpyxl / xlrd raise a wide range of types
        raise _FileFailure("read", "READ_ERROR", f"{type(e).__name__}: {e}") from e


def _build(path: Path, raw: RawSheet, config: EngineConfig, options: ReportOptions) -> ReportPayload:
    try:
        return build_report(
            raw,
            path.name,
            report_type=options.report_type,
            template_id=options.template_id,
            client=options.client,
            period=options.period,
            settings=config.analysis,
        )
    except EmptyInputError as e:
        raise _FileFailure("parse", "EMPTY_INPUT", str(e)) from e
    except MissingColumnsError as e:
        raise _FileFailure("parse", "MISSING_COLUMNS", str(e)) from e
    except ReportValidationError as e:
        raise _FileFailure("analyze", "INVALID_PAYLOAD", str(e)) from e


def _write(path: Path, payload: ReportPayload, output_dir: Path) -> Path:
    out = output_dir / f"{path.stem}{REPORT_SUFFIX}"
    document = {"source": path.name, "summary": payload.summary(), "report": payload.to_dict()}
    try:
        out.write_text(json.dumps(document, ensure_ascii=False, indent=2, default=str), encoding="utf-8")
    except OSError as e:
        raise _FileFailure("write", "WRITE_ERROR", str(e)) from e
    return out


def _process_single_file(
    path: Path,
    config: EngineConfig,
    options: ReportOptions,
    output_dir: Path,
    error_log: ErrorLogBuffer,
) -> FileStat:
    started = datetime.now(UTC)
    try:
        raw = _read(path, config)
        payload = _build(path, raw, config, options)
        out = _write(path, payload, output_dir)
    except _FileFailure as failure:
        elapsed = (datetime.now(UTC) - started).total_seconds()
        logger.error(f"{path.name}: {failure.error_type} ({failure.stage}): {failure}")
        error_log.append(ErrorRecord.create(path.name, failure.stage, failure.error_type, str(failure)))
        return FileStat(
            file_name=path.name,
            status="failed",
            format=None,
            metrics=0,
            charts=0,
            elapsed_seconds=elapsed,
            error=failure.error_type,
        )

    elapsed = (datetime.now(UTC) - started).total_seconds()
    logger.info(f"{path.name}: wrote {out.name}")
    return FileStat(
        file_name=path.name,
        status="success",
        format=payload.source_format,
        metrics=len(payload.metrics),
        charts=len(payload.charts),
        elapsed_seconds=elapsed,
        output_path=str(out),
    )


def process_all(
    paths: Sequence[Path],
    config: EngineConfig,
    options: ReportOptions | None = None,
) -> ProcessingResult:
    """Build one report per input file.

    Raises:
        ProcessingError: unknown template id or unusable output directory
    """
    options = options or ReportOptions()
    start_time = datetime.now(UTC)

    if options.template_id:
        try:
            get_template(options.template_id)
        except UnknownTemplateError as e:
            raise ProcessingError(str(e)) from e

    output_dir = Path(config.output_directory)
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ProcessingError(f"cannot create output directory {output_dir}: {e}") from e

    error_log = ErrorLogBuffer(config.logs_directory)
    file_stats: list[FileStat] = []
    with ProgressTracker(len(paths)) as progress:
        for path in paths:
            progress.start_file(path)
            stat = _process_single_file(path, config, options, output_dir, error_log)
            progress.finish_file(success=stat.status == "success")
            file_stats.append(stat)

    try:
        log_path = error_log.flush()
    except OSError as e:
        # the reports themselves are already written
        logger.warning(f"could not write error log: {e}")
    else:
        if log_path is not None:
            logger.warning(f"error details written to {log_path}")

    end_time = datetime.now(UTC)
    succeeded = [s for s in file_stats if s.status == "success"]
    return ProcessingResult(
        success_files=len(succeeded),
        failed_files=len(file_stats) - len(succeeded),
        total_metrics=sum(s.metrics for s in succeeded),
        total_charts=sum(s.charts for s in succeeded),
        start_time=start_time,
        end_time=end_time,
        elapsed_seconds=(end_time - start_time).total_seconds(),
        file_stats=file_stats,
    )
