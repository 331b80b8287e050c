from __future__ import annotations

import argparse
import json
import os
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from ..config.loader import ConfigError, load_config, resolve_config_path
from ..excel.detector import detect_format
from ..excel.normalizer import EmptyInputError, MissingColumnsError
from ..excel.parser import REQUIRED_COLUMNS, parse_sheet
from ..excel.reader import UnsupportedFileError, read_raw_sheet
from ..logging.init import get_logger, log_summary, setup_logging
from ..models.config_models import AnalysisSettings, EngineConfig
from ..models.sheet import NormalizedTable
from ..services.comparison import compare_datasets, compare_many
from ..services.orchestrator import ProcessingError, ReportOptions, process_all, scan_input_files
from ..services.summary import render_summary_line
from ..services.templates import list_templates
from ..services.trends import PERIOD_TYPES, analyze, compare_periods, sort_by_date

"""CLI entrypoint: ``python -m report_engine.cli <command>``.

Commands:
- report     build <stem>.report.json for each input file (or directory)
- compare    compare two files (or rank three or more)
- trend      trend analysis / period comparison of one file
- templates  list industry templates
- inspect    show detected layout and the first normalized rows

Exit codes: 0 all inputs succeeded, 2 at least one input failed, 1 fatal
(configuration, missing input, unknown template).
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1

# Input problems that count as a failed file rather than a fatal run
_FILE_ERRORS = (UnsupportedFileError, EmptyInputError, MissingColumnsError, OSError, ValueError)


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env with python-dotenv; values override the process environment."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="report-engine", description="Spreadsheet -> report payload engine")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--config", help="Config YAML (default: $REPORT_ENGINE_CONFIG or config/engine.yml)")
    sub = p.add_subparsers(dest="command", required=True)

    rp = sub.add_parser("report", help="Build report payloads")
    rp.add_argument("inputs", nargs="+", help="Spreadsheet files or directories")
    rp.add_argument("--type", dest="report_type", choices=sorted(REQUIRED_COLUMNS), help="Report type")
    rp.add_argument("--template", dest="template_id", help="Template id (default: auto-detect)")
    rp.add_argument("--client")
    rp.add_argument("--period")

    cp = sub.add_parser("compare", help="Compare datasets")
    cp.add_argument("inputs", nargs="+", help="Two files to compare, or three or more to rank")
    cp.add_argument("--key", dest="primary_key", help="Join column for row-level comparison")
    cp.add_argument("--columns", help="Comma separated columns to compare")
    cp.add_argument("--labels", nargs="+", help="Dataset labels (default: file stems)")

    tp = sub.add_parser("trend", help="Trend analysis of one file")
    tp.add_argument("input")
    tp.add_argument("--date-column", required=True)
    tp.add_argument("--value-column", help="Required unless --periods is given")
    tp.add_argument("--periods", choices=list(PERIOD_TYPES), help="Compare the two latest periods instead")

    sub.add_parser("templates", help="List industry templates")

    ip = sub.add_parser("inspect", help="Show detected format and the first rows")
    ip.add_argument("inputs", nargs="+")
    ip.add_argument("--rows", type=int, default=3)
    return p.parse_args(argv)


def _resolve_config(args: argparse.Namespace, *, required: bool) -> EngineConfig | None:
    """Load the config; optional for commands that only need analysis defaults."""
    path = resolve_config_path(args.config, dict(os.environ))
    explicit = bool(args.config or os.environ.get("REPORT_ENGINE_CONFIG"))
    if not required and not explicit and not path.exists():
        return None
    return load_config(path)


def _collect_inputs(inputs: Sequence[str]) -> list[Path]:
    paths: list[Path] = []
    for item in inputs:
        p = Path(item)
        if p.is_dir():
            paths.extend(scan_input_files(p))
        elif p.exists():
            paths.append(p)
        else:
            raise ProcessingError(f"input not found: {p}")
    return paths


def _read_table(path: Path, cfg: EngineConfig | None) -> NormalizedTable:
    raw = read_raw_sheet(path, cfg.keep_na_strings if cfg else None)
    table, _ = parse_sheet(raw)
    return table


def _emit(data: Any) -> None:
    print(json.dumps(data, ensure_ascii=False, indent=2, default=str))


def _cmd_report(args: argparse.Namespace, cfg: EngineConfig) -> int:
    logger = get_logger()
    paths = _collect_inputs(args.inputs)
    logger.info(f"Building reports for {len(paths)} file(s) into {cfg.output_directory}")
    options = ReportOptions(
        report_type=args.report_type,
        template_id=args.template_id,
        client=args.client,
        period=args.period,
    )
    result = process_all(paths, cfg, options)
    summary_line = render_summary_line(result, len(paths))
    # log_summary adds the "SUMMARY " label itself
    log_summary(summary_line.removeprefix("SUMMARY "))
    return EXIT_PARTIAL_FAILURE if result.failed_files > 0 else EXIT_SUCCESS_ALL


def _cmd_compare(args: argparse.Namespace, cfg: EngineConfig | None) -> int:
    paths = _collect_inputs(args.inputs)
    if len(paths) < 2:
        raise ProcessingError("compare needs at least two input files")
    labels = args.labels or [p.stem for p in paths]
    if len(labels) != len(paths):
        raise ProcessingError(f"expected {len(paths)} labels, got {len(labels)}")
    columns = [c.strip() for c in args.columns.split(",") if c.strip()] if args.columns else None
    tables = [_read_table(p, cfg) for p in paths]
    if len(tables) == 2:
        result = compare_datasets(
            tables[0],
            tables[1],
            primary_key=args.primary_key,
            compare_columns=columns,
            labels=(labels[0], labels[1]),
        )
        _emit(result.to_dict())
    else:
        _emit(compare_many(tables, labels=labels, compare_columns=columns).to_dict())
    return EXIT_SUCCESS_ALL


def _cmd_trend(args: argparse.Namespace, cfg: EngineConfig | None) -> int:
    logger = get_logger()
    path = Path(args.input)
    if not path.is_file():
        raise ProcessingError(f"input not found: {path}")
    table = _read_table(path, cfg)
    if args.date_column not in table.columns:
        raise ProcessingError(f"date column not found: {args.date_column} (columns: {', '.join(table.columns)})")
    if args.periods:
        comparison = compare_periods(table.rows, args.date_column, args.periods)
        _emit(comparison.to_dict())
        if not comparison.ok:
            logger.warning(f"period comparison: {comparison.error}")
            return EXIT_PARTIAL_FAILURE
        return EXIT_SUCCESS_ALL
    if not args.value_column or args.value_column not in table.columns:
        raise ProcessingError(f"value column not found: {args.value_column}")
    settings = cfg.analysis if cfg else AnalysisSettings()
    analysis = analyze(
        sort_by_date(table.rows, args.date_column),
        args.date_column,
        args.value_column,
        anomaly_threshold=settings.anomaly_threshold,
        forecast_periods=settings.forecast_periods,
        moving_average_window=settings.moving_average_window,
    )
    _emit(analysis.to_dict())
    return EXIT_SUCCESS_ALL


def _cmd_templates() -> int:
    _emit(list_templates())
    return EXIT_SUCCESS_ALL


def _cmd_inspect(args: argparse.Namespace, cfg: EngineConfig | None) -> int:
    logger = get_logger()
    paths = _collect_inputs(args.inputs)
    failed = 0
    for path in paths:
        print(f"FILE: {path.name}")
        try:
            raw = read_raw_sheet(path, cfg.keep_na_strings if cfg else None)
            decision = detect_format(raw)
            table, _ = parse_sheet(raw)
        except _FILE_ERRORS as e:
            logger.error(f"{path.name}: {type(e).__name__}: {e}")
            failed += 1
            continue
        print(
            f"  format={decision.format.value} rule={decision.matched_rule} "
            f"sections={decision.section_count} ratio={decision.vertical_ratio:.2f}"
        )
        print(f"  columns={list(table.columns)} rows={table.row_count}")
        for row in table.rows[:args.rows]:
            print(f"    {json.dumps(row, ensure_ascii=False, default=str)}")
        for metric in table.extracted_metrics[:args.rows]:
            print(f"    metric: {json.dumps(metric.to_dict(), ensure_ascii=False, default=str)}")
    return EXIT_PARTIAL_FAILURE if failed else EXIT_SUCCESS_ALL


def main(argv: list[str] | None = None) -> int:
    # None のときのみ sys.argv を読む ([] はテストからの明示的な空引数)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    logger = setup_logging(debug=args.debug)
    if args.debug:
        logger.debug("debug mode enabled")

    # .env first so REPORT_ENGINE_CONFIG from it is honoured
    _load_env_file(Path(".env"), override=True)

    if args.command == "templates":
        return _cmd_templates()

    try:
        cfg = _resolve_config(args, required=args.command == "report")
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    try:
        if args.command == "report":
            return _cmd_report(args, cfg)
        if args.command == "compare":
            return _cmd_compare(args, cfg)
        if args.command == "trend":
            return _cmd_trend(args, cfg)
        return _cmd_inspect(args, cfg)
    except ProcessingError as e:
        logger.error(f"processing: {e}")
        return EXIT_FATAL
    except _FILE_ERRORS as e:
        logger.error(f"{type(e).__name__}: {e}")
        return EXIT_PARTIAL_FAILURE


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
