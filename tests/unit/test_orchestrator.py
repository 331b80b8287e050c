from __future__ import annotations

import json
from pathlib import Path

import pytest

from report_engine.config.loader import load_config
from report_engine.models.config_models import EngineConfig
from report_engine.models.processing_result import ProcessingResult
from report_engine.services.orchestrator import (
    REPORT_SUFFIX,
    ProcessingError,
    ReportOptions,
    process_all,
    scan_input_files,
)


def _config(root: Path) -> EngineConfig:
    return EngineConfig(output_directory=str(root / "reports"), logs_directory=str(root / "logs"))


def _error_lines(logs_dir: Path) -> list[dict]:
    logs = sorted(logs_dir.glob("errors-*.log"))
    assert len(logs) == 1
    return [json.loads(line) for line in logs[0].read_text(encoding="utf-8").splitlines()]


def test_scan_input_files_success(temp_workdir: Path) -> None:
    data_dir = temp_workdir / "data"
    (data_dir / "b_orders.xlsx").write_bytes(b"test")
    (data_dir / "a_customers.CSV").write_text("x\n")
    (data_dir / "legacy.xls").write_bytes(b"test")
    (data_dir / "readme.txt").write_text("ignore this")
    (data_dir / "nested.xlsx").mkdir()

    files = scan_input_files(data_dir)
    assert [f.name for f in files] == ["a_customers.CSV", "b_orders.xlsx", "legacy.xls"]


def test_scan_input_files_errors(temp_workdir: Path) -> None:
    with pytest.raises(ProcessingError, match="Directory not found"):
        scan_input_files(temp_workdir / "missing")
    some_file = temp_workdir / "data" / "f.csv"
    some_file.write_text("a\n")
    with pytest.raises(ProcessingError, match="not a directory"):
        scan_input_files(some_file)


def test_process_all_no_files(temp_workdir: Path, write_config: Path) -> None:
    config = load_config(write_config)
    result = process_all([], config)
    assert isinstance(result, ProcessingResult)
    assert (result.success_files, result.failed_files, result.total_metrics) == (0, 0, 0)
    assert result.file_stats == []
    assert result.elapsed_seconds >= 0
    # nothing failed -> no error log
    assert list((temp_workdir / "logs").glob("errors-*.log")) == []


def test_process_all_writes_report_documents(temp_workdir: Path, sales_xlsx: Path, report_xlsx: Path) -> None:
    config = _config(temp_workdir)
    result = process_all([sales_xlsx, report_xlsx], config)

    assert result.success_files == 2
    assert result.failed_files == 0
    stats = {s.file_name: s for s in result.file_stats}
    assert stats["Acme_sales.xlsx"].format == "horizontal"
    assert stats["platform_report.xlsx"].format == "report"
    assert result.total_metrics == sum(s.metrics for s in result.file_stats)
    assert result.total_charts == sum(s.charts for s in result.file_stats)

    out = temp_workdir / "reports" / f"Acme_sales{REPORT_SUFFIX}"
    assert stats["Acme_sales.xlsx"].output_path == str(out)
    document = json.loads(out.read_text(encoding="utf-8"))
    assert set(document) == {"source", "summary", "report"}
    assert document["source"] == "Acme_sales.xlsx"
    assert document["summary"]["rowCount"] == 2
    assert document["report"]["meta"]["client"] == "Acme"


def test_process_all_options_override_meta(temp_workdir: Path, sales_xlsx: Path) -> None:
    options = ReportOptions(report_type="sales", client="Globex", period="Q1 2024")
    process_all([sales_xlsx], _config(temp_workdir), options)
    document = json.loads((temp_workdir / "reports" / f"Acme_sales{REPORT_SUFFIX}").read_text(encoding="utf-8"))
    meta = document["report"]["meta"]
    assert (meta["client"], meta["period"], meta["reportType"]) == ("Globex", "Q1 2024", "sales")


def test_process_all_continues_after_failures(temp_workdir: Path, sales_xlsx: Path, write_csv) -> None:
    data = temp_workdir / "data"
    broken = data / "broken.xlsx"
    broken.write_bytes(b"not a zip archive")
    empty = data / "empty.csv"
    empty.write_text("", encoding="utf-8")
    no_rows = write_csv(data / "header_only.csv", [("date", "revenue")])

    result = process_all([broken, empty, no_rows, sales_xlsx], _config(temp_workdir))

    assert result.success_files == 1
    assert result.failed_files == 3
    errors = {s.file_name: s.error for s in result.file_stats if s.status == "failed"}
    assert errors == {
        "broken.xlsx": "READ_ERROR",
        "empty.csv": "EMPTY_INPUT",
        "header_only.csv": "EMPTY_INPUT",
    }
    records = _error_lines(temp_workdir / "logs")
    assert [r["file"] for r in records] == ["broken.xlsx", "empty.csv", "header_only.csv"]
    assert records[0]["stage"] == "read"


def test_process_all_missing_columns_is_parse_failure(temp_workdir: Path, sales_xlsx: Path) -> None:
    result = process_all([sales_xlsx], _config(temp_workdir), ReportOptions(report_type="inventory"))
    assert result.failed_files == 1
    record = _error_lines(temp_workdir / "logs")[0]
    assert (record["stage"], record["error_type"]) == ("parse", "MISSING_COLUMNS")


def test_process_all_write_error(temp_workdir: Path, sales_xlsx: Path) -> None:
    # a directory squatting on the output path makes the write fail
    (temp_workdir / "reports" / f"Acme_sales{REPORT_SUFFIX}").mkdir(parents=True)
    result = process_all([sales_xlsx], _config(temp_workdir))
    assert result.failed_files == 1
    assert result.file_stats[0].error == "WRITE_ERROR"
    assert _error_lines(temp_workdir / "logs")[0]["stage"] == "write"


def test_process_all_unknown_template_is_fatal(temp_workdir: Path, sales_xlsx: Path) -> None:
    with pytest.raises(ProcessingError, match="nope"):
        process_all([sales_xlsx], _config(temp_workdir), ReportOptions(template_id="nope"))
    assert not (temp_workdir / "reports").exists()


def test_process_all_unusable_output_directory(temp_workdir: Path, sales_xlsx: Path) -> None:
    blocker = temp_workdir / "blocker"
    blocker.write_text("file, not dir")
    config = EngineConfig(output_directory=str(blocker), logs_directory=str(temp_workdir / "logs"))
    with pytest.raises(ProcessingError, match="cannot create output directory"):
        process_all([sales_xlsx], config)
