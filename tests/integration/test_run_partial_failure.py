from __future__ import annotations

import json
from pathlib import Path

from report_engine.cli.__main__ import main as cli_main

"""Integration test: one broken input does not stop the batch.

The good file still gets its report, the broken one is logged as ERROR and
recorded in logs/errors-*.log, and the exit code is 2.
"""


def test_partial_failure_exit_code_and_error_log(temp_workdir: Path, write_config: Path, sales_xlsx: Path, write_csv, capsys):
    data = temp_workdir / "data"
    (data / "corrupt.xlsx").write_bytes(b"definitely not a workbook")
    write_csv(data / "stock.csv", [("sku", "warehouse", "units"), ("A-1", "Tokyo", 5), ("B-2", "Osaka", 7)])

    code = cli_main(["report", "data", "--type", "sales"])
    out = capsys.readouterr().out

    assert code == 2
    assert "SUMMARY files=3/3 success=1 failed=2" in out
    assert "ERROR corrupt.xlsx: READ_ERROR (read)" in out
    assert "ERROR stock.csv: MISSING_COLUMNS (parse)" in out
    assert "WARN error details written to" in out

    assert (temp_workdir / "reports" / "Acme_sales.report.json").exists()
    assert not (temp_workdir / "reports" / "stock.report.json").exists()

    logs = list((temp_workdir / "logs").glob("errors-*.log"))
    assert len(logs) == 1
    records = [json.loads(line) for line in logs[0].read_text(encoding="utf-8").splitlines()]
    assert [(r["file"], r["error_type"]) for r in records] == [
        ("corrupt.xlsx", "READ_ERROR"),
        ("stock.csv", "MISSING_COLUMNS"),
    ]
    assert "revenue" in records[1]["message"]


def test_all_inputs_failing_is_still_partial(temp_workdir: Path, write_config: Path, capsys):
    (temp_workdir / "data" / "empty.csv").write_text("", encoding="utf-8")
    code = cli_main(["report", "data"])
    out = capsys.readouterr().out
    assert code == 2
    assert "SUMMARY files=1/1 success=0 failed=1 metrics=0 charts=0" in out
