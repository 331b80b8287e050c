from __future__ import annotations

import json
import re
from pathlib import Path

from report_engine.cli.__main__ import main as cli_main

"""Integration test: successful batch run over a directory (two real files).

End-to-end through the CLI: xlsx on disk -> report documents in ./reports,
with the SUMMARY line agreeing with what was written.
"""

SUMMARY_RE = re.compile(
    r"^SUMMARY files=(\d+)/(\d+) success=(\d+) failed=(\d+) metrics=(\d+) charts=(\d+) elapsed_sec=\S+$",
    re.MULTILINE,
)


def test_report_directory_success(temp_workdir: Path, write_config: Path, sales_xlsx: Path, report_xlsx: Path, capsys):
    code = cli_main(["report", "data"])
    out = capsys.readouterr().out

    assert code == 0
    assert "INFO Building reports for 2 file(s) into ./reports" in out
    m = SUMMARY_RE.search(out)
    assert m, out
    files_done, files_total, success, failed, metrics, charts = map(int, m.groups())
    assert (files_done, files_total, success, failed) == (2, 2, 2, 0)

    reports = sorted((temp_workdir / "reports").glob("*.report.json"))
    assert [p.name for p in reports] == ["Acme_sales.report.json", "platform_report.report.json"]
    documents = [json.loads(p.read_text(encoding="utf-8")) for p in reports]
    assert metrics == sum(d["summary"]["metricsCount"] for d in documents)
    assert charts == sum(d["summary"]["chartsCount"] for d in documents)

    sales, platform = documents
    assert sales["summary"]["format"] == "horizontal"
    assert sales["summary"]["hasTrendAnalysis"] is True
    assert platform["summary"]["format"] == "report"
    assert platform["report"]["meta"]["client"] == "Acme Corp"
    # no failures -> no error log file
    assert list((temp_workdir / "logs").glob("errors-*.log")) == []


def test_report_single_file_with_overrides(temp_workdir: Path, write_config: Path, sales_xlsx: Path, capsys):
    code = cli_main(
        ["report", str(sales_xlsx), "--type", "sales", "--template", "marketing_roi", "--client", "Initech"]
    )
    assert code == 0
    document = json.loads((temp_workdir / "reports" / "Acme_sales.report.json").read_text(encoding="utf-8"))
    meta = document["report"]["meta"]
    assert meta["client"] == "Initech"
    assert meta["templateId"] == "marketing_roi"
    assert "SUMMARY files=1/1 success=1 failed=0" in capsys.readouterr().out


def test_report_debug_flag_enables_debug_lines(temp_workdir: Path, write_config: Path, sales_xlsx: Path, capsys):
    code = cli_main(["--debug", "report", str(sales_xlsx)])
    assert code == 0
    assert "DEBUG debug mode enabled" in capsys.readouterr().out
