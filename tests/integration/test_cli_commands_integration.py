from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from report_engine.cli.__main__ import main as cli_main

"""CLI subcommands other than ``report``: compare / trend / templates / inspect.

These commands print JSON to stdout between log lines, so the first JSON
document is decoded from where it starts.
"""


def _json_from(out: str) -> Any:
    starts = [i for i in (out.find("\n{\n"), out.find("\n[\n")) if i >= 0]
    if out.startswith(("{", "[")):
        starts.append(-1)
    start = min(starts) + 1
    value, _ = json.JSONDecoder().raw_decode(out[start:])
    return value


@pytest.fixture()
def region_files(temp_workdir: Path, write_csv) -> list[Path]:
    data = temp_workdir / "data"
    header = ("Region", "Manager", "Revenue", "Orders")
    return [
        write_csv(data / "jan.csv", [header, ("north", "Kim", 100, 5), ("south", "Lee", 200, 4)]),
        write_csv(data / "feb.csv", [header, ("north", "Kim", 150, 6), ("south", "Lee", 100, 2)]),
        write_csv(data / "mar.csv", [header, ("north", "Kim", 120, 1), ("east", "Park", 400, 9)]),
    ]


@pytest.fixture()
def daily_csv(temp_workdir: Path, write_csv) -> Path:
    rows = [("Date", "Channel", "Revenue")]
    # deliberately out of order; trend sorts by date first
    rows += [(f"2024-01-{d:02d}", "web", 10 * d) for d in (3, 1, 2, 5, 4, 6)]
    return write_csv(temp_workdir / "data" / "daily.csv", rows)


def test_compare_two_files_with_key(region_files, capsys):
    jan, feb, _ = region_files
    code = cli_main(["compare", str(jan), str(feb), "--key", "region"])
    assert code == 0
    data = _json_from(capsys.readouterr().out)
    assert data["labels"] == ["jan", "feb"]
    assert data["summary"]["revenue"]["jan"] == 300
    assert data["summary"]["revenue"]["feb"] == 250
    assert data["summary"]["revenue"]["direction"] == "down"
    assert {d["region"] for d in data["details"]} == {"north", "south"}


def test_compare_explicit_labels_and_columns(region_files, capsys):
    jan, feb, _ = region_files
    code = cli_main(["compare", str(jan), str(feb), "--columns", "orders", "--labels", "A", "B"])
    assert code == 0
    data = _json_from(capsys.readouterr().out)
    assert list(data["summary"]) == ["orders"]
    assert data["summary"]["orders"]["A"] == 9


def test_compare_many_files_ranks(region_files, capsys):
    code = cli_main(["compare", *map(str, region_files), "--columns", "revenue"])
    assert code == 0
    data = _json_from(capsys.readouterr().out)
    assert data["summary"]["revenue"]["ranking"] == ["mar", "jan", "feb"]
    assert data["rankings"][0]["label"] == "mar"


def test_compare_needs_two_inputs(region_files, capsys):
    assert cli_main(["compare", str(region_files[0])]) == 1
    assert "ERROR processing: compare needs at least two input files" in capsys.readouterr().out


def test_compare_label_count_mismatch(region_files, capsys):
    jan, feb, _ = region_files
    assert cli_main(["compare", str(jan), str(feb), "--labels", "only"]) == 1
    assert "expected 2 labels, got 1" in capsys.readouterr().out


def test_trend_analysis(daily_csv, capsys):
    code = cli_main(["trend", str(daily_csv), "--date-column", "date", "--value-column", "revenue"])
    assert code == 0
    data = _json_from(capsys.readouterr().out)
    assert data["dateColumn"] == "date"
    assert data["valueColumn"] == "revenue"
    # sorted by date: 10, 20, ..., 60
    assert [p["date"] for p in data["growthRates"]["periods"]][:2] == ["2024-01-02", "2024-01-03"]
    assert data["forecast"]["trendDirection"] == "upward"
    assert data["forecast"]["predictions"][0]["predictedValue"] == 70


def test_trend_period_comparison(temp_workdir: Path, write_csv, capsys):
    path = write_csv(
        temp_workdir / "data" / "monthly.csv",
        [
            ("Date", "Channel", "Revenue"),
            ("2024-01-15", "web", 80),
            ("2024-02-01", "web", 60),
            ("2024-02-20", "shop", 40),
            ("2024-03-05", "web", 150),
        ],
    )
    code = cli_main(["trend", str(path), "--date-column", "date", "--periods", "month"])
    assert code == 0
    data = _json_from(capsys.readouterr().out)
    assert data["labels"] == ["2024-02", "2024-03"]
    assert data["summary"]["revenue"]["percentageChange"] == 50


def test_trend_insufficient_periods_is_partial(daily_csv, capsys):
    code = cli_main(["trend", str(daily_csv), "--date-column", "date", "--periods", "month"])
    out = capsys.readouterr().out
    assert code == 2
    assert _json_from(out) == {"error": "insufficient periods"}
    assert "WARN period comparison: insufficient periods" in out


def test_trend_unknown_columns_are_fatal(daily_csv, capsys):
    assert cli_main(["trend", str(daily_csv), "--date-column", "when", "--value-column", "revenue"]) == 1
    assert "date column not found: when" in capsys.readouterr().out
    assert cli_main(["trend", str(daily_csv), "--date-column", "date"]) == 1


def test_templates_lists_registry(temp_workdir: Path, capsys):
    assert cli_main(["templates"]) == 0
    data = _json_from(capsys.readouterr().out)
    assert [t["id"] for t in data] == ["saas", "ecommerce", "marketing_roi", "financial", "hr_analytics", "project"]
    assert data[1]["requiredColumns"] == ["date", "revenue"]


def test_inspect_shows_layout(temp_workdir: Path, sales_xlsx: Path, report_xlsx: Path, capsys):
    code = cli_main(["inspect", "data", "--rows", "1"])
    out = capsys.readouterr().out
    assert code == 0
    assert "FILE: Acme_sales.xlsx" in out
    assert "  format=horizontal rule=None" in out
    assert "  columns=['date', 'product', 'quantity', 'revenue'] rows=2" in out
    assert "FILE: platform_report.xlsx" in out
    assert "format=report rule=report_indicator" in out
    assert '"rawValue": "150,000"' in out
    assert '"section": "main"' in out


def test_inspect_reports_unreadable_file(temp_workdir: Path, capsys):
    (temp_workdir / "data" / "empty.csv").write_text("", encoding="utf-8")
    assert cli_main(["inspect", "data"]) == 2
    assert "ERROR empty.csv: EmptyInputError" in capsys.readouterr().out


def test_config_is_optional_outside_report(temp_workdir: Path, daily_csv, capsys):
    # no config/engine.yml in the work dir
    assert not (temp_workdir / "config" / "engine.yml").exists()
    assert cli_main(["trend", str(daily_csv), "--date-column", "date", "--value-column", "revenue"]) == 0
    assert cli_main(["report", str(daily_csv)]) == 1
    assert "ERROR config: config file not found" in capsys.readouterr().out
