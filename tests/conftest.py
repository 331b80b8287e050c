# Shared pytest fixtures
from __future__ import annotations

from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

import pandas as pd
import pytest

from report_engine.logging.init import reset_logging
from report_engine.models.sheet import NormalizedTable, SheetFormat

SALES_HEADER = ["Date", "Product", "Quantity", "Revenue"]

SALES_RAW = (
    ("Date", "Product", "Quantity", "Revenue"),
    ("2024-01-05", "A", 150, 4500),
    ("2024-01-10", "B", 50, 5000),
)

PLATFORM_REPORT_RAW = (
    ("Campaign Performance Report",),
    ("Advertiser:", "Acme Corp"),
    ("Date Range:", "2024-01-01 - 2024-01-31"),
    (),
    ("TOTAL IMPRESSIONS", "150,000"),
    ("Total Clicks", "3,750"),
    ("CTR", "2.5%"),
    ("Spend", "$1,200"),
    (),
    ("DEMOGRAPHICS",),
    ("Age Group", "Impressions", "Clicks", "CTR"),
    ("18-24", 45000, 1300, "2.9%"),
    ("25-34", 60000, 1500, "2.5%"),
    ("35-44", 45000, 950, "2.1%"),
    (),
    ("ENGAGEMENT",),
    ("Video Completion Rate", "41%"),
    ("Bounce Rate", "37.5%"),
)


@pytest.fixture(autouse=True)
def _clean_logging():
    # every test starts without the stdout handler so caplog/capsys see fresh state
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def temp_workdir(tmp_path: Path, monkeypatch) -> Path:
    (tmp_path / "config").mkdir()
    (tmp_path / "data").mkdir()
    (tmp_path / "logs").mkdir()
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("REPORT_ENGINE_CONFIG", raising=False)
    return tmp_path


@pytest.fixture()
def sample_config_yaml() -> str:
    return """output_directory: ./reports
logs_directory: ./logs
keep_na_strings: [NA]
analysis:
  anomaly_threshold: 2.0
  forecast_periods: 3
  moving_average_window: 3
  enable_trend_analysis: true
  auto_detect_template: true
preview:
  horizontal_rows: 20
  vertical_rows: 30
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "engine.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def write_xlsx() -> Callable[[Path, Sequence[Sequence[Any]]], Path]:
    """Write a raw grid (header row included) as the first sheet of a workbook."""
    def _write(path: Path, grid: Sequence[Sequence[Any]]) -> Path:
        width = max((len(r) for r in grid), default=0)
        padded = [list(r) + [None] * (width - len(r)) for r in grid]
        pd.DataFrame(padded).to_excel(path, header=False, index=False, engine="openpyxl")
        return path
    return _write


@pytest.fixture()
def write_csv() -> Callable[[Path, Sequence[Sequence[Any]]], Path]:
    def _write(path: Path, grid: Sequence[Sequence[Any]]) -> Path:
        lines = [",".join("" if c is None else str(c) for c in row) for row in grid]
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return path
    return _write


@pytest.fixture()
def sales_xlsx(temp_workdir: Path, write_xlsx) -> Path:
    return write_xlsx(temp_workdir / "data" / "Acme_sales.xlsx", SALES_RAW)


@pytest.fixture()
def report_xlsx(temp_workdir: Path, write_xlsx) -> Path:
    return write_xlsx(temp_workdir / "data" / "platform_report.xlsx", PLATFORM_REPORT_RAW)


def make_table(rows: Sequence[dict[str, Any]], columns: Sequence[str] | None = None) -> NormalizedTable:
    """Horizontal NormalizedTable straight from row dicts."""
    cols = tuple(columns) if columns is not None else tuple(rows[0]) if rows else ()
    return NormalizedTable(
        columns=cols,
        rows=tuple({c: r.get(c) for c in cols} for r in rows),
        format=SheetFormat.HORIZONTAL,
    )


@pytest.fixture()
def table_factory() -> Callable[..., NormalizedTable]:
    return make_table


@pytest.fixture()
def sales_raw():
    return SALES_RAW


@pytest.fixture()
def platform_report_raw():
    return PLATFORM_REPORT_RAW
