"""Tests for the spreadsheet reader (xlsx / csv -> RawSheet)."""
from __future__ import annotations

from datetime import datetime
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from report_engine.excel.normalizer import EmptyInputError
from report_engine.excel.reader import UnsupportedFileError, coerce_cell, frame_to_raw_sheet, read_raw_sheet


def _make_excel(tmp_path: Path, name: str, sheets: dict[str, list[list[object]]]) -> Path:
    p = tmp_path / name
    with pd.ExcelWriter(p, engine="openpyxl") as writer:
        for sheet, rows in sheets.items():
            pd.DataFrame(rows).to_excel(writer, sheet_name=sheet, header=False, index=False)
    return p


def test_read_xlsx_first_sheet_only(temp_workdir: Path):
    excel = _make_excel(
        temp_workdir,
        "two_sheets.xlsx",
        {
            "First": [["date", "revenue"], ["2024-01-05", 4500], ["2024-01-10", 5000.5]],
            "Second": [["ignored"], ["x"]],
        },
    )
    raw = read_raw_sheet(excel)
    assert raw == (("date", "revenue"), ("2024-01-05", 4500), ("2024-01-10", 5000.5))


def test_read_csv_keeps_ragged_rows(temp_workdir: Path, write_csv):
    path = write_csv(
        temp_workdir / "report.csv",
        [["Monthly Report"], ["Visits", "10"], [], ["SUMMARY"], ["Orders", "2", "x"]],
    )
    raw = read_raw_sheet(path)
    assert raw == (("Monthly Report",), ("Visits", "10"), (), ("SUMMARY",), ("Orders", "2", "x"))


def test_read_xlsx_default_treats_na_as_missing(temp_workdir: Path):
    excel = _make_excel(temp_workdir, "na.xlsx", {"S": [["country", "code"], ["Namibia", "NA"]]})
    raw = read_raw_sheet(excel)
    assert raw[1] == ("Namibia",)


def test_read_xlsx_keep_na_strings_preserves_na(temp_workdir: Path):
    excel = _make_excel(temp_workdir, "na.xlsx", {"S": [["country", "code"], ["Namibia", "NA"]]})
    raw = read_raw_sheet(excel, keep_na_strings=["NA"])
    assert raw[1] == ("Namibia", "NA")


def test_read_csv_keep_na_strings(temp_workdir: Path, write_csv):
    path = write_csv(temp_workdir / "na.csv", [["country", "code"], ["Namibia", "NA"], ["Peru", "N/A"]])
    raw = read_raw_sheet(path, keep_na_strings=["NA"])
    assert raw[1] == ("Namibia", "NA")
    # other default NA strings are still treated as missing
    assert raw[2] == ("Peru",)


def test_unsupported_suffix(temp_workdir: Path):
    path = temp_workdir / "notes.txt"
    path.write_text("hello", encoding="utf-8")
    with pytest.raises(UnsupportedFileError, match="notes.txt"):
        read_raw_sheet(path)


def test_empty_csv_raises(temp_workdir: Path):
    path = temp_workdir / "empty.csv"
    path.write_text("", encoding="utf-8")
    with pytest.raises(EmptyInputError):
        read_raw_sheet(path)


@pytest.mark.parametrize(
    "value, expected",
    [
        (None, None),
        (np.nan, None),
        (pd.NaT, None),
        (np.int64(7), 7),
        (np.float64(2.0), 2),
        (2.5, 2.5),
        (True, "TRUE"),
        (pd.Timestamp("2024-01-05"), "2024-01-05"),
        (datetime(2024, 1, 5, 9, 30), "2024-01-05T09:30:00"),
        ("  padded ", "padded"),
        ("   ", None),
    ],
)
def test_coerce_cell(value, expected):
    assert coerce_cell(value) == expected


def test_frame_to_raw_sheet_trims_trailing_blanks():
    df = pd.DataFrame([["a", None, None], [None, None, None], ["b", 1, None], [None, None, None]])
    assert frame_to_raw_sheet(df) == (("a",), (), ("b", 1))
