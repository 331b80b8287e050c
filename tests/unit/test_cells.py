from __future__ import annotations

import math
from datetime import date, datetime

import pandas as pd
import pytest

from report_engine.excel.cells import (
    find_column,
    format_column_name,
    is_section_header,
    parse_date,
    parse_value,
    round_number,
    slugify,
    strip_number,
    title_label,
    to_float,
)


@pytest.mark.parametrize(
    "value, expected",
    [
        (4500, 4500.0),
        (2.5, 2.5),
        ("1,234.5", 1234.5),
        ("  42 ", 42.0),
        ("-7", -7.0),
        ("abc", None),
        ("", None),
        (None, None),
        (True, None),
        (float("nan"), None),
        (float("inf"), None),
        ("2024-01-05", None),
    ],
)
def test_to_float(value, expected):
    assert to_float(value) == expected


def test_strip_number_drops_decorations():
    assert strip_number("$1,200") == 1200.0
    assert strip_number("2.5%") == 2.5
    assert strip_number("n/a") is None
    assert strip_number(7) == 7.0


def test_parse_value_units():
    assert parse_value("2.5%").numeric == 2.5
    assert parse_value("2.5%").unit == "%"
    assert parse_value("$1,200").numeric == 1200.0
    assert parse_value("$1,200").unit == "$"
    assert parse_value("150000").unit == ""
    # text never raises, it becomes 0
    assert parse_value("Acme Corp").numeric == 0.0
    assert parse_value(None).numeric == 0.0


@pytest.mark.parametrize(
    "text, expected",
    [
        ("DEMOGRAPHICS", True),
        ("Summary:", True),
        ("CTR", False),  # too short
        ("Total Clicks", False),
        ("2024-01-05", False),
        ("", False),
    ],
)
def test_is_section_header(text, expected):
    assert is_section_header(text) is expected


def test_slugify_and_format_column_name():
    assert slugify("  Total   Revenue ") == "total_revenue"
    assert slugify("Reorder Level") == "reorder_level"
    assert format_column_name("total_revenue") == "Total Revenue"
    assert format_column_name("ctr") == "Ctr"


def test_title_label_only_changes_shouted_labels():
    assert title_label("TOTAL IMPRESSIONS") == "Total Impressions"
    assert title_label("CTR") == "Ctr"
    assert title_label("Age 18-24") == "Age 18-24"


@pytest.mark.parametrize(
    "value, decimals, expected",
    [
        (1.236, 2, 1.24),
        (-0.125, 2, -0.13),
        (0.125, 2, 0.13),
        (10, 2, 10.0),
        (1.5, 0, 2.0),
        (float("nan"), 2, 0.0),
        (float("inf"), 2, 0.0),
    ],
)
def test_round_number_half_away_from_zero(value, decimals, expected):
    result = round_number(value, decimals)
    assert result == expected
    assert math.isfinite(result)


def test_parse_date_variants():
    assert parse_date("2024-01-05") == pd.Timestamp("2024-01-05")
    assert parse_date(date(2024, 3, 1)) == pd.Timestamp("2024-03-01")
    assert parse_date(datetime(2024, 3, 1, 12, 30)) == pd.Timestamp("2024-03-01 12:30")
    assert parse_date("not a date") is None
    assert parse_date(45000) is None
    assert parse_date(None) is None


def test_find_column_first_match_wins():
    columns = ("product", "order_date", "revenue", "period")
    assert find_column(columns, ("date", "period")) == "order_date"
    assert find_column(columns, ("missing",)) is None
