from __future__ import annotations

import re
from datetime import UTC, datetime

import pytest

from report_engine.models.processing_result import ProcessingResult
from report_engine.services.summary import format_elapsed, render_summary_line

SUMMARY_PATTERN = re.compile(
    r"^SUMMARY files=(\d+)/(\d+) success=(\d+) failed=(\d+) metrics=(\d+) charts=(\d+) elapsed_sec=([0-9]+(?:\.[0-9]+)?)$"
)


def _result(success: int, failed: int, metrics: int = 0, charts: int = 0, elapsed: float = 1.5) -> ProcessingResult:
    now = datetime.now(UTC)
    return ProcessingResult(
        success_files=success,
        failed_files=failed,
        total_metrics=metrics,
        total_charts=charts,
        start_time=now,
        end_time=now,
        elapsed_seconds=elapsed,
    )


def test_render_summary_line_format():
    line = render_summary_line(_result(3, 1, metrics=42, charts=9, elapsed=1.234))
    m = SUMMARY_PATTERN.match(line)
    assert m, line
    assert m.groups() == ("4", "4", "3", "1", "42", "9", "1.234")


def test_render_summary_line_with_total_files():
    line = render_summary_line(_result(1, 0), total_files=5)
    assert line.startswith("SUMMARY files=1/5 ")


def test_render_summary_line_no_files():
    line = render_summary_line(_result(0, 0, elapsed=0))
    assert line == "SUMMARY files=0/0 success=0 failed=0 metrics=0 charts=0 elapsed_sec=0"


@pytest.mark.parametrize(
    "seconds, expected",
    [
        (0, "0"),
        (2.0, "2"),
        (1.23456, "1.235"),
        (0.000123, "0.000123"),
        (0.5, "0.5"),
    ],
)
def test_format_elapsed(seconds, expected):
    assert format_elapsed(seconds) == expected
    assert "e" not in format_elapsed(seconds)
