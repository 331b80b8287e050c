from __future__ import annotations

from ..models.processing_result import ProcessingResult

"""SUMMARY line rendering for the batch report command.

Format (one line, stable key order):
SUMMARY files={done}/{total} success={s} failed={f} metrics={m} charts={c} elapsed_sec={e}
"""

__all__ = [
    "format_elapsed",
    "render_summary_line",
]


def format_elapsed(seconds: float) -> str:
    """Render seconds without scientific notation or a trailing '.0'."""
    if seconds == 0:
        return "0"
    if seconds == int(seconds):
        return str(int(seconds))
    if seconds < 0.01:
        return f"{seconds:.6f}".rstrip("0").rstrip(".")
    return str(round(seconds, 3))


def render_summary_line(result: ProcessingResult, total_files: int | None = None) -> str:
    """Render the SUMMARY line for a batch run.

    ``total_files`` is the number of inputs found; it defaults to the number
    processed.

    Examples:
        >>> from datetime import datetime, timezone
        >>> start = datetime(2024, 1, 1, 10, 0, 0, tzinfo=timezone.utc)
        >>> end = datetime(2024, 1, 1, 10, 0, 2, tzinfo=timezone.utc)
        >>> result = ProcessingResult(
        ...     success_files=1, failed_files=0, total_metrics=12, total_charts=3,
        ...     start_time=start, end_time=end, elapsed_seconds=2.0,
        ... )
        >>> render_summary_line(result)
        'SUMMARY files=1/1 success=1 failed=0 metrics=12 charts=3 elapsed_sec=2'
    """
    total = result.total_files if total_files is None else total_files
    return (
        f"SUMMARY files={result.total_files}/{total} "
        f"success={result.success_files} "
        f"failed={result.failed_files} "
        f"metrics={result.total_metrics} "
        f"charts={result.total_charts} "
        f"elapsed_sec={format_elapsed(result.elapsed_seconds)}"
    )
