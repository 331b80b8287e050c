from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

"""Batch processing result models.

Aggregates per-file outcomes of the report command for the SUMMARY line.
"""


@dataclass(frozen=True)
class FileStat:
    """Per-file processing statistics."""
    file_name: str
    status: str  # success / failed
    format: str | None  # horizontal / vertical, None when parsing failed
    metrics: int
    charts: int
    elapsed_seconds: float
    output_path: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class ProcessingResult:
    """Aggregated results of one batch run."""
    success_files: int
    failed_files: int
    total_metrics: int
    total_charts: int
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    file_stats: list[FileStat] | None = None

    @property
    def total_files(self) -> int:
        return self.success_files + self.failed_files
