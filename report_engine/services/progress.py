from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

"""File progress display with tqdm (TTY only).

Non-TTY runs (CI, redirected output) get no bar at all, so logs stay free of
ANSI control sequences.
"""

__all__ = [
    "ProgressTracker",
    "is_tty_enabled",
]


def is_tty_enabled() -> bool:
    return sys.stdout.isatty()


class ProgressTracker:
    """One tqdm bar over the input files of a batch run."""

    def __init__(self, total_files: int, *, description: str = "Building reports") -> None:
        self.total_files = total_files
        self.description = description
        self.current_file = 0
        self.failed_files = 0

        self.enabled = is_tty_enabled()
        self.pbar: TqdmType[Any] | None
        if self.enabled:
            self.pbar = tqdm(
                total=total_files,
                desc=description,
                unit="file",
                leave=True,
                position=0,
                ncols=80,
                ascii=True,
            )
        else:
            self.pbar = None

    def start_file(self, file_path: Path) -> None:
        self.current_file += 1
        if self.pbar is not None:
            self.pbar.set_description(f"{self.description} ({file_path.name})")

    def finish_file(self, success: bool = True) -> None:
        if not success:
            self.failed_files += 1
        if self.pbar is not None:
            self.pbar.update(1)
            self.pbar.set_description(self.description)
            if self.failed_files:
                self.pbar.set_postfix(failed=self.failed_files)

    def close(self) -> None:
        if self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> ProgressTracker:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
