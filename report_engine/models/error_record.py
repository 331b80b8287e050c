from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord model for the structured error log.

One record per input file that could not be turned into a report. The record
shape is fixed (no extra keys) so the JSON Lines log stays machine-readable.
"""

__all__ = [
    "ErrorRecord",
]


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        file: Input filename being processed
        stage: Pipeline stage that failed (read / parse / analyze / write)
        error_type: Error classification in UPPER_SNAKE_CASE format
        message: Human readable description
    """
    timestamp: str  # ISO8601 UTC
    file: str
    stage: str
    error_type: str  # UPPER_SNAKE
    message: str

    @staticmethod
    def create(file: str, stage: str, error_type: str, message: str) -> ErrorRecord:
        """Create a new ErrorRecord stamped with the current UTC time."""
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            file=file,
            stage=stage,
            error_type=error_type,
            message=message,
        )

    def to_json_line(self) -> str:
        """Serialize to a single JSON line (contract keys only)."""
        return json.dumps(asdict(self), ensure_ascii=False)
