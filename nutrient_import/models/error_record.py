from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord model for the JSON Lines error log.

One record is written per failed persistence batch, plus one per file-level
failure (unreadable workbook, failed name lookup). ``batch=-1`` marks a
file-level error where no batch applies.
"""

__all__ = [
    "ErrorRecord",
    "FILE_LEVEL_BATCH",
]

FILE_LEVEL_BATCH = -1


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        file: Spreadsheet file name being imported
        batch: 1-based batch number, or -1 for file-level errors
        error_type: Error classification in UPPER_SNAKE_CASE format
        db_message: Database error message or description
    """
    timestamp: str  # ISO8601 UTC
    file: str
    batch: int  # 不明な場合 -1
    error_type: str  # UPPER_SNAKE
    db_message: str

    @staticmethod
    def create(file: str, batch: int, error_type: str, db_message: str) -> ErrorRecord:
        """Create a new ErrorRecord stamped with the current UTC time."""
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            file=file,
            batch=batch,
            error_type=error_type,
            db_message=db_message,
        )

    def to_json_line(self) -> str:
        # 追加キー阻止: dataclass -> dict して json.dumps
        return json.dumps(asdict(self), ensure_ascii=False)
