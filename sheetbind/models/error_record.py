from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

from .conversion_result import ConversionResult

"""ErrorRecord model for error logging.

One JSON Lines entry per failed row (or per unreadable file, with row=-1 and
column=-1). Keys are fixed; see tests/contract/test_error_log_schema_contract.py.
"""

__all__ = [
    "FILE_LEVEL_SHEET",
    "ErrorRecord",
]

FILE_LEVEL_SHEET = "<FILE_LEVEL>"


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        file: workbook file name
        sheet: sheet name (``<FILE_LEVEL>`` for file-level errors)
        row: 1-based row number as shown by spreadsheet tools, -1 if unknown
        column: 0-based column index of the failing cell, -1 if unknown
        error_type: error classification in UPPER_SNAKE_CASE
        message: failure reason
    """
    timestamp: str  # ISO8601 UTC
    file: str
    sheet: str
    row: int  # -1 when unknown
    column: int  # -1 when unknown
    error_type: str  # UPPER_SNAKE
    message: str

    @staticmethod
    def create(file: str, sheet: str, row: int, error_type: str, message: str, column: int = -1) -> ErrorRecord:
        """Create a new ErrorRecord with current UTC timestamp."""
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            file=file,
            sheet=sheet,
            row=row,
            column=column,
            error_type=error_type,
            message=message,
        )

    @staticmethod
    def from_result(file: str, sheet: str, result: ConversionResult) -> ErrorRecord:
        """Build the record for a failed row (0-based row index -> 1-based row)."""
        return ErrorRecord.create(
            file=file,
            sheet=sheet,
            row=result.row_index + 1,
            error_type=result.error_type or "CONVERSION_ERROR",
            message=result.failure_reason,
            column=result.failed_column_index,
        )

    def to_json_line(self) -> str:
        """Serialize to one JSON line (no extra keys)."""
        return json.dumps(asdict(self), ensure_ascii=False)
