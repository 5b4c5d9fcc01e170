from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path

from .sheet_process import SheetProcess

"""ExcelFile model and FileStatus enum.

State transitions: pending -> processing -> (success | failed). A file fails
when it cannot be opened or when any of its configured sheets reports a failed
row or a sheet-level error.
"""

__all__ = [
    "FileStatus",
    "ExcelFile",
]


class FileStatus(Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class ExcelFile:
    """Processing context for a single workbook file."""
    path: Path
    name: str
    sheets: list[SheetProcess]
    start_time: datetime | None = None  # UTC
    end_time: datetime | None = None  # UTC
    status: FileStatus = FileStatus.PENDING
    converted_rows: int = 0
    failed_rows: int = 0
    skipped_sheets: int = 0  # configured sheets missing from the workbook
    error: str | None = None  # failure summary
