from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

"""Processing result models for the batch binding service.

ProcessingResult aggregates one run over a source directory and feeds the
SUMMARY line (sheetbind/services/summary.py).
"""

__all__ = [
    "FileStat",
    "ProcessingResult",
]


@dataclass(frozen=True)
class FileStat:
    """Per-file processing statistics."""
    file_name: str
    status: str  # success/failed
    converted_rows: int
    failed_rows: int
    elapsed_seconds: float


@dataclass(frozen=True)
class ProcessingResult:
    """Aggregated results of one run."""
    success_files: int
    failed_files: int
    converted_rows: int  # rows converted into records, all files
    failed_rows: int  # rows reported as failed, all files
    skipped_sheets: int  # configured sheets missing from a workbook
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float  # end - start
    throughput_rows_per_sec: float  # converted_rows / elapsed
    file_stats: list[FileStat] | None = None

    @property
    def total_files(self) -> int:
        return self.success_files + self.failed_files
