from __future__ import annotations

from dataclasses import dataclass
from typing import Any

"""ConversionResult model (row-level outcome of a read).

Produced once per data row and immutable. ``failed_column_index`` is -1 when the
row converted cleanly (or when the record factory itself failed); on failure
``record`` is None and ``error_type`` carries the classification.
"""

__all__ = [
    "ConversionResult",
]


@dataclass(frozen=True)
class ConversionResult:
    row_index: int  # 0-based physical row
    record: Any = None
    failed_column_index: int = -1
    failure_reason: str = ""
    error_type: str | None = None  # UPPER_SNAKE, None when ok

    @property
    def ok(self) -> bool:
        return self.error_type is None
