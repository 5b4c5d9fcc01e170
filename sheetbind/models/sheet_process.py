from __future__ import annotations

from dataclasses import dataclass

from .config_models import SheetBindingConfig

"""SheetProcess model: outcome of converting one sheet of one workbook."""

__all__ = [
    "SheetProcess",
]


@dataclass(frozen=True)
class SheetProcess:
    sheet_name: str
    mapping: SheetBindingConfig
    converted_rows: int = 0
    failed_rows: int = 0
    stopped_early: bool = False  # max_error_rows cutoff hit
    error: str | None = None  # sheet-level error (bad target, unknown resolver)

    @property
    def ok(self) -> bool:
        return self.error is None and self.failed_rows == 0
