from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

"""Abstract grid collaborator consumed by the conversion core.

workbook -> sheets (by name / 0-based index) -> rows (0-based) -> cells
(0-based column). Concrete adapters live in ``openpyxl_grid`` and
``frame_grid``; the core never imports them.
"""

__all__ = [
    "CellKind",
    "CellStyle",
    "GridCell",
    "GridRow",
    "GridSheet",
    "GridWorkbook",
]


class CellKind(Enum):
    STRING = "string"
    NUMERIC = "numeric"
    BOOLEAN = "boolean"
    BLANK = "blank"
    FORMULA = "formula"
    ERROR = "error"
    UNKNOWN = "unknown"
    DATE = "date"  # write-only target kind; dates read back as date-formatted NUMERIC


@dataclass(frozen=True)
class CellStyle:
    """Style object keyed by number format."""

    number_format: str


class GridCell(ABC):
    @property
    @abstractmethod
    def column_index(self) -> int: ...

    @property
    @abstractmethod
    def kind(self) -> CellKind: ...

    @property
    def cached_kind(self) -> CellKind:
        """Kind of the cached result of a formula cell (UNKNOWN if unavailable)."""
        return CellKind.UNKNOWN

    @property
    @abstractmethod
    def string_value(self) -> str: ...

    @property
    @abstractmethod
    def numeric_value(self) -> float: ...

    @property
    @abstractmethod
    def boolean_value(self) -> bool: ...

    @property
    @abstractmethod
    def date_value(self) -> datetime: ...

    @property
    @abstractmethod
    def is_date_formatted(self) -> bool: ...

    @property
    @abstractmethod
    def number_format(self) -> str: ...

    @abstractmethod
    def set_value(self, kind: CellKind, value: Any) -> None: ...

    @abstractmethod
    def apply_style(self, style: CellStyle) -> None: ...

    @property
    def effective_kind(self) -> CellKind:
        return self.cached_kind if self.kind is CellKind.FORMULA else self.kind


class GridRow(ABC):
    @property
    @abstractmethod
    def row_index(self) -> int: ...

    @abstractmethod
    def cell(self, column_index: int) -> GridCell | None: ...

    @abstractmethod
    def create_cell(self, column_index: int) -> GridCell: ...

    @abstractmethod
    def cells(self) -> Iterator[GridCell]:
        """Physical (non-empty) cells in column order."""

    @abstractmethod
    def clear(self) -> None:
        """Remove the values of every cell in the row."""

    def cell_or_create(self, column_index: int) -> GridCell:
        return self.cell(column_index) or self.create_cell(column_index)


class GridSheet(ABC):
    @property
    @abstractmethod
    def name(self) -> str: ...

    @property
    @abstractmethod
    def first_row_index(self) -> int | None:
        """Index of the first physical row, None for an empty sheet."""

    @property
    @abstractmethod
    def last_row_index(self) -> int | None: ...

    @abstractmethod
    def row(self, row_index: int) -> GridRow | None: ...

    @abstractmethod
    def create_row(self, row_index: int) -> GridRow: ...

    @abstractmethod
    def rows(self) -> Iterator[GridRow]:
        """Physical rows in ascending order."""

    def row_or_create(self, row_index: int) -> GridRow:
        return self.row(row_index) or self.create_row(row_index)


class GridWorkbook(ABC):
    @property
    @abstractmethod
    def sheet_names(self) -> list[str]: ...

    @abstractmethod
    def sheet(self, name: str) -> GridSheet | None: ...

    def sheet_at(self, index: int) -> GridSheet | None:
        names = self.sheet_names
        if 0 <= index < len(names):
            return self.sheet(names[index])
        return None

    @abstractmethod
    def create_sheet(self, name: str | None = None) -> GridSheet: ...

    @abstractmethod
    def builtin_format(self, format_id: int) -> str | None:
        """Number format string for a builtin format id, None if unknown."""

    def create_style(self, number_format: str) -> CellStyle:
        return CellStyle(number_format=number_format)
