from __future__ import annotations

from collections.abc import Iterator
from datetime import date, datetime, time
from pathlib import Path
from typing import Any

import openpyxl
from openpyxl.cell.cell import Cell
from openpyxl.styles.numbers import BUILTIN_FORMATS
from openpyxl.utils.datetime import from_excel, to_excel
from openpyxl.workbook.workbook import Workbook
from openpyxl.worksheet.worksheet import Worksheet

from .grid import CellKind, CellStyle, GridCell, GridRow, GridSheet, GridWorkbook

"""openpyxl adapter for the grid interface.

Indices are 0-based on the grid side and 1-based on the openpyxl side. A row is
physical when at least one of its cells holds a value. Formula cells report the
cached result of a ``data_only`` companion workbook when one is loaded.
"""

__all__ = [
    "OpenpyxlCell",
    "OpenpyxlRow",
    "OpenpyxlSheet",
    "OpenpyxlWorkbook",
]

_EXCEL_EPOCH = date(1899, 12, 30)


def _existing_cell(ws: Worksheet, row: int, column: int) -> Cell | None:
    # Worksheet.cell() creates missing cells (growing max_row); look up without creating
    return ws._cells.get((row, column))  # noqa: SLF001


def _kind_of_value(value: Any) -> CellKind:
    if value is None:
        return CellKind.BLANK
    if isinstance(value, bool):
        return CellKind.BOOLEAN
    if isinstance(value, str):
        return CellKind.STRING
    if isinstance(value, (int, float, datetime, date, time)):
        return CellKind.NUMERIC
    return CellKind.UNKNOWN


class OpenpyxlCell(GridCell):
    def __init__(self, cell: Cell, cached: Cell | None = None) -> None:
        self._cell = cell
        self._cached = cached

    @property
    def _is_formula(self) -> bool:
        return self._cell.data_type == "f"

    @property
    def _source(self) -> Cell | None:
        """Cell holding the scalar value (cached result for formulas)."""
        return self._cached if self._is_formula else self._cell

    @property
    def _scalar(self) -> Any:
        source = self._source
        return source.value if source is not None else None

    @property
    def column_index(self) -> int:
        return self._cell.column - 1

    @property
    def kind(self) -> CellKind:
        value = self._cell.value
        if value is None:
            return CellKind.BLANK
        data_type = self._cell.data_type
        if data_type == "f":
            return CellKind.FORMULA
        if data_type in ("s", "inlineStr"):
            return CellKind.STRING
        if data_type == "b":
            return CellKind.BOOLEAN
        if data_type == "e":
            return CellKind.ERROR
        if data_type in ("n", "d"):
            return _kind_of_value(value)
        return CellKind.UNKNOWN

    @property
    def cached_kind(self) -> CellKind:
        if not self._is_formula or self._cached is None:
            return CellKind.UNKNOWN
        if self._cached.data_type == "e":
            return CellKind.ERROR
        return _kind_of_value(self._cached.value)

    @property
    def string_value(self) -> str:
        value = self._scalar
        return "" if value is None else str(value)

    @property
    def numeric_value(self) -> float:
        value = self._scalar
        if isinstance(value, (datetime, date, time)):
            return float(to_excel(value))
        return float(value) if value is not None else 0.0

    @property
    def boolean_value(self) -> bool:
        return bool(self._scalar)

    @property
    def date_value(self) -> datetime:
        value = self._scalar
        if isinstance(value, datetime):
            return value
        if isinstance(value, date):
            return datetime.combine(value, time())
        if isinstance(value, time):
            return datetime.combine(_EXCEL_EPOCH, value)
        return from_excel(float(value))

    @property
    def is_date_formatted(self) -> bool:
        source = self._source
        return bool(source is not None and source.is_date)

    @property
    def number_format(self) -> str:
        return self._cell.number_format

    def set_value(self, kind: CellKind, value: Any) -> None:
        if kind is CellKind.BLANK:
            self._cell.value = None
        elif kind is CellKind.STRING:
            self._cell.value = value
            # keep strings starting with '=' from turning into formulas
            self._cell.data_type = "s"
        elif kind is CellKind.NUMERIC:
            self._cell.value = float(value)
        elif kind is CellKind.BOOLEAN:
            self._cell.value = bool(value)
        elif kind is CellKind.DATE:
            self._cell.value = value
        else:
            raise ValueError(f"cannot write cell kind {kind.value}")

    def apply_style(self, style: CellStyle) -> None:
        self._cell.number_format = style.number_format


class OpenpyxlRow(GridRow):
    def __init__(self, sheet: OpenpyxlSheet, row_index: int) -> None:
        self._sheet = sheet
        self._row_index = row_index

    @property
    def row_index(self) -> int:
        return self._row_index

    def cell(self, column_index: int) -> GridCell | None:
        cell = _existing_cell(self._sheet.worksheet, self._row_index + 1, column_index + 1)
        if cell is None:
            return None
        return self._sheet.wrap(cell)

    def create_cell(self, column_index: int) -> GridCell:
        cell = self._sheet.worksheet.cell(row=self._row_index + 1, column=column_index + 1)
        return self._sheet.wrap(cell)

    def _raw_cells(self) -> list[Cell]:
        ws = self._sheet.worksheet
        row = self._row_index + 1
        found = (_existing_cell(ws, row, c) for c in range(1, ws.max_column + 1))
        return [cell for cell in found if cell is not None]

    def cells(self) -> Iterator[GridCell]:
        for cell in self._raw_cells():
            if cell.value is not None:
                yield self._sheet.wrap(cell)

    def clear(self) -> None:
        for cell in self._raw_cells():
            cell.value = None


class OpenpyxlSheet(GridSheet):
    def __init__(self, worksheet: Worksheet, cached: Worksheet | None = None) -> None:
        self.worksheet = worksheet
        self._cached = cached

    def wrap(self, cell: Cell) -> OpenpyxlCell:
        cached = None
        if self._cached is not None and cell.data_type == "f":
            cached = _existing_cell(self._cached, cell.row, cell.column)
        return OpenpyxlCell(cell, cached)

    @property
    def name(self) -> str:
        return self.worksheet.title

    def _physical_rows(self) -> list[int]:
        """Sorted 0-based indices of rows holding at least one value."""
        rows = {r for (r, _), cell in list(self.worksheet._cells.items()) if cell.value is not None}  # noqa: SLF001
        return sorted(r - 1 for r in rows)

    @property
    def first_row_index(self) -> int | None:
        rows = self._physical_rows()
        return rows[0] if rows else None

    @property
    def last_row_index(self) -> int | None:
        rows = self._physical_rows()
        return rows[-1] if rows else None

    def row(self, row_index: int) -> GridRow | None:
        ws = self.worksheet
        target = row_index + 1
        for column in range(1, ws.max_column + 1):
            cell = _existing_cell(ws, target, column)
            if cell is not None and cell.value is not None:
                return OpenpyxlRow(self, row_index)
        return None

    def create_row(self, row_index: int) -> GridRow:
        return OpenpyxlRow(self, row_index)

    def rows(self) -> Iterator[GridRow]:
        for row_index in self._physical_rows():
            yield OpenpyxlRow(self, row_index)


class OpenpyxlWorkbook(GridWorkbook):
    """Grid workbook backed by an ``openpyxl.Workbook``.

    ``cached`` is an optional ``data_only=True`` copy of the same file, used for
    the cached results of formula cells.
    """

    def __init__(self, workbook: Workbook, cached: Workbook | None = None) -> None:
        self.workbook = workbook
        self._cached = cached

    @classmethod
    def load(cls, path: Path | str, *, with_cached_values: bool = True) -> OpenpyxlWorkbook:
        wb = openpyxl.load_workbook(str(path))
        cached = openpyxl.load_workbook(str(path), data_only=True) if with_cached_values else None
        return cls(wb, cached)

    @classmethod
    def new(cls) -> OpenpyxlWorkbook:
        wb = openpyxl.Workbook()
        wb.remove(wb.active)
        return cls(wb)

    def save(self, path: Path | str) -> Path:
        path = Path(path)
        self.workbook.save(str(path))
        return path

    @property
    def sheet_names(self) -> list[str]:
        return list(self.workbook.sheetnames)

    def sheet(self, name: str) -> GridSheet | None:
        if name not in self.workbook.sheetnames:
            return None
        cached = None
        if self._cached is not None and name in self._cached.sheetnames:
            cached = self._cached[name]
        return OpenpyxlSheet(self.workbook[name], cached)

    def create_sheet(self, name: str | None = None) -> GridSheet:
        return OpenpyxlSheet(self.workbook.create_sheet(title=name))

    def builtin_format(self, format_id: int) -> str | None:
        return BUILTIN_FORMATS.get(format_id)
