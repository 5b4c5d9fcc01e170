from __future__ import annotations

import numbers
from collections.abc import Iterator
from datetime import date, datetime, time
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd
from openpyxl.styles.numbers import BUILTIN_FORMATS
from openpyxl.utils.datetime import from_excel, to_excel

from .grid import CellKind, CellStyle, GridCell, GridRow, GridSheet, GridWorkbook

"""pandas adapter for the grid interface.

Each sheet is a header-less object-dtype DataFrame (positional row / column
labels). NA values (None / NaN / NaT) are blank cells. Number formats have no
place in a DataFrame and are kept in a side table so round trips through the
session stay consistent.
"""

__all__ = [
    "FrameCell",
    "FrameRow",
    "FrameSheet",
    "FrameWorkbook",
]

_EXCEL_EPOCH = date(1899, 12, 30)
GENERAL_FORMAT = "General"


def _is_na(value: Any) -> bool:
    if value is None:
        return True
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):  # array-likes
        return False


def _kind_of_value(value: Any) -> CellKind:
    if _is_na(value):
        return CellKind.BLANK
    if isinstance(value, (bool, np.bool_)):
        return CellKind.BOOLEAN
    if isinstance(value, str):
        return CellKind.STRING
    if isinstance(value, (datetime, date, time, np.datetime64)):
        return CellKind.NUMERIC
    if isinstance(value, numbers.Real):
        return CellKind.NUMERIC
    return CellKind.UNKNOWN


class FrameCell(GridCell):
    def __init__(self, sheet: FrameSheet, row_index: int, column_index: int) -> None:
        self._sheet = sheet
        self._row_index = row_index
        self._column_index = column_index

    @property
    def _value(self) -> Any:
        return self._sheet.value_at(self._row_index, self._column_index)

    @property
    def column_index(self) -> int:
        return self._column_index

    @property
    def kind(self) -> CellKind:
        return _kind_of_value(self._value)

    @property
    def string_value(self) -> str:
        value = self._value
        return "" if _is_na(value) else str(value)

    @property
    def numeric_value(self) -> float:
        value = self._value
        if isinstance(value, np.datetime64):
            value = pd.Timestamp(value).to_pydatetime()
        if isinstance(value, (datetime, date, time)):
            return float(to_excel(value))
        return float(value)

    @property
    def boolean_value(self) -> bool:
        return bool(self._value)

    @property
    def date_value(self) -> datetime:
        value = self._value
        if isinstance(value, pd.Timestamp):
            return value.to_pydatetime()
        if isinstance(value, np.datetime64):
            return pd.Timestamp(value).to_pydatetime()
        if isinstance(value, datetime):
            return value
        if isinstance(value, date):
            return datetime.combine(value, time())
        if isinstance(value, time):
            return datetime.combine(_EXCEL_EPOCH, value)
        return from_excel(float(value))

    @property
    def is_date_formatted(self) -> bool:
        return isinstance(self._value, (datetime, date, time, np.datetime64))

    @property
    def number_format(self) -> str:
        return self._sheet.formats.get((self._row_index, self._column_index), GENERAL_FORMAT)

    def set_value(self, kind: CellKind, value: Any) -> None:
        if kind is CellKind.BLANK:
            value = None
        elif kind is CellKind.NUMERIC:
            value = float(value)
        elif kind is CellKind.BOOLEAN:
            value = bool(value)
        elif kind not in (CellKind.STRING, CellKind.DATE):
            raise ValueError(f"cannot write cell kind {kind.value}")
        self._sheet.set_value_at(self._row_index, self._column_index, value)

    def apply_style(self, style: CellStyle) -> None:
        self._sheet.formats[(self._row_index, self._column_index)] = style.number_format


class FrameRow(GridRow):
    def __init__(self, sheet: FrameSheet, row_index: int) -> None:
        self._sheet = sheet
        self._row_index = row_index

    @property
    def row_index(self) -> int:
        return self._row_index

    def cell(self, column_index: int) -> GridCell | None:
        frame = self._sheet.frame
        if self._row_index >= frame.shape[0] or column_index >= frame.shape[1]:
            return None
        return FrameCell(self._sheet, self._row_index, column_index)

    def create_cell(self, column_index: int) -> GridCell:
        self._sheet.ensure_shape(self._row_index + 1, column_index + 1)
        return FrameCell(self._sheet, self._row_index, column_index)

    def cells(self) -> Iterator[GridCell]:
        frame = self._sheet.frame
        if self._row_index >= frame.shape[0]:
            return
        for col in range(frame.shape[1]):
            if not _is_na(frame.iat[self._row_index, col]):
                yield FrameCell(self._sheet, self._row_index, col)

    def clear(self) -> None:
        frame = self._sheet.frame
        if self._row_index < frame.shape[0]:
            for col in range(frame.shape[1]):
                frame.iat[self._row_index, col] = None


class FrameSheet(GridSheet):
    def __init__(self, workbook: FrameWorkbook, name: str) -> None:
        self._workbook = workbook
        self._name = name

    @property
    def frame(self) -> pd.DataFrame:
        return self._workbook.frames[self._name]

    @property
    def formats(self) -> dict[tuple[int, int], str]:
        return self._workbook.formats.setdefault(self._name, {})

    @property
    def name(self) -> str:
        return self._name

    def value_at(self, row: int, col: int) -> Any:
        frame = self.frame
        if row >= frame.shape[0] or col >= frame.shape[1]:
            return None
        return frame.iat[row, col]

    def set_value_at(self, row: int, col: int, value: Any) -> None:
        self.ensure_shape(row + 1, col + 1)
        self.frame.iat[row, col] = value

    def ensure_shape(self, rows: int, cols: int) -> None:
        frame = self.frame
        if frame.shape[0] >= rows and frame.shape[1] >= cols:
            return
        grown = frame.reindex(
            index=range(max(rows, frame.shape[0])),
            columns=range(max(cols, frame.shape[1])),
        ).astype(object)
        self._workbook.frames[self._name] = grown.where(grown.notna(), None)

    def _physical_rows(self) -> list[int]:
        frame = self.frame
        if frame.empty:
            return []
        mask = frame.notna().any(axis=1).to_numpy()
        return [int(i) for i in np.flatnonzero(mask)]

    @property
    def first_row_index(self) -> int | None:
        rows = self._physical_rows()
        return rows[0] if rows else None

    @property
    def last_row_index(self) -> int | None:
        rows = self._physical_rows()
        return rows[-1] if rows else None

    def row(self, row_index: int) -> GridRow | None:
        frame = self.frame
        if row_index >= frame.shape[0] or not frame.iloc[row_index].notna().any():
            return None
        return FrameRow(self, row_index)

    def create_row(self, row_index: int) -> GridRow:
        return FrameRow(self, row_index)

    def rows(self) -> Iterator[GridRow]:
        for row_index in self._physical_rows():
            yield FrameRow(self, row_index)


class FrameWorkbook(GridWorkbook):
    """Grid workbook backed by a dict of header-less DataFrames."""

    def __init__(self, frames: dict[str, pd.DataFrame] | None = None) -> None:
        self.frames: dict[str, pd.DataFrame] = {}
        self.formats: dict[str, dict[tuple[int, int], str]] = {}
        for name, df in (frames or {}).items():
            self.frames[str(name)] = self._normalize(df)

    @staticmethod
    def _normalize(df: pd.DataFrame) -> pd.DataFrame:
        out = df.reset_index(drop=True).copy()
        out.columns = range(out.shape[1])
        out = out.astype(object)
        return out.where(out.notna(), None)

    @classmethod
    def from_rows(cls, sheets: dict[str, list[list[Any]]]) -> FrameWorkbook:
        return cls({name: pd.DataFrame(rows) for name, rows in sheets.items()})

    def to_excel(self, path: Path | str) -> Path:
        path = Path(path)
        with pd.ExcelWriter(path) as writer:
            for name, df in self.frames.items():
                df.to_excel(writer, sheet_name=name, header=False, index=False)
        return path

    @property
    def sheet_names(self) -> list[str]:
        return list(self.frames)

    def sheet(self, name: str) -> GridSheet | None:
        if name not in self.frames:
            return None
        return FrameSheet(self, name)

    def create_sheet(self, name: str | None = None) -> GridSheet:
        if name is None:
            n = len(self.frames) + 1
            while f"Sheet{n}" in self.frames:
                n += 1
            name = f"Sheet{n}"
        self.frames.setdefault(name, pd.DataFrame(dtype=object))
        return FrameSheet(self, name)

    def builtin_format(self, format_id: int) -> str | None:
        return BUILTIN_FORMATS.get(format_id)
