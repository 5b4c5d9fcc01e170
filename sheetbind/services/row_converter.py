from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any, Callable

from ..errors import ResolverRejected, error_type_name
from ..excel.coercion import convert, decode, encode
from ..excel.grid import CellStyle, GridRow, GridWorkbook
from ..models.conversion_result import ConversionResult
from ..models.resolved_column import ResolvedColumn

"""Row conversion (read: row -> record, write: record -> row).

Read failures are row-scoped: any exception while fetching, decoding or
assigning a cell aborts the row and is reported in its ConversionResult with
the failing column index. The partially built record is discarded.
"""

__all__ = [
    "RESOLVER_REJECTED_MESSAGE",
    "GENERAL_FORMAT",
    "StyleCache",
    "read_row",
    "write_row",
    "load_data_formats",
]

logger = logging.getLogger(__name__)

RESOLVER_REJECTED_MESSAGE = "Returned failure by custom cell resolver!"
GENERAL_FORMAT = "General"


class StyleCache:
    """CellStyle objects keyed by number format string (one per format per workbook)."""

    def __init__(self, workbook: GridWorkbook | None = None) -> None:
        self.workbook = workbook
        self._styles: dict[str, CellStyle] = {}

    def number_format_for(self, column: ResolvedColumn) -> str | None:
        """custom format > builtin format id > column default format."""
        binding = column.binding
        if binding.custom_format:
            return binding.custom_format
        if binding.builtin_format is not None and self.workbook is not None:
            fmt = self.workbook.builtin_format(binding.builtin_format)
            if fmt:
                return fmt
        return column.data_format

    def style_for(self, column: ResolvedColumn) -> CellStyle | None:
        fmt = self.number_format_for(column)
        if not fmt or self.workbook is None:
            return None
        style = self._styles.get(fmt)
        if style is None:
            style = self.workbook.create_style(fmt)
            self._styles[fmt] = style
        return style

    def clear(self) -> None:
        self._styles.clear()

    def __len__(self) -> int:
        return len(self._styles)


def _read_cell(column: ResolvedColumn, row: GridRow, record: Any) -> None:
    field = column.binding.field
    field_type = field.field_type if field is not None else None
    value = decode(row.cell(column.column_index), field_type)
    value = column.refresh_and_get_value(value)

    if column.resolver is not None:
        if not column.resolver.try_resolve_cell(column, value, record):
            raise ResolverRejected(RESOLVER_REJECTED_MESSAGE)
    elif field is not None and value is not None:
        setattr(record, field.name, convert(value, field_type))


def read_row(
    columns: Iterable[ResolvedColumn],
    row: GridRow,
    factory: Callable[[], Any],
) -> ConversionResult:
    """Build one record from ``row``; never raises for row-level problems."""
    try:
        record = factory()
    except Exception as exc:  # record construction failures are row-scoped too
        return ConversionResult(
            row_index=row.row_index,
            failure_reason=str(exc) or type(exc).__name__,
            error_type=error_type_name(exc),
        )

    for column in columns:
        index = column.column_index
        if index < 0:
            continue
        try:
            _read_cell(column, row, record)
        except Exception as exc:  # collapse any conversion failure into the row result
            logger.debug("row %d column %d failed: %s", row.row_index, index, exc)
            return ConversionResult(
                row_index=row.row_index,
                failed_column_index=index,
                failure_reason=str(exc) or type(exc).__name__,
                error_type=error_type_name(exc),
            )
    return ConversionResult(row_index=row.row_index, record=record)


def write_row(
    columns: Iterable[ResolvedColumn],
    row: GridRow,
    record: Any,
    styles: StyleCache | None = None,
) -> None:
    """Write the bound fields of ``record`` into ``row``.

    Columns without a field (default resolver columns) are left untouched.
    """
    for column in columns:
        field = column.binding.field
        if field is None or column.column_index < 0:
            continue
        kind, value = encode(getattr(record, field.name, None))
        cell = row.cell_or_create(column.column_index)
        cell.set_value(kind, value)
        style = styles.style_for(column) if styles is not None else None
        if style is not None:
            cell.apply_style(style)


def load_data_formats(columns: Iterable[ResolvedColumn], row: GridRow | None) -> None:
    """Learn column default number formats from ``row`` (usually the first data row).

    Only fills columns without a format yet; "General" carries no information
    and is not recorded.
    """
    if row is None:
        return
    for column in columns:
        if column.data_format is not None:
            continue
        cell = row.cell(column.column_index)
        if cell is None:
            continue
        fmt = cell.number_format
        if fmt and fmt != GENERAL_FORMAT:
            column.data_format = fmt
