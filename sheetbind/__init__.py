"""sheetbind: typed binding between spreadsheet rows and Python records.

Typical use::

    from sheetbind import ConversionSession, OpenpyxlWorkbook

    session = ConversionSession(OpenpyxlWorkbook.load("orders.xlsx"))
    session.map(Order, "order_no", "Order No.")
    orders = [r.record for r in session.take(Order, "Orders") if r.ok]
    ...
    session.put_tracked(Order, "Orders")
    session.workbook.save("orders.xlsx")
"""

from .binding.declare import column
from .binding.registry import BindingRegistry
from .binding.resolvers import ColumnResolver, ResolverRegistry
from .errors import (
    BindingError,
    ConfigError,
    ConversionError,
    ResolverRejected,
    SheetBindError,
    UnsupportedCellType,
    UnsupportedValue,
)
from .excel.frame_grid import FrameWorkbook
from .excel.openpyxl_grid import OpenpyxlWorkbook
from .excel.reader import open_workbook
from .models.conversion_result import ConversionResult
from .models.field_binding import FieldBinding, FieldRef
from .models.resolved_column import ResolvedColumn
from .services.column_resolution import refine_name
from .services.session import ConversionSession, TrimPolicy

__version__ = "0.1.0"

__all__ = [
    "ConversionSession",
    "TrimPolicy",
    "column",
    "BindingRegistry",
    "ColumnResolver",
    "ResolverRegistry",
    "FieldBinding",
    "FieldRef",
    "ResolvedColumn",
    "ConversionResult",
    "OpenpyxlWorkbook",
    "FrameWorkbook",
    "open_workbook",
    "refine_name",
    "SheetBindError",
    "BindingError",
    "ConversionError",
    "UnsupportedCellType",
    "UnsupportedValue",
    "ResolverRejected",
    "ConfigError",
]
