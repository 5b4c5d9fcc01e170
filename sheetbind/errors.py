from __future__ import annotations

"""Exception taxonomy for sheetbind.

Row-scoped errors (``ConversionError`` and subclasses) are caught by the row
converter and collapsed into a ``ConversionResult``; they never abort a sheet.
Construction-time errors (``BindingError``) surface immediately to the caller.
``ConfigError`` covers the YAML configuration and target imports.
"""

__all__ = [
    "SheetBindError",
    "BindingError",
    "ConversionError",
    "UnsupportedCellType",
    "UnsupportedValue",
    "ResolverRejected",
    "ConfigError",
    "error_type_name",
]


class SheetBindError(Exception):
    """Base class for all sheetbind errors."""


class BindingError(SheetBindError):
    """Raised when a binding, resolver key or target type is malformed."""


class ConversionError(SheetBindError):
    """Base class for errors scoped to a single row."""


class UnsupportedCellType(ConversionError):
    """Raised when a cell kind cannot be decoded."""


class UnsupportedValue(ConversionError):
    """Raised when a cell value does not parse into the target field type."""


class ResolverRejected(ConversionError):
    """Raised when a custom resolver declines a row."""


class ConfigError(SheetBindError):
    """Raised when the configuration file is missing or invalid."""


def error_type_name(exc: BaseException) -> str:
    """Return the UPPER_SNAKE error classification for an exception.

    >>> error_type_name(UnsupportedValue("x"))
    'UNSUPPORTED_VALUE'
    >>> error_type_name(ValueError("x"))
    'VALUE_ERROR'
    """
    name = type(exc).__name__
    out: list[str] = []
    for i, ch in enumerate(name):
        if ch.isupper() and i > 0 and not name[i - 1].isupper():
            out.append("_")
        out.append(ch.upper())
    return "".join(out)
