from __future__ import annotations

import math
import numbers
import typing
from collections.abc import Collection
from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

import numpy as np

from ..errors import UnsupportedCellType, UnsupportedValue
from .grid import CellKind, GridCell

"""Type coercion between grid cells and typed record fields.

decode(): cell -> python value shaped by the field's static type
convert(): value -> the field's exact type (applied on assignment)
encode(): field value -> (CellKind, primitive) for writing

All three are pure functions. Blank / error / unknown cells decode to None.
"""

__all__ = [
    "decode",
    "convert",
    "encode",
    "parse_enum",
    "is_numeric_value",
]

_TEMPORAL_TYPES = (datetime, date, time)


def _is_enum_type(tp: Any) -> bool:
    return isinstance(tp, type) and issubclass(tp, Enum)


def _is_temporal_type(tp: Any) -> bool:
    return isinstance(tp, type) and issubclass(tp, _TEMPORAL_TYPES)


def parse_enum(value: Any, enum_type: type[Enum]) -> Enum:
    """Parse a string or number into a member of ``enum_type``.

    Strings match member names case-insensitively, then string values
    case-insensitively, then integer literals against member values.
    Numbers must be integral and match a member value.
    """
    if isinstance(value, enum_type):
        return value
    if isinstance(value, str):
        text = value.strip()
        folded = text.casefold()
        for member in enum_type:
            if member.name.casefold() == folded:
                return member
        for member in enum_type:
            if isinstance(member.value, str) and member.value.casefold() == folded:
                return member
        try:
            value = int(text)
        except ValueError:
            raise UnsupportedValue(f"'{text}' is not a member of {enum_type.__name__}") from None
    if isinstance(value, (bool, np.bool_)):
        raise UnsupportedValue(f"boolean is not a member of {enum_type.__name__}")
    if isinstance(value, numbers.Real):
        number = float(value)
        if not number.is_integer():
            raise UnsupportedValue(f"{value!r} is not a member of {enum_type.__name__}")
        try:
            return enum_type(int(number))
        except ValueError:
            raise UnsupportedValue(f"{int(number)} is not a member of {enum_type.__name__}") from None
    raise UnsupportedValue(f"{value!r} is not a member of {enum_type.__name__}")


def decode(cell: GridCell | None, field_type: Any = None) -> Any:
    """Decode a grid cell for a field of ``field_type``.

    Raises:
        UnsupportedCellType: cell kind not understood
        UnsupportedValue: enum text / number without a matching member
    """
    if cell is None:
        return None
    kind = cell.effective_kind  # formula cells decode by their cached result

    if kind is CellKind.STRING:
        text = cell.string_value
        if _is_enum_type(field_type):
            return parse_enum(text, field_type)
        return text

    if kind is CellKind.NUMERIC:
        if _is_enum_type(field_type):
            return parse_enum(cell.numeric_value, field_type)
        if cell.is_date_formatted or _is_temporal_type(field_type):
            return cell.date_value
        return float(cell.numeric_value)

    if kind is CellKind.BOOLEAN:
        return bool(cell.boolean_value)

    if kind in (CellKind.BLANK, CellKind.ERROR, CellKind.UNKNOWN):
        return None

    raise UnsupportedCellType(f"cell type '{kind.value}' is not supported")


def _to_bool(value: Any) -> bool:
    if isinstance(value, (bool, np.bool_)):
        return bool(value)
    if isinstance(value, str):
        folded = value.strip().casefold()
        if folded == "true":
            return True
        if folded == "false":
            return False
        raise UnsupportedValue(f"'{value}' is not a valid boolean")
    if isinstance(value, (numbers.Real, Decimal)):
        return value != 0
    raise UnsupportedValue(f"cannot convert {type(value).__name__} to bool")


def _to_temporal(value: Any, target: type) -> Any:
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.strip())
        except ValueError:
            raise UnsupportedValue(f"'{value}' is not an ISO date/time") from None
    if issubclass(target, datetime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, date):
            return datetime.combine(value, time())
    elif issubclass(target, date):
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
    elif issubclass(target, time):
        if isinstance(value, datetime):
            return value.time()
        if isinstance(value, time):
            return value
    raise UnsupportedValue(f"cannot convert {type(value).__name__} to {target.__name__}")


def _to_str(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, Enum):
        return value.name
    return str(value)


def _to_number(value: Any, target: type) -> Any:
    if isinstance(value, str):
        text = value.strip()
        try:
            value = Decimal(text) if target is Decimal else float(text)
        except (ValueError, InvalidOperation):
            raise UnsupportedValue(f"'{text}' is not a number") from None
    if isinstance(value, (bool, np.bool_)):
        value = int(value)
    if not isinstance(value, (numbers.Real, Decimal)):
        raise UnsupportedValue(f"cannot convert {type(value).__name__} to {target.__name__}")

    if target is Decimal:
        return value if isinstance(value, Decimal) else Decimal(str(value))
    if issubclass(target, numbers.Integral):
        if isinstance(value, float) and not math.isfinite(value):
            raise UnsupportedValue(f"{value} cannot be stored in {target.__name__}")
        # round half to even, matching spreadsheet numeric conversion
        return target(round(value))
    return target(float(value))


def convert(value: Any, field_type: Any) -> Any:
    """Convert a decoded value into the field's exact type."""
    if value is None or field_type is None or field_type is Any or field_type is object:
        return value

    origin = typing.get_origin(field_type)
    if origin is not None:
        if isinstance(origin, type) and not isinstance(value, origin):
            raise UnsupportedValue(f"cannot convert {type(value).__name__} to {field_type}")
        return value
    if not isinstance(field_type, type):
        return value

    if issubclass(field_type, Enum):
        return parse_enum(value, field_type)
    if field_type is bool:
        return _to_bool(value)
    if issubclass(field_type, _TEMPORAL_TYPES):
        return _to_temporal(value, field_type)
    if field_type is str:
        return value if isinstance(value, str) else _to_str(value)
    if field_type is Decimal or issubclass(field_type, (numbers.Integral, numbers.Real)):
        return _to_number(value, field_type)
    if isinstance(value, field_type):
        return value
    raise UnsupportedValue(f"cannot convert {type(value).__name__} to {field_type.__name__}")


def is_numeric_value(value: Any) -> bool:
    if isinstance(value, (bool, np.bool_)):
        return False
    return isinstance(value, (numbers.Real, Decimal))


def encode(value: Any) -> tuple[CellKind, Any]:
    """Encode a field value into a (kind, primitive) pair for the grid.

    None and non-string collections (bytes included) clear the cell.
    """
    if value is None:
        return CellKind.BLANK, None
    if isinstance(value, str):
        return CellKind.STRING, value
    if isinstance(value, (Collection, np.ndarray)):
        return CellKind.BLANK, None
    if isinstance(value, datetime):
        return CellKind.DATE, value
    if isinstance(value, date):
        return CellKind.DATE, datetime.combine(value, time())
    if isinstance(value, time):
        return CellKind.DATE, value
    if isinstance(value, (bool, np.bool_)):
        return CellKind.BOOLEAN, bool(value)
    if is_numeric_value(value):
        return CellKind.NUMERIC, float(value)
    if isinstance(value, Enum):
        return CellKind.STRING, value.name
    return CellKind.STRING, str(value)
