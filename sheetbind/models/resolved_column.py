from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .field_binding import FieldBinding

if TYPE_CHECKING:
    from ..binding.resolvers import ColumnResolver

"""ResolvedColumn model: the outcome of resolution for one header cell.

Created when a sheet is first read or written for a target type and cached per
(sheet name, target type) by the session so that read and write share bindings.
"""

__all__ = [
    "ResolvedColumn",
]


@dataclass
class ResolvedColumn:
    column_index: int  # 0-based physical column
    header_value: Any  # str | float | None
    binding: FieldBinding  # registry clone with index forced, or synthetic
    last_non_blank_value: Any = None  # mutable, per read pass
    resolver: ColumnResolver | None = None  # one live instance per column per sheet
    data_format: str | None = None  # column default number format (first data row)

    @property
    def field_name(self) -> str | None:
        return self.binding.field.name if self.binding.field is not None else None

    def refresh_and_get_value(self, value: Any) -> Any:
        """Apply last-non-blank semantics to a freshly decoded value.

        Blank (None or whitespace-only string) values are replaced by the
        remembered value; non-blank values refresh the slot.
        """
        if self.binding.use_last_non_blank is not True:
            return value
        if value is None or (isinstance(value, str) and not value.strip()):
            return self.last_non_blank_value
        self.last_non_blank_value = value
        return value
