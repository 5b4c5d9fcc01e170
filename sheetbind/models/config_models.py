from __future__ import annotations

from dataclasses import dataclass, field

"""Config dataclasses for the batch binding service.

Separate from the loader (sheetbind/config/loader.py), which validates the YAML
document and builds these.
"""

__all__ = [
    "ColumnBindingConfig",
    "SheetBindingConfig",
    "BindConfig",
]


@dataclass(frozen=True)
class ColumnBindingConfig:
    """Binding overrides for one field (applied as fluent calls, so they win over declarations)."""
    field: str
    name: str | None = None
    index: int | None = None
    ignore: bool = False
    use_last_non_blank: bool = False
    resolver: str | None = None
    custom_format: str | None = None
    builtin_format: int | None = None


@dataclass(frozen=True)
class SheetBindingConfig:
    """One sheet bound to one record type."""
    sheet_name: str  # key in ``sheets``
    target: str  # "package.module:ClassName"
    columns: tuple[ColumnBindingConfig, ...] = ()
    max_error_rows: int | None = None  # None -> BindConfig.max_error_rows


@dataclass(frozen=True)
class BindConfig:
    """Root configuration object."""
    source_directory: str  # directory scanned for .xlsx files (non-recursive)
    sheets: dict[str, SheetBindingConfig]  # sheet name -> binding, config order
    max_error_rows: int = 10
    has_header: bool = True
    track_records: bool = True
    ignored_name_chars: tuple[str, ...] | None = None
    truncate_name_chars: tuple[str, ...] | None = None
    default_resolver: str | None = None
    trim_policy: str = "clear"
    engine: str = "openpyxl"
    keep_na_strings: list[str] = field(default_factory=list)  # pandas engine only

    def max_error_rows_for(self, sheet: SheetBindingConfig) -> int:
        return self.max_error_rows if sheet.max_error_rows is None else sheet.max_error_rows
