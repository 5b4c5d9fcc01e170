from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Any, Callable

from ..models.field_binding import FieldBinding, FieldRef

"""Declarative column metadata for dataclass fields.

Usage::

    @dataclass
    class Order:
        order_no: str = column("Order No.", default="")
        region: str | None = column(use_last_non_blank=True, default=None)
        notes: str | None = column(ignore=True, default=None)

The metadata is scanned once per type by ``BindingRegistry.scan`` and merged
with ``overwrite=False`` so fluent session calls keep precedence.
"""

__all__ = [
    "METADATA_KEY",
    "ColumnMeta",
    "column",
    "declared_bindings",
    "declared_display_names",
]

METADATA_KEY = "sheetbind"


@dataclass(frozen=True)
class ColumnMeta:
    name: str | None = None
    index: int = -1
    ignore: bool | None = None
    use_last_non_blank: bool | None = None
    resolver: str | None = None
    custom_format: str | None = None
    builtin_format: int | None = None
    display: str | None = None  # display-name annotation, naming convention only

    @property
    def declares_binding(self) -> bool:
        return any(
            (
                self.name is not None,
                self.index >= 0,
                self.ignore is not None,
                self.use_last_non_blank is not None,
                self.resolver is not None,
                self.custom_format is not None,
                self.builtin_format is not None,
            )
        )

    def to_binding(self, field: FieldRef) -> FieldBinding:
        return FieldBinding(
            field=field,
            name=self.name,
            index=self.index,
            ignored=self.ignore,
            use_last_non_blank=self.use_last_non_blank,
            resolver=self.resolver,
            custom_format=self.custom_format,
            builtin_format=self.builtin_format,
        )


def column(
    name: str | None = None,
    *,
    index: int = -1,
    ignore: bool | None = None,
    use_last_non_blank: bool | None = None,
    resolver: str | None = None,
    custom_format: str | None = None,
    builtin_format: int | None = None,
    display: str | None = None,
    default: Any = dataclasses.MISSING,
    default_factory: Callable[[], Any] | Any = dataclasses.MISSING,
) -> Any:
    """Declare a dataclass field bound to a sheet column."""
    meta = ColumnMeta(
        name=name,
        index=index,
        ignore=ignore,
        use_last_non_blank=use_last_non_blank,
        resolver=resolver,
        custom_format=custom_format,
        builtin_format=builtin_format,
        display=display,
    )
    return dataclasses.field(
        default=default,
        default_factory=default_factory,
        metadata={METADATA_KEY: meta},
    )


def _column_metas(owner: type) -> list[tuple[FieldRef, ColumnMeta]]:
    if not dataclasses.is_dataclass(owner):
        return []
    out: list[tuple[FieldRef, ColumnMeta]] = []
    for f in dataclasses.fields(owner):
        meta = f.metadata.get(METADATA_KEY)
        if isinstance(meta, ColumnMeta):
            out.append((FieldRef(owner, f.name), meta))
    return out


def declared_bindings(owner: type) -> list[FieldBinding]:
    """Bindings declared on ``owner`` via ``column()`` (declaration order)."""
    return [meta.to_binding(ref) for ref, meta in _column_metas(owner) if meta.declares_binding]


def declared_display_names(owner: type) -> dict[FieldRef, str]:
    return {ref: meta.display for ref, meta in _column_metas(owner) if meta.display}
