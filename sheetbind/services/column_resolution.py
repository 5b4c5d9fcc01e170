from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from ..binding.declare import declared_display_names
from ..binding.resolvers import ColumnResolver, ResolverRegistry
from ..excel.grid import CellKind, GridCell, GridRow
from ..models.field_binding import FieldBinding, FieldRef, field_refs
from ..models.resolved_column import ResolvedColumn

"""Column resolution: header row + bindings -> ordered ResolvedColumns.

Per header cell, first match wins:
1. explicit index
2. explicit name (binding without index, exact header text)
3. resolver (binding with neither index nor name) claims the header
4. naming convention (header text vs field names / display names / refined names)
5. session default resolver

Ignored bindings never match on 1-3; a naming-convention hit on an ignored
field drops the column.
"""

__all__ = [
    "DEFAULT_IGNORED_CHARS",
    "DEFAULT_TRUNCATE_CHARS",
    "ResolutionOptions",
    "refine_name",
    "header_value",
    "resolve_columns",
]

logger = logging.getLogger(__name__)

DEFAULT_IGNORED_CHARS: tuple[str, ...] = tuple("`~!@#$%^&*-_+=|,./?")
DEFAULT_TRUNCATE_CHARS: tuple[str, ...] = tuple("[<({")

_WHITESPACE = re.compile(r"\s")


@dataclass(frozen=True)
class ResolutionOptions:
    has_header: bool = True
    ignored_chars: tuple[str, ...] | None = None  # None -> DEFAULT_IGNORED_CHARS
    truncate_chars: tuple[str, ...] | None = None  # None -> DEFAULT_TRUNCATE_CHARS
    default_resolver: str | None = None  # ResolverRegistry key


def refine_name(
    name: str | None,
    ignored_chars: Iterable[str] | None = None,
    truncate_chars: Iterable[str] | None = None,
) -> str | None:
    """Normalize a header string for naming-convention matching.

    >>> refine_name("Order-No. [2021]")
    'OrderNo'
    >>> refine_name("OrderNo")
    'OrderNo'
    """
    if name is None:
        return None
    name = _WHITESPACE.sub("", name)
    ignored = DEFAULT_IGNORED_CHARS if ignored_chars is None else tuple(ignored_chars)
    truncate = DEFAULT_TRUNCATE_CHARS if truncate_chars is None else tuple(truncate_chars)
    for ch in ignored:
        name = name.replace(ch, "")
    cut = [name.find(ch) for ch in truncate if ch in name]
    if cut:
        name = name[: min(cut)]
    return name


def header_value(cell: GridCell | None) -> Any:
    """Raw header value: string or number (formula cells by cached result), else None."""
    if cell is None:
        return None
    kind = cell.effective_kind
    if kind is CellKind.NUMERIC:
        return cell.numeric_value
    if kind is CellKind.STRING:
        return cell.string_value
    return None


class _Resolution:
    """One resolution pass for one target type over one header row."""

    def __init__(
        self,
        target_type: type,
        bindings: Sequence[FieldBinding],
        resolvers: ResolverRegistry,
        options: ResolutionOptions,
    ) -> None:
        self.target_type = target_type
        self.options = options
        self.resolvers = resolvers
        self.by_field: dict[FieldRef, FieldBinding] = {
            b.field: b for b in bindings if b.field is not None
        }
        self.active = [b for b in bindings if b.field is not None and not b.is_ignored]
        self._refs: list[FieldRef] | None = None
        self._display: dict[FieldRef, str] | None = None

    @property
    def refs(self) -> list[FieldRef]:
        if self._refs is None:
            self._refs = field_refs(self.target_type)
        return self._refs

    @property
    def display_names(self) -> dict[FieldRef, str]:
        if self._display is None:
            self._display = declared_display_names(self.target_type)
        return self._display

    def _header(self, cell: GridCell) -> Any:
        return header_value(cell) if self.options.has_header else None

    def column_for(
        self,
        binding: FieldBinding,
        index: int,
        value: Any,
        resolver: ColumnResolver | None = None,
    ) -> ResolvedColumn:
        if resolver is None and binding.resolver is not None:
            resolver = self.resolvers.create(binding.resolver)
            # already bound by index / name; the resolver may only rewrite the header value
            _, value = resolver.is_column_mapped(value, index)
        return ResolvedColumn(
            column_index=index,
            header_value=value,
            binding=binding.clone(index=index),
            resolver=resolver,
        )

    def by_declaration(self, cell: GridCell) -> ResolvedColumn | None:
        index = cell.column_index
        for binding in self.active:
            if binding.index == index:
                return self.column_for(binding, index, self._header(cell))

        if self.options.has_header and cell.effective_kind is CellKind.STRING:
            text = cell.string_value
            for binding in self.active:
                if not binding.has_index and binding.name is not None and binding.name == text:
                    return self.column_for(binding, index, self._header(cell))

        for binding in self.active:
            if binding.has_index or binding.name is not None or binding.resolver is None:
                continue
            resolver = self.resolvers.create(binding.resolver)
            claimed, value = resolver.is_column_mapped(self._header(cell), index)
            if claimed:
                return self.column_for(binding, index, value, resolver)
        return None

    def by_convention(self, cell: GridCell) -> ResolvedColumn | None:
        if not self.options.has_header or cell.effective_kind is not CellKind.STRING:
            return None
        name = cell.string_value.strip()
        if not name:
            return None
        folded = name.casefold()

        ref = next((r for r in self.refs if r.name.casefold() == folded), None)
        if ref is None:
            ref = next((r for r, d in self.display_names.items() if d.casefold() == folded), None)
        if ref is None:
            refined = (self._refine(name) or "").casefold()
            if refined:
                ref = next(
                    (
                        r
                        for r in self.refs
                        if r.name.casefold() == refined or (self._refine(r.name) or "").casefold() == refined
                    ),
                    None,
                )
        if ref is None:
            return None

        index = cell.column_index
        binding = self.by_field.get(ref)
        if binding is None:
            binding = FieldBinding(field=ref, name=name, index=index)
        elif binding.is_ignored:
            return None
        else:
            binding = binding.clone(index=index)
        return ResolvedColumn(column_index=index, header_value=name, binding=binding)

    def by_default_resolver(self, cell: GridCell) -> ResolvedColumn | None:
        key = self.options.default_resolver
        if key is None:
            return None
        resolver = self.resolvers.create(key)
        index = cell.column_index
        claimed, value = resolver.is_column_mapped(self._header(cell), index)
        if not claimed:
            return None
        return ResolvedColumn(
            column_index=index,
            header_value=value,
            binding=FieldBinding(field=None, index=index),
            resolver=resolver,
        )

    def _refine(self, name: str) -> str | None:
        return refine_name(name, self.options.ignored_chars, self.options.truncate_chars)


def resolve_columns(
    target_type: type,
    header_row: GridRow | None,
    bindings: Sequence[FieldBinding],
    resolvers: ResolverRegistry | None = None,
    options: ResolutionOptions | None = None,
) -> list[ResolvedColumn]:
    """Resolve the columns of ``header_row`` for ``target_type``.

    ``bindings`` are the registry bindings of ``target_type`` (ignored ones
    included; they still veto naming-convention matches). Returns columns in
    ascending column order. Unmatched header cells yield no column.

    Raises:
        BindingError: a binding refers to an unknown resolver key
    """
    options = options or ResolutionOptions()
    resolvers = resolvers if resolvers is not None else ResolverRegistry()
    resolution = _Resolution(target_type, bindings, resolvers, options)

    columns: list[ResolvedColumn] = []
    cells = list(header_row.cells()) if header_row is not None else []
    for cell in cells:
        column = (
            resolution.by_declaration(cell)
            or resolution.by_convention(cell)
            or resolution.by_default_resolver(cell)
        )
        if column is None:
            logger.debug("column %d (%r) unmatched for %s", cell.column_index, header_value(cell), target_type.__name__)
            continue
        columns.append(column)

    if not options.has_header:
        # no header cells to anchor explicit indices past the first row's extent
        seen = {c.column_index for c in columns}
        for binding in resolution.active:
            if binding.has_index and binding.index not in seen:
                columns.append(resolution.column_for(binding, binding.index, None))
                seen.add(binding.index)
        columns.sort(key=lambda c: c.column_index)

    logger.debug(
        "resolved %s columns=%s",
        target_type.__name__,
        [(c.column_index, c.field_name) for c in columns],
    )
    return columns
