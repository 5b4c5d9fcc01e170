from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator
from enum import Enum
from typing import Any

from ..binding.registry import BindingRegistry
from ..binding.resolvers import ResolverFactory, ResolverRegistry
from ..errors import BindingError
from ..excel.grid import CellKind, GridSheet, GridWorkbook
from ..models.conversion_result import ConversionResult
from ..models.field_binding import FieldBinding, FieldRef, field_refs, type_hints
from ..models.resolved_column import ResolvedColumn
from .column_resolution import ResolutionOptions, resolve_columns
from .row_converter import StyleCache, load_data_formats, read_row, write_row
from .tracker import RoundTripTracker

"""Conversion session: binds one workbook to typed records in both directions.

The session owns every piece of mutable state (binding registry, resolver
registry, memoized column resolutions, style cache, round-trip tracker).
Assigning a different workbook clears the resolutions, styles and tracked
records. Not thread-safe; use one session per thread.
"""

__all__ = [
    "TrimPolicy",
    "ConversionSession",
]

logger = logging.getLogger(__name__)

SheetRef = int | str


class TrimPolicy(Enum):
    CLEAR = "clear"  # clear rows below the last written record
    KEEP = "keep"


class ConversionSession:
    """Read rows into records (``take``) and write records into rows (``put``).

    Bindings come from two sources merged into one registry: ``column()``
    metadata declared on dataclass fields (scanned once per type) and the
    fluent calls on this session (``map`` / ``ignore`` / ``use_last_non_blank``
    / ``format``), which take precedence.
    """

    def __init__(
        self,
        workbook: GridWorkbook | None = None,
        *,
        track_records: bool = True,
        has_header: bool = True,
        ignored_name_chars: Iterable[str] | None = None,
        truncate_name_chars: Iterable[str] | None = None,
        default_resolver: str | None = None,
        trim_policy: TrimPolicy | str = TrimPolicy.CLEAR,
        registry: BindingRegistry | None = None,
        resolvers: ResolverRegistry | None = None,
    ) -> None:
        self.track_records = track_records
        self.has_header = has_header
        self.ignored_name_chars = tuple(ignored_name_chars) if ignored_name_chars is not None else None
        self.truncate_name_chars = tuple(truncate_name_chars) if truncate_name_chars is not None else None
        self.default_resolver = default_resolver
        self.trim_policy = TrimPolicy(trim_policy)
        self.registry = registry if registry is not None else BindingRegistry()
        self.resolvers = resolvers if resolvers is not None else ResolverRegistry()
        self.tracker = RoundTripTracker()
        self.styles = StyleCache(workbook)
        self._columns: dict[tuple[str, type], tuple[int, list[ResolvedColumn]]] = {}
        self._workbook = workbook

    # ------------------------------------------------------------------
    # workbook lifecycle
    # ------------------------------------------------------------------
    @property
    def workbook(self) -> GridWorkbook | None:
        return self._workbook

    @workbook.setter
    def workbook(self, workbook: GridWorkbook | None) -> None:
        if workbook is self._workbook:
            return
        self._workbook = workbook
        self.invalidate()

    def invalidate(self) -> None:
        """Drop tracked records, memoized resolutions and cached styles."""
        self.tracker.clear()
        self._columns.clear()
        self.styles.clear()
        self.styles.workbook = self._workbook
        logger.debug("session caches cleared")

    @property
    def options(self) -> ResolutionOptions:
        return ResolutionOptions(
            has_header=self.has_header,
            ignored_chars=self.ignored_name_chars,
            truncate_chars=self.truncate_name_chars,
            default_resolver=self.default_resolver,
        )

    # ------------------------------------------------------------------
    # fluent configuration
    # ------------------------------------------------------------------
    def map(self, owner: type, field: str, column: int | str, resolver: str | None = None) -> ConversionSession:
        """Bind ``owner.field`` to a column by index (int) or header name (str)."""
        ref = self._field_ref(owner, field)
        if column is None or isinstance(column, bool) or not isinstance(column, (int, str)):
            raise BindingError(f"column for {ref!r} must be a header name or an index, got {column!r}")
        binding = FieldBinding(field=ref, ignored=False)
        if isinstance(column, int):
            if column < 0:
                raise BindingError(f"column index for {ref!r} must be >= 0, got {column}")
            binding.index = column
        else:
            binding.name = column
        if resolver is not None:
            self._check_resolver(resolver)
            binding.resolver = resolver
        self.registry.merge(binding)
        return self

    def resolve_with(self, owner: type, field: str, resolver: str) -> ConversionSession:
        """Let the registered resolver ``resolver`` claim columns for ``owner.field``."""
        ref = self._field_ref(owner, field)
        self._check_resolver(resolver)
        self.registry.merge(FieldBinding(field=ref, ignored=False, resolver=resolver))
        return self

    def ignore(self, owner: type, *fields: str) -> ConversionSession:
        for name in fields:
            self.registry.merge(FieldBinding(field=self._field_ref(owner, name), ignored=True))
        return self

    def use_last_non_blank(self, owner: type, *fields: str) -> ConversionSession:
        for name in fields:
            self.registry.merge(FieldBinding(field=self._field_ref(owner, name), use_last_non_blank=True))
        return self

    def format(self, owner: type, field: str, fmt: str | int) -> ConversionSession:
        """Set the write format of a field: custom format string or builtin format id."""
        ref = self._field_ref(owner, field)
        if isinstance(fmt, bool) or not isinstance(fmt, (str, int)):
            raise BindingError(f"format for {ref!r} must be a format string or builtin id, got {fmt!r}")
        if isinstance(fmt, str):
            binding = FieldBinding(field=ref, custom_format=fmt)
        else:
            binding = FieldBinding(field=ref, builtin_format=fmt)
        self.registry.merge(binding)
        return self

    def register_resolver(self, key: str, factory: ResolverFactory) -> ConversionSession:
        self.resolvers.register(key, factory)
        return self

    # ------------------------------------------------------------------
    # read
    # ------------------------------------------------------------------
    def take(
        self,
        owner: type,
        sheet: SheetRef = 0,
        max_error_rows: int = 10,
        factory: Callable[[], Any] | None = None,
    ) -> Iterator[ConversionResult]:
        """Lazily convert the data rows of ``sheet`` into ``owner`` records.

        Failed rows are yielded with ``ok == False``. Up to ``max_error_rows``
        failures are tolerated; the next failure is yielded and ends the scan
        (``<= 0`` disables the cutoff). A missing or empty sheet yields nothing.

        Raises (immediately, not on iteration):
            BindingError: bad target type / factory / resolver key / annotation, no workbook
        """
        self._check_owner(owner)
        factory = factory or owner
        if not callable(factory):
            raise BindingError(f"record factory for {owner.__name__} is not callable")
        self.registry.scan(owner)
        grid_sheet = self._sheet(sheet, create=False)
        if grid_sheet is None or grid_sheet.first_row_index is None:
            logger.debug("sheet %r missing or empty, nothing to read", sheet)
            return iter(())

        columns = self._columns_for(owner, grid_sheet)
        return self._iter_rows(owner, grid_sheet, columns, max_error_rows, factory)

    def _iter_rows(
        self,
        owner: type,
        grid_sheet: GridSheet,
        columns: list[ResolvedColumn],
        max_error_rows: int,
        factory: Callable[[], Any],
    ) -> Iterator[ConversionResult]:
        # runs on first next(), so an unconsumed take leaves earlier state alone
        for column in columns:
            column.last_non_blank_value = None
        if self.track_records:
            self.tracker.begin(grid_sheet.name, owner)
        first = grid_sheet.first_row_index
        converted = failed = 0
        for row in grid_sheet.rows():
            if self.has_header and row.row_index == first:
                continue
            result = read_row(columns, row, factory)
            if result.ok:
                converted += 1
            else:
                failed += 1
                logger.info(
                    "sheet=%s row=%d column=%d %s: %s",
                    grid_sheet.name,
                    result.row_index,
                    result.failed_column_index,
                    result.error_type,
                    result.failure_reason,
                )
            if self.track_records:
                self.tracker.record(grid_sheet.name, owner, row.row_index, result.record)
            yield result
            if max_error_rows > 0 and failed > max_error_rows:
                logger.warning(
                    "sheet=%s stopped after %d failed rows (max_error_rows=%d)",
                    grid_sheet.name,
                    failed,
                    max_error_rows,
                )
                break
        logger.debug("sheet=%s type=%s converted=%d failed=%d", grid_sheet.name, owner.__name__, converted, failed)

    def tracked(self, owner: type, sheet: SheetRef = 0) -> dict[int, Any]:
        """Row index -> record map observed by the last ``take`` (None for failed rows)."""
        grid_sheet = self._sheet(sheet, create=False)
        if grid_sheet is None:
            return {}
        return self.tracker.tracked(grid_sheet.name, owner)

    def resolved_columns(self, owner: type, sheet: SheetRef = 0) -> list[ResolvedColumn]:
        self._check_owner(owner)
        grid_sheet = self._sheet(sheet, create=False)
        if grid_sheet is None or grid_sheet.first_row_index is None:
            return []
        self.registry.scan(owner)
        return list(self._columns_for(owner, grid_sheet))

    # ------------------------------------------------------------------
    # write
    # ------------------------------------------------------------------
    def put(self, owner: type, records: Iterable[Any], sheet: SheetRef = 0) -> int:
        """Write ``records`` from the first data row on; returns rows written.

        The sheet is created when missing and its header row populated when
        empty. Rows below the last record are cleared under ``TrimPolicy.CLEAR``.
        """
        self._check_owner(owner)
        if records is None:
            raise BindingError("records must not be None")
        grid_sheet = self._prepare_write(owner, sheet)
        columns = self._columns_for(owner, grid_sheet)

        first = grid_sheet.first_row_index or 0
        index = first + 1 if self.has_header else first
        written = 0
        for record in records:
            write_row(columns, grid_sheet.row_or_create(index), record, self.styles)
            index += 1
            written += 1

        if self.trim_policy is TrimPolicy.CLEAR:
            self._trim(grid_sheet, index)
        logger.debug("sheet=%s type=%s wrote=%d", grid_sheet.name, owner.__name__, written)
        return written

    def put_tracked(self, owner: type, sheet: SheetRef = 0) -> int:
        """Write tracked records back to the rows they were read from; returns rows written."""
        self._check_owner(owner)
        grid_sheet = self._prepare_write(owner, sheet)
        columns = self._columns_for(owner, grid_sheet)
        written = 0
        for row_index, record in sorted(self.tracker.tracked(grid_sheet.name, owner).items()):
            if record is None:
                continue
            write_row(columns, grid_sheet.row_or_create(row_index), record, self.styles)
            written += 1
        logger.debug("sheet=%s type=%s wrote tracked=%d", grid_sheet.name, owner.__name__, written)
        return written

    def _prepare_write(self, owner: type, sheet: SheetRef) -> GridSheet:
        grid_sheet = self._sheet(sheet, create=True)
        self.registry.scan(owner)
        if grid_sheet.first_row_index is None:
            self._populate_header(owner, grid_sheet)
        return grid_sheet

    def _populate_header(self, owner: type, grid_sheet: GridSheet) -> None:
        """Lay out the first row of an empty sheet for ``owner``.

        Explicitly indexed bindings keep their index; the remaining
        non-ignored fields fill the free positions in declaration order.
        Headerless sheets get index bindings instead of header text.
        """
        row = grid_sheet.create_row(0)
        bindings = self.registry.bindings_for(owner)
        by_field = {b.field: b for b in bindings}
        taken: set[int] = set()
        placed: set[FieldRef] = set()

        for binding in bindings:
            if not binding.has_index or binding.is_ignored:
                continue
            if self.has_header:
                row.create_cell(binding.index).set_value(CellKind.STRING, binding.name or binding.field.name)
            taken.add(binding.index)
            placed.add(binding.field)

        index = 0
        for ref in field_refs(owner):
            binding = by_field.get(ref)
            if ref in placed or (binding is not None and binding.is_ignored):
                continue
            while index in taken:
                index += 1
            if self.has_header:
                title = binding.name if binding is not None and binding.name else ref.name
                row.create_cell(index).set_value(CellKind.STRING, title)
            else:
                self.registry.merge(FieldBinding(field=ref, index=index))
            taken.add(index)
            index += 1
        logger.debug("sheet=%s header populated for %s columns=%d", grid_sheet.name, owner.__name__, len(taken))

    @staticmethod
    def _trim(grid_sheet: GridSheet, start: int) -> None:
        last = grid_sheet.last_row_index
        if last is None or last < start:
            return
        cleared = 0
        for index in range(start, last + 1):
            row = grid_sheet.row(index)
            if row is not None:
                row.clear()
                cleared += 1
        logger.debug("sheet=%s trimmed rows=%d from=%d", grid_sheet.name, cleared, start)

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    def _columns_for(self, owner: type, grid_sheet: GridSheet) -> list[ResolvedColumn]:
        key = (grid_sheet.name, owner)
        cached = self._columns.get(key)
        if cached is not None and cached[0] == self.registry.version:
            return cached[1]

        first = grid_sheet.first_row_index
        header = grid_sheet.row(first) if first is not None else None
        columns = resolve_columns(owner, header, self.registry.bindings_for(owner), self.resolvers, self.options)
        if first is not None:
            load_data_formats(columns, grid_sheet.row(first + 1 if self.has_header else first))
        self._columns[key] = (self.registry.version, columns)
        logger.debug("sheet=%s type=%s resolved columns=%d", grid_sheet.name, owner.__name__, len(columns))
        return columns

    def _sheet(self, sheet: SheetRef, create: bool) -> GridSheet | None:
        if self._workbook is None:
            raise BindingError("session has no workbook")
        if isinstance(sheet, str):
            found = self._workbook.sheet(sheet)
            if found is None and create:
                found = self._workbook.create_sheet(sheet)
            return found
        if isinstance(sheet, bool) or not isinstance(sheet, int):
            raise BindingError(f"sheet must be a name or an index, got {sheet!r}")
        found = self._workbook.sheet_at(sheet)
        if found is None and create:
            found = self._workbook.create_sheet()
        return found

    @staticmethod
    def _check_owner(owner: Any) -> None:
        if not isinstance(owner, type):
            raise BindingError(f"target type must be a class, got {owner!r}")

    def _field_ref(self, owner: type, field: str) -> FieldRef:
        self._check_owner(owner)
        type_hints(owner)
        if not field or not isinstance(field, str):
            raise BindingError(f"field name must be a non-empty string, got {field!r}")
        if field not in {r.name for r in field_refs(owner)} and not hasattr(owner, field):
            raise BindingError(f"{owner.__name__} has no field '{field}'")
        return FieldRef(owner, field)

    def _check_resolver(self, key: str) -> None:
        if key not in self.resolvers:
            raise BindingError(f"unknown resolver: {key}")
