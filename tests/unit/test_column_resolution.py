from __future__ import annotations

from dataclasses import dataclass

import pytest

from sheetbind.binding.declare import declared_bindings
from sheetbind.binding.resolvers import ColumnResolver, ResolverRegistry
from sheetbind.errors import BindingError
from sheetbind.excel.frame_grid import FrameWorkbook
from sheetbind.models.field_binding import FieldBinding, FieldRef
from sheetbind.services.column_resolution import (
    ResolutionOptions,
    header_value,
    refine_name,
    resolve_columns,
)
from sample_records import Customer, Order

"""Unit tests for header resolution (precedence, naming convention, headerless sheets)."""


@dataclass
class Pair:
    x: str | None = None
    y: str | None = None


class PrefixResolver(ColumnResolver):
    """Claims headers starting with 'Q:' and strips the prefix."""

    def is_column_mapped(self, header_value, column_index):
        if isinstance(header_value, str) and header_value.startswith("Q:"):
            return True, header_value[2:]
        return False, header_value

    def try_resolve_cell(self, column, value, record):
        return True


class CatchAll(ColumnResolver):
    def is_column_mapped(self, header_value, column_index):
        return True, header_value

    def try_resolve_cell(self, column, value, record):
        return True


def header(*values):
    wb = FrameWorkbook.from_rows({"S": [list(values)]})
    return wb.sheet("S").row(0)


def by_index(columns):
    return {c.column_index: c for c in columns}


class TestRefineName:
    def test_default_rules(self):
        assert refine_name("Order-No. [2021]") == "OrderNo"
        assert refine_name("  Unit Price (EUR) ") == "UnitPrice"
        assert refine_name("a_b") == "ab"

    @pytest.mark.parametrize(
        "raw", ["Order-No. [2021]", "  Unit Price (EUR) ", "E-Mail Address", "Qty{x}", "a_b", "OrderNo", ""]
    )
    def test_idempotent(self, raw):
        once = refine_name(raw)
        assert refine_name(once) == once

    def test_none(self):
        assert refine_name(None) is None

    def test_custom_rules(self):
        assert refine_name("Order-No [x]", ignored_chars=("-",), truncate_chars=()) == "OrderNo[x]"
        assert refine_name("Price<EUR>", ignored_chars=(), truncate_chars=("<",)) == "Price"


def test_header_value_kinds():
    row = header("Name", 7, True)
    assert header_value(row.cell(0)) == "Name"
    assert header_value(row.cell(1)) == 7.0
    assert header_value(row.cell(2)) is None
    assert header_value(None) is None


class TestPrecedence:
    def test_index_outranks_name_across_bindings(self):
        bindings = [
            FieldBinding(FieldRef(Pair, "x"), name="Foo", index=5),
            FieldBinding(FieldRef(Pair, "y"), index=2),
        ]
        cols = resolve_columns(Pair, header("a", "b", "Foo"), bindings)
        assert [(c.column_index, c.field_name) for c in cols] == [(2, "y")]

    def test_name_match_is_exact(self):
        bindings = [FieldBinding(FieldRef(Pair, "x"), name="Foo")]
        cols = by_index(resolve_columns(Pair, header("foo", "Foo"), bindings))
        assert cols[1].field_name == "x"
        assert 0 not in cols

    def test_resolved_binding_carries_physical_index(self):
        original = FieldBinding(FieldRef(Pair, "x"), name="Foo")
        cols = resolve_columns(Pair, header("a", "Foo"), [original])
        assert cols[0].binding.index == 1
        # the registry binding itself is not touched
        assert original.index == -1

    def test_resolver_claims_header(self):
        resolvers = ResolverRegistry()
        resolvers.register("prefix", PrefixResolver)
        bindings = [FieldBinding(FieldRef(Pair, "y"), resolver="prefix")]
        cols = resolve_columns(Pair, header("x", "Q:Amount"), bindings, resolvers)
        col = by_index(cols)[1]
        assert col.field_name == "y"
        assert col.header_value == "Amount"
        assert isinstance(col.resolver, PrefixResolver)

    def test_explicit_binding_with_resolver_gets_instance(self):
        resolvers = ResolverRegistry()
        resolvers.register("prefix", PrefixResolver)
        bindings = [FieldBinding(FieldRef(Pair, "x"), index=0, resolver="prefix")]
        col = resolve_columns(Pair, header("Q:Code"), bindings, resolvers)[0]
        assert isinstance(col.resolver, PrefixResolver)
        assert col.header_value == "Code"

    def test_unknown_resolver_key(self):
        bindings = [FieldBinding(FieldRef(Pair, "x"), index=0, resolver="nope")]
        with pytest.raises(BindingError, match="unknown resolver: nope"):
            resolve_columns(Pair, header("a"), bindings, ResolverRegistry())

    def test_ignored_binding_never_matches(self):
        bindings = [FieldBinding(FieldRef(Pair, "x"), index=0, ignored=True)]
        assert resolve_columns(Pair, header("a"), bindings) == []


class TestNamingConvention:
    def test_field_name_case_insensitive(self):
        cols = resolve_columns(Pair, header(" X ", "Y"), [])
        assert [(c.column_index, c.field_name) for c in cols] == [(0, "x"), (1, "y")]
        assert cols[0].header_value == "X"

    def test_display_name(self):
        cols = resolve_columns(Customer, header("ID", "e-mail address"), declared_bindings(Customer))
        assert [c.field_name for c in cols] == ["id", "email"]

    def test_refined_header(self):
        cols = by_index(resolve_columns(Order, header("Ordered On", "Qty (pcs)"), declared_bindings(Order)))
        assert cols[0].field_name == "ordered_on"
        # convention matches keep the declared attributes of the field
        assert cols[0].binding.custom_format == "yyyy-mm-dd"
        assert 1 not in cols

    def test_ignored_field_drops_column(self):
        cols = resolve_columns(Order, header("Notes", "Customer"), declared_bindings(Order))
        assert [c.field_name for c in cols] == ["customer"]

    def test_custom_refine_rules(self):
        options = ResolutionOptions(ignored_chars=(), truncate_chars=())
        cols = resolve_columns(Order, header("Ordered-On"), declared_bindings(Order), options=options)
        assert cols == []

    def test_non_string_headers_skip_convention(self):
        assert resolve_columns(Pair, header(1, 2), []) == []


def test_default_resolver_claims_unmatched_columns():
    resolvers = ResolverRegistry()
    resolvers.register("all", CatchAll)
    options = ResolutionOptions(default_resolver="all")
    cols = resolve_columns(Pair, header("x", "Extra"), [], resolvers, options)
    assert [(c.column_index, c.field_name) for c in cols] == [(0, "x"), (1, None)]
    assert isinstance(cols[1].resolver, CatchAll)
    assert cols[1].binding.field is None


class TestHeaderless:
    def test_indexed_bindings_only(self):
        bindings = [
            FieldBinding(FieldRef(Pair, "x"), index=0),
            FieldBinding(FieldRef(Pair, "y"), index=4),
        ]
        options = ResolutionOptions(has_header=False)
        cols = resolve_columns(Pair, header("x", "y", "z"), bindings, options=options)
        assert [(c.column_index, c.field_name) for c in cols] == [(0, "x"), (4, "y")]
        assert all(c.header_value is None for c in cols)

    def test_no_convention_without_header(self):
        options = ResolutionOptions(has_header=False)
        assert resolve_columns(Pair, header("x", "y"), [], options=options) == []

    def test_resolver_sees_no_header_value(self):
        seen = []

        class Recording(ColumnResolver):
            def is_column_mapped(self, header_value, column_index):
                seen.append((header_value, column_index))
                return column_index == 1, header_value

            def try_resolve_cell(self, column, value, record):
                return True

        resolvers = ResolverRegistry()
        resolvers.register("rec", Recording)
        bindings = [FieldBinding(FieldRef(Pair, "y"), resolver="rec")]
        options = ResolutionOptions(has_header=False)
        cols = resolve_columns(Pair, header("a", "b"), bindings, resolvers, options)
        assert [(c.column_index, c.field_name) for c in cols] == [(1, "y")]
        assert seen == [(None, 0), (None, 1)]


def test_empty_header_row():
    assert resolve_columns(Pair, None, []) == []
