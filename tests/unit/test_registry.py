from __future__ import annotations

from dataclasses import dataclass

import pytest

from sheetbind.binding.declare import ColumnMeta, column, declared_bindings, declared_display_names
from sheetbind.binding.registry import BindingRegistry
from sheetbind.errors import BindingError
from sheetbind.models.field_binding import FieldBinding, FieldRef
from sample_records import Customer, Order, Plain

"""Unit tests for declared column metadata and the BindingRegistry."""


def test_declared_bindings_only_for_declaring_fields():
    bindings = {b.field.name: b for b in declared_bindings(Order)}
    assert set(bindings) == {"order_no", "ordered_on", "region", "notes"}
    assert bindings["order_no"].name == "Order No."
    assert bindings["ordered_on"].custom_format == "yyyy-mm-dd"
    assert bindings["region"].use_last_non_blank is True
    assert bindings["notes"].ignored is True


def test_display_only_metadata_is_not_a_binding():
    assert declared_bindings(Customer) == []
    assert declared_display_names(Customer) == {FieldRef(Customer, "email"): "E-Mail Address"}


def test_non_dataclass_has_no_declarations():
    assert declared_bindings(Plain) == []


def test_column_keeps_dataclass_defaults():
    @dataclass
    class Item:
        tags: list = column(default_factory=list)
        code: str = column("Code", default="x")

    item = Item()
    assert item.tags == [] and item.code == "x"


def test_column_meta_declares_binding():
    assert not ColumnMeta().declares_binding
    assert not ColumnMeta(display="Label").declares_binding
    assert ColumnMeta(index=0).declares_binding
    assert ColumnMeta(ignore=False).declares_binding


class TestBindingRegistry:
    def test_merge_inserts_copy(self):
        reg = BindingRegistry()
        b = FieldBinding(FieldRef(Order, "price"), name="Price")
        stored = reg.merge(b)
        assert stored is not b
        assert reg.get(FieldRef(Order, "price")).name == "Price"
        assert FieldRef(Order, "price") in reg
        assert len(reg) == 1

    def test_merge_without_field_raises(self):
        with pytest.raises(BindingError, match="no field"):
            BindingRegistry().merge(FieldBinding(None, name="x"))

    def test_at_most_one_binding_per_field(self):
        reg = BindingRegistry()
        reg.merge(FieldBinding(FieldRef(Order, "price"), name="Price"))
        reg.merge(FieldBinding(FieldRef(Order, "price"), index=3))
        assert len(reg) == 1
        b = reg.get(FieldRef(Order, "price"))
        assert (b.name, b.index) == ("Price", 3)

    def test_version_bumps_on_merge(self):
        reg = BindingRegistry()
        v0 = reg.version
        reg.merge(FieldBinding(FieldRef(Order, "price"), name="Price"))
        assert reg.version > v0

    def test_scan_once_and_never_overrides_fluent(self):
        reg = BindingRegistry()
        reg.merge(FieldBinding(FieldRef(Order, "order_no"), name="Order Number"))
        reg.scan(Order)
        reg.scan(Order)
        assert reg.get(FieldRef(Order, "order_no")).name == "Order Number"
        assert reg.get(FieldRef(Order, "notes")).is_ignored
        assert len(reg.bindings_for(Order)) == 4

    def test_bindings_for_filters_owner(self):
        reg = BindingRegistry()
        reg.merge(FieldBinding(FieldRef(Order, "price"), name="Price"))
        reg.merge(FieldBinding(FieldRef(Customer, "name"), name="Name"))
        assert [b.field.name for b in reg.bindings_for(Customer)] == ["name"]

    def test_empty_registry_is_falsy_but_usable(self):
        reg = BindingRegistry()
        assert not reg
        assert reg.bindings_for(Order) == []
