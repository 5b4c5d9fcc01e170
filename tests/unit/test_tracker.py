from __future__ import annotations

from sheetbind.services.tracker import RoundTripTracker
from sample_records import Customer, Order

"""Unit tests for the round-trip tracker."""


def test_record_and_tracked_copy():
    t = RoundTripTracker()
    t.begin("Orders", Order)
    t.record("Orders", Order, 1, "a")
    t.record("Orders", Order, 2, None)
    tracked = t.tracked("Orders", Order)
    assert tracked == {1: "a", 2: None}
    tracked[3] = "mutated"
    assert 3 not in t.tracked("Orders", Order)
    assert len(t) == 2


def test_begin_resets_only_that_pair():
    t = RoundTripTracker()
    t.record("S", Order, 1, "o")
    t.record("S", Customer, 1, "c")
    t.begin("S", Order)
    assert t.tracked("S", Order) == {}
    assert t.tracked("S", Customer) == {1: "c"}


def test_unknown_pair_is_empty_and_clear():
    t = RoundTripTracker()
    assert t.tracked("Nope", Order) == {}
    t.record("A", Order, 0, "x")
    t.record("B", Order, 0, "y")
    assert t.sheets() == ["A", "B"]
    t.clear()
    assert len(t) == 0 and t.sheets() == []
