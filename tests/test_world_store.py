"""Tests for the World State Store and condition matching."""

import pytest

from goap_kernel.models.world import (
    ConditionOperator,
    EffectOp,
    EffectOperation,
    Predicate,
)
from goap_kernel.world_model.conditions import (
    apply_effects,
    is_satisfied,
    matches,
    unsatisfied,
)
from goap_kernel.world_model.store import WorldStateStore


def _make_store() -> WorldStateStore:
    return WorldStateStore({
        "dock_available": True,
        "orders_in_queue": ["ORD-1", "ORD-2"],
        "pallets": 4,
    })


class TestConditions:
    def test_literal_equality(self):
        assert matches(True, True)
        assert not matches(False, True)
        assert matches(("A",), ["A"])

    def test_bool_never_equals_int(self):
        assert not matches(1, True)
        assert not matches(True, 1)

    def test_missing_key_is_unsatisfied(self):
        assert unsatisfied({}, {"order_picked": True}) == {"order_picked": True}

    def test_ordering_on_list_compares_length(self):
        not_empty = Predicate(operator=ConditionOperator.GT, value=0)
        assert matches(["ORD-1"], not_empty)
        assert not matches([], not_empty)

    def test_contains_and_exists(self):
        state = {"orders_in_queue": ("ORD-1",)}
        assert is_satisfied(state, {
            "orders_in_queue": Predicate(operator=ConditionOperator.CONTAINS, value="ORD-1"),
        })
        assert is_satisfied(state, {
            "truck_arrived": Predicate(operator=ConditionOperator.NOT_EXISTS),
        })
        assert not is_satisfied(state, {
            "truck_arrived": Predicate(operator=ConditionOperator.EXISTS),
        })

    def test_relative_effects(self):
        state, changed = apply_effects(
            {"pallets": 4, "orders_in_queue": ("ORD-1",)},
            {
                "pallets": EffectOp(operation=EffectOperation.DECREMENT, value=1),
                "orders_in_queue": EffectOp(operation=EffectOperation.PUSH, value="ORD-2"),
                "dock_available": EffectOp(operation=EffectOperation.TOGGLE),
            },
        )
        assert state["pallets"] == 3
        assert state["orders_in_queue"] == ("ORD-1", "ORD-2")
        assert state["dock_available"] is True
        assert changed == ["pallets", "orders_in_queue", "dock_available"]


class TestWorldStateStore:
    def test_apply_bumps_version_and_merges(self):
        store = _make_store()
        snapshot = store.apply({"dock_available": False}, source="test")
        assert store.version == 1
        assert snapshot["dock_available"] is False
        assert snapshot["pallets"] == 4

    def test_snapshots_are_read_only(self):
        store = _make_store()
        snapshot = store.snapshot()
        with pytest.raises(TypeError):
            snapshot["dock_available"] = False
        with pytest.raises(TypeError):
            snapshot.update({"dock_available": False})

    def test_old_snapshots_do_not_change(self):
        store = _make_store()
        before = store.snapshot()
        store.apply({"orders_in_queue": []})
        assert before["orders_in_queue"] == ("ORD-1", "ORD-2")
        assert store.get("orders_in_queue") == ()

    def test_subscribers_see_every_write_in_order(self):
        store = _make_store()
        seen = []
        store.subscribe(lambda s: seen.append(s["pallets"]))
        store.apply({"pallets": 5})
        store.apply({"pallets": 6})
        assert seen == [5, 6]

    def test_failing_subscriber_does_not_block_write(self):
        store = _make_store()

        def broken(snapshot):
            raise RuntimeError("boom")

        store.subscribe(broken)
        store.apply({"pallets": 1})
        assert store.get("pallets") == 1

    def test_recent_changes(self):
        store = _make_store()
        store.apply({"pallets": 5})
        store.apply({"pallets": 5})
        changes = store.get_recent_changes()
        assert [c.version for c in changes] == [1, 2]
        assert changes[0].changed_keys == ["pallets"]
        assert changes[1].changed_keys == []

    def test_state_snapshot_is_json_friendly(self):
        state = _make_store().get_state_snapshot()
        assert state["orders_in_queue"] == ["ORD-1", "ORD-2"]
