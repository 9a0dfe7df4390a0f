from __future__ import annotations

import pytest

from docwriter.domain.model import ChangeSet, EntityState
from tests.helpers.documents import OrderModel, add_order, load_order


def test_generated_values_stay_pending_until_accepted(
    order_model: OrderModel, change_set: ChangeSet
) -> None:
    order = load_order(change_set, order_model, version=3)

    order.set_store_generated_value("version", 4)

    assert order.current_value("version") == 4
    assert order.current_values["version"] == 3

    order.accept_store_generated_values()

    assert order.current_values["version"] == 4
    assert order.store_generated_values == {}


def test_discarded_generated_values_leave_current_values(
    order_model: OrderModel, change_set: ChangeSet
) -> None:
    order = load_order(change_set, order_model, version=3)
    order.set_store_generated_value("version", 4)

    order.discard_store_generated_values()

    assert order.current_value("version") == 3


def test_temporary_value_is_cleared_once_accepted(
    order_model: OrderModel, change_set: ChangeSet
) -> None:
    order = change_set.track(
        order_model.order, EntityState.ADDED, {"id": "tmp-1"}, temporary=["id"]
    )
    assert order.has_temporary_value("id")

    order.set_store_generated_value("id", "tmp-1")
    assert not order.has_temporary_value("id")

    order.accept_store_generated_values()
    assert "id" not in order.temporary_properties


def test_original_value_falls_back_to_current(
    order_model: OrderModel, change_set: ChangeSet
) -> None:
    order = load_order(change_set, order_model, status="paid")

    assert order.original_value("status") == "paid"


def test_owned_entries_reference_their_root(order_model: OrderModel, change_set: ChangeSet) -> None:
    order = add_order(change_set, order_model, lines=[("a", 1), ("b", 2)], city="Oslo")

    lines = change_set.dependents(order, order_model.order.find_navigation("lines"))  # type: ignore[arg-type]

    assert lines is not None
    assert [line.current_value("sku") for line in lines] == ["a", "b"]
    assert all(line.root_id == order.entry_id for line in lines)
    assert isinstance(order.navigations["shipping"], int)


def test_deleted_owned_entry_is_not_attached(
    order_model: OrderModel, change_set: ChangeSet
) -> None:
    order = load_order(change_set, order_model)

    removed = change_set.track_owned(order, "lines", EntityState.DELETED, {"sku": "gone"})

    assert order.navigations["lines"] == []
    assert removed.root_id == order.entry_id


def test_remove_owned_detaches_and_marks_deleted(
    order_model: OrderModel, change_set: ChangeSet
) -> None:
    order = load_order(change_set, order_model, lines=[("a", 1), ("b", 1)])
    first = change_set.get(order.navigations["lines"][0])  # type: ignore[index]

    change_set.remove_owned(order, "lines", first)

    assert first.state is EntityState.DELETED
    assert first.entry_id not in order.navigations["lines"]  # type: ignore[operator]


def test_unknown_navigation_raises(order_model: OrderModel, change_set: ChangeSet) -> None:
    order = load_order(change_set, order_model)

    with pytest.raises(KeyError, match="no owned navigation"):
        change_set.track_owned(order, "payments", EntityState.ADDED, {})


def test_get_unknown_entry_raises(change_set: ChangeSet) -> None:
    assert change_set.find(42) is None
    with pytest.raises(KeyError):
        change_set.get(42)
