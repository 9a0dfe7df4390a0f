from __future__ import annotations

import pytest

from docwriter.domain.errors import ModelValidationError
from docwriter.domain.model import (
    ID_ELEMENT_NAME,
    ORDINAL_PROPERTY_NAME,
    ROW_VERSION_ELEMENT_NAME,
    EntityType,
    Model,
    Navigation,
    Property,
)
from tests.helpers.documents import OrderModel


def test_simple_root_key_is_stored_as_id(order_model: OrderModel) -> None:
    key = order_model.order.get_property("id")

    assert order_model.order.element_name_of(key) == ID_ELEMENT_NAME


def test_compound_root_key_keeps_property_names() -> None:
    model = Model()
    entity_type = model.add_entity_type(
        "Membership",
        properties=[
            Property("group", is_key=True),
            Property("member", is_key=True),
        ],
    )

    names = [entity_type.element_name_of(prop) for prop in entity_type.key_properties()]

    assert names == ["group", "member"]


def test_row_version_defaults_to_version_element(order_model: OrderModel) -> None:
    row_version = order_model.order.row_version

    assert row_version is not None
    assert order_model.order.element_name_of(row_version) == ROW_VERSION_ELEMENT_NAME
    assert row_version in order_model.order.concurrency_tokens


def test_explicit_element_name_wins() -> None:
    prop = Property("createdAt", element_name="created")
    entity_type = EntityType("Event", properties=[Property("id", is_key=True), prop])

    assert entity_type.element_name_of(prop) == "created"


def test_empty_element_name_is_never_written() -> None:
    hidden = Property("cache", element_name="")
    entity_type = EntityType("Event", properties=[Property("id", is_key=True), hidden])

    assert not entity_type.is_written(hidden)
    assert hidden not in entity_type.non_key_properties()


def test_owned_collection_gets_shadow_ordinal_key(order_model: OrderModel) -> None:
    ordinal = order_model.line.ordinal_key

    assert ordinal is not None
    assert ordinal.name == ORDINAL_PROPERTY_NAME
    assert ordinal.is_shadow
    assert not order_model.line.is_written(ordinal)


def test_collection_name_comes_from_document_root(order_model: OrderModel) -> None:
    assert order_model.line.get_collection_name() == "orders"
    assert order_model.address.document_root_type() is order_model.order


def test_collection_name_defaults_to_root_name() -> None:
    model = Model()
    entity_type = model.add_entity_type("Invoice", properties=[Property("id", is_key=True)])

    assert entity_type.get_collection_name() == "Invoice"


def test_ownership_cycle_is_rejected() -> None:
    first = EntityType("First")
    second = EntityType("Second", owner=first)
    first.owner = second

    with pytest.raises(ModelValidationError, match="cycle"):
        first.document_root_type()


def test_row_version_on_owned_type_is_rejected() -> None:
    model = Model()
    root = model.add_entity_type("Root", properties=[Property("id", is_key=True)])
    model.add_owned(root, "child", "Child", properties=[Property("v", is_row_version=True)])

    with pytest.raises(ModelValidationError, match="document root"):
        model.validate()


def test_second_row_version_is_rejected() -> None:
    model = Model()
    model.add_entity_type(
        "Root",
        properties=[
            Property("id", is_key=True),
            Property("a", is_row_version=True),
            Property("b", is_row_version=True),
        ],
    )

    with pytest.raises(ModelValidationError, match="more than one row version"):
        model.validate()


def test_non_integer_row_version_is_rejected() -> None:
    model = Model()
    model.add_entity_type(
        "Root",
        properties=[Property("id", is_key=True), Property("v", python_type=str, is_row_version=True)],
    )

    with pytest.raises(ModelValidationError, match="integer"):
        model.validate()


def test_owned_collection_without_ordinal_is_rejected() -> None:
    model = Model()
    root = model.add_entity_type("Root", properties=[Property("id", is_key=True)])
    child = EntityType("Child", owner=root)
    root.navigations.append(Navigation("children", child, is_collection=True))

    with pytest.raises(ModelValidationError, match="ordinal key"):
        model.validate()


def test_duplicate_entity_type_is_rejected() -> None:
    model = Model()
    model.add_entity_type("Root")

    with pytest.raises(ModelValidationError, match="already registered"):
        model.add_entity_type("Root")
