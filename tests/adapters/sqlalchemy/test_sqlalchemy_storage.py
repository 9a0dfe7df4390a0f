from __future__ import annotations

import pytest
from sqlalchemy import create_engine

from docwriter.adapters.serialization import JsonValueSerializer
from docwriter.adapters.sqlalchemy import (
    SqlAlchemyStorageClient,
    StartupError,
    configured_engine,
    is_started,
    shutdown,
    startup,
)
from docwriter.domain.errors import ConcurrencyConflictError, DuplicateKeyError
from docwriter.domain.model import (
    AutoTransactionBehavior,
    ChangeSet,
    EntityState,
    Operation,
    OperationKind,
)
from docwriter.domain.save_pipeline import DocumentSaver
from tests.helpers.documents import OrderModel, add_order, load_order, modify, stored_order


def _saver(
    client: SqlAlchemyStorageClient,
    behavior: AutoTransactionBehavior = AutoTransactionBehavior.WHEN_NEEDED,
) -> DocumentSaver:
    return DocumentSaver(client, JsonValueSerializer(), behavior)


def test_bulk_write_reports_mongo_compatible_counts(
    sqlalchemy_client: SqlAlchemyStorageClient,
) -> None:
    with sqlalchemy_client.start_session() as session:
        result = session.bulk_write(
            "orders",
            [
                Operation(OperationKind.INSERT, "orders", document={"_id": 1, "n": 1}),
                Operation(OperationKind.INSERT, "orders", document={"_id": 2, "n": 2}),
                Operation(OperationKind.UPDATE, "orders", document={"n": 1}, filter={"_id": 1}),
                Operation(OperationKind.UPDATE, "orders", document={"n": 5}, filter={"_id": 2}),
                Operation(OperationKind.UPDATE, "orders", document={"n": 5}, filter={"_id": 3}),
                Operation(OperationKind.DELETE, "orders", filter={"_id": 1}),
            ],
        )

    assert (result.inserted_count, result.matched_count, result.modified_count) == (2, 2, 1)
    assert result.deleted_count == 1
    assert sqlalchemy_client.find_document("orders", {"_id": 2}) == {"_id": 2, "n": 5}
    assert sqlalchemy_client.find_document("orders", {"_id": 1}) is None


def test_duplicate_id_raises_duplicate_key_error(
    sqlalchemy_client: SqlAlchemyStorageClient,
) -> None:
    insert = Operation(OperationKind.INSERT, "orders", document={"_id": "a"})

    with sqlalchemy_client.start_session() as session:
        session.bulk_write("orders", [insert])
        with pytest.raises(DuplicateKeyError) as excinfo:
            session.bulk_write("orders", [insert])

    assert excinfo.value.document_id == "a"


def test_failed_bulk_write_without_transaction_is_undone(
    sqlalchemy_client: SqlAlchemyStorageClient,
) -> None:
    with sqlalchemy_client.start_session() as session:
        session.bulk_write("orders", [Operation(OperationKind.INSERT, "orders", document={"_id": 1})])
        with pytest.raises(DuplicateKeyError):
            session.bulk_write(
                "orders",
                [
                    Operation(OperationKind.INSERT, "orders", document={"_id": 2}),
                    Operation(OperationKind.INSERT, "orders", document={"_id": 1}),
                ],
            )

    assert sqlalchemy_client.find_document("orders", {"_id": 1}) == {"_id": 1}
    assert sqlalchemy_client.find_document("orders", {"_id": 2}) is None


def test_abort_transaction_discards_writes(sqlalchemy_client: SqlAlchemyStorageClient) -> None:
    with sqlalchemy_client.start_session() as session:
        session.start_transaction()
        session.bulk_write("orders", [Operation(OperationKind.INSERT, "orders", document={"_id": 1})])
        assert session.in_transaction
        session.abort_transaction()

    assert sqlalchemy_client.find_document("orders", {"_id": 1}) is None


def test_save_and_update_round_trip(
    order_model: OrderModel, sqlalchemy_client: SqlAlchemyStorageClient
) -> None:
    inserted = ChangeSet()
    add_order(inserted, order_model, lines=[("a", 1), ("b", 2)], city="Oslo")
    assert _saver(sqlalchemy_client).save_changes(inserted) == 1

    updated = ChangeSet()
    order = load_order(updated, order_model, version=1, lines=[("a", 1), ("b", 2)])
    modify(order, status="shipped")
    assert _saver(sqlalchemy_client).save_changes(updated) == 1

    stored = sqlalchemy_client.find_document("orders", {"_id": "order-1"})
    assert stored == stored_order(
        version=2, status="shipped", lines=[("a", 1), ("b", 2)]
    )
    assert order.current_values["version"] == 2


def test_row_version_detects_concurrent_update(
    order_model: OrderModel, sqlalchemy_client: SqlAlchemyStorageClient
) -> None:
    seeded = ChangeSet()
    add_order(seeded, order_model)
    _saver(sqlalchemy_client).save_changes(seeded)

    first, second = ChangeSet(), ChangeSet()
    winner = modify(load_order(first, order_model, version=1), status="paid")
    loser = modify(load_order(second, order_model, version=1), status="cancelled")

    assert _saver(sqlalchemy_client).save_changes(first) == 1
    with pytest.raises(ConcurrencyConflictError):
        _saver(sqlalchemy_client).save_changes(second)

    stored = sqlalchemy_client.find_document("orders", {"_id": "order-1"})
    assert stored is not None
    assert stored["status"] == "paid"
    assert winner.current_values["version"] == 2
    assert loser.current_value("version") == 1


def test_without_concurrency_token_last_write_wins(
    sqlalchemy_client: SqlAlchemyStorageClient, order_model: OrderModel
) -> None:
    order_model.customer.properties[:] = [
        prop for prop in order_model.customer.properties if prop.name != "email"
    ]
    seeded = ChangeSet()
    seeded.track(order_model.customer, EntityState.ADDED, {"id": "c1", "name": "Ada"})
    _saver(sqlalchemy_client).save_changes(seeded)

    for name in ("Ada L.", "Ada K."):
        change_set = ChangeSet()
        customer = change_set.track(
            order_model.customer, EntityState.UNCHANGED, {"id": "c1", "name": "Ada"}
        )
        modify(customer, name=name)
        assert _saver(sqlalchemy_client).save_changes(change_set) == 1

    assert sqlalchemy_client.find_document("customers", {"_id": "c1"}) == {
        "_id": "c1",
        "name": "Ada K.",
    }


def test_transaction_rolls_back_across_collections(
    order_model: OrderModel, sqlalchemy_client: SqlAlchemyStorageClient
) -> None:
    seeded = ChangeSet()
    seeded.track(order_model.customer, EntityState.ADDED, {"id": "c1", "name": "Ada"})
    _saver(sqlalchemy_client).save_changes(seeded)

    change_set = ChangeSet()
    add_order(change_set, order_model, "order-9")
    change_set.track(order_model.customer, EntityState.ADDED, {"id": "c1", "name": "Ada"})

    with pytest.raises(DuplicateKeyError):
        _saver(sqlalchemy_client).save_changes(change_set)

    assert sqlalchemy_client.find_document("orders", {"_id": "order-9"}) is None


def test_startup_lifecycle() -> None:
    shutdown()
    assert not is_started()
    with pytest.raises(StartupError):
        SqlAlchemyStorageClient()

    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    startup(engine=engine)
    try:
        assert configured_engine() is engine
        with pytest.raises(StartupError, match="already initialised"):
            startup(engine=engine)
    finally:
        shutdown()
    assert configured_engine() is None
