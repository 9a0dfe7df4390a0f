from __future__ import annotations

import pytest

from docwriter.adapters.serialization import JsonValueSerializer
from docwriter.adapters.sqlalchemy import AsyncSqlAlchemyStorageClient
from docwriter.domain.errors import ConcurrencyConflictError
from docwriter.domain.model import ChangeSet, EntityState, Operation, OperationKind
from docwriter.domain.save_pipeline import AsyncDocumentSaver
from tests.helpers.documents import OrderModel, add_order, load_order, modify


@pytest.mark.asyncio
async def test_async_bulk_write_and_abort(
    async_sqlalchemy_client: AsyncSqlAlchemyStorageClient,
) -> None:
    async with async_sqlalchemy_client.start_session() as session:
        await session.bulk_write(
            "orders", [Operation(OperationKind.INSERT, "orders", document={"_id": 1})]
        )
        await session.start_transaction()
        await session.bulk_write(
            "orders", [Operation(OperationKind.INSERT, "orders", document={"_id": 2})]
        )
        await session.abort_transaction()

    assert await async_sqlalchemy_client.find_document("orders", {"_id": 1}) == {"_id": 1}
    assert await async_sqlalchemy_client.find_document("orders", {"_id": 2}) is None


@pytest.mark.asyncio
async def test_async_save_detects_concurrent_update(
    order_model: OrderModel,
    async_sqlalchemy_client: AsyncSqlAlchemyStorageClient,
) -> None:
    saver = AsyncDocumentSaver(async_sqlalchemy_client, JsonValueSerializer())
    seeded = ChangeSet()
    add_order(seeded, order_model, lines=[("a", 1)])
    assert await saver.save_changes(seeded) == 1

    first, second = ChangeSet(), ChangeSet()
    modify(load_order(first, order_model, version=1), status="paid")
    stale = modify(load_order(second, order_model, version=1), status="cancelled")
    second.track(order_model.customer, EntityState.ADDED, {"id": "c1", "name": "Ada"})

    assert await saver.save_changes(first) == 1
    with pytest.raises(ConcurrencyConflictError):
        await saver.save_changes(second)

    stored = await async_sqlalchemy_client.find_document("orders", {"_id": "order-1"})
    assert stored is not None
    assert stored["status"] == "paid"
    assert stored["_version"] == 2
    assert await async_sqlalchemy_client.find_document("customers", {"_id": "c1"}) is None
    assert stale.current_value("version") == 1
