"""Application orchestration entry points."""

from __future__ import annotations

import asyncio
import json
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING, Any

from docwriter.adapters.changeset_file import build_model, load_change_set, load_change_set_file
from docwriter.adapters.pymongo import AsyncPyMongoStorageClient, PyMongoStorageClient
from docwriter.adapters.serialization import BsonValueSerializer, JsonValueSerializer
from docwriter.adapters.sqlalchemy import (
    AsyncSqlAlchemyStorageClient,
    SqlAlchemyStorageClient,
    create_all_tables_async,
    create_storage_engine,
    is_started,
    startup,
)
from docwriter.config import get_database_config, get_mongo_config, get_save_config
from docwriter.domain.model import ChangeSet, EntityState
from docwriter.domain.save_pipeline import (
    AsyncDocumentSaver,
    DocumentSaver,
    DocumentWriter,
    read_entity,
)

if TYPE_CHECKING:
    from pathlib import Path

    from docwriter.domain.model import AutoTransactionBehavior
    from docwriter.domain.ports import ValueSerializer


log = getLogger(__name__)


class StorageBackend(StrEnum):
    SQLALCHEMY = "sqlalchemy"
    MONGO = "mongo"


def serializer_for(backend: StorageBackend) -> ValueSerializer:
    match backend:
        case StorageBackend.SQLALCHEMY:
            return JsonValueSerializer()
        case StorageBackend.MONGO:
            return BsonValueSerializer()


def init_database(*, database_uri: str | None = None) -> None:
    """Create the document table for the configured SQLAlchemy database."""

    startup(database_uri=database_uri, force=True)
    log.info("Initialised document store")


def apply_change_set_file(
    path: Path | str,
    *,
    backend: StorageBackend = StorageBackend.SQLALCHEMY,
    auto_transaction: AutoTransactionBehavior | None = None,
    use_async: bool = False,
) -> int:
    """Save the entries of a change-set file and return the affected document count."""

    _, change_set = load_change_set(path)
    behavior = auto_transaction or get_save_config().auto_transaction
    log.info(
        "Applying change set %s: entries=%d, backend=%s, auto_transaction=%s, async=%s",
        path,
        len(change_set),
        backend,
        behavior,
        use_async,
    )

    if use_async:
        affected = asyncio.run(apply_change_set_async(change_set, backend, behavior))
    else:
        affected = apply_change_set(change_set, backend, behavior)

    log.info("Applied change set %s: affected=%d", path, affected)
    return affected


def apply_change_set(
    change_set: ChangeSet,
    backend: StorageBackend,
    auto_transaction: AutoTransactionBehavior,
) -> int:
    serializer = serializer_for(backend)
    match backend:
        case StorageBackend.SQLALCHEMY:
            if not is_started():
                startup()
            saver = DocumentSaver(SqlAlchemyStorageClient(), serializer, auto_transaction)
            return saver.save_changes(change_set)
        case StorageBackend.MONGO:
            client = PyMongoStorageClient.from_config(get_mongo_config())
            try:
                return DocumentSaver(client, serializer, auto_transaction).save_changes(change_set)
            finally:
                client.close()


async def apply_change_set_async(
    change_set: ChangeSet,
    backend: StorageBackend,
    auto_transaction: AutoTransactionBehavior,
) -> int:
    serializer = serializer_for(backend)
    match backend:
        case StorageBackend.SQLALCHEMY:
            engine = create_storage_engine(get_database_config().async_uri)
            try:
                await create_all_tables_async(engine)
                saver = AsyncDocumentSaver(
                    AsyncSqlAlchemyStorageClient(engine), serializer, auto_transaction
                )
                return await saver.save_changes(change_set)
            finally:
                await engine.dispose()
        case StorageBackend.MONGO:
            client = AsyncPyMongoStorageClient.from_config(get_mongo_config())
            try:
                saver = AsyncDocumentSaver(client, serializer, auto_transaction)
                return await saver.save_changes(change_set)
            finally:
                await client.close()


def parse_key(raw: str) -> Any:
    """Parse a key given on the command line: JSON when it parses, else the raw string."""

    try:
        return json.loads(raw)
    except ValueError:
        return raw


def show_document(
    path: Path | str,
    type_name: str,
    key: Any,
    *,
    backend: StorageBackend = StorageBackend.SQLALCHEMY,
) -> dict[str, Any] | None:
    """Load a stored document by key and materialize it with the model of a change-set file.

    ``key`` is the key value, or a mapping of key property names to values for a
    compound key.
    """

    model = build_model(load_change_set_file(path))
    entity_type = model.find_entity_type(type_name)
    if entity_type is None:
        raise ValueError(f"Unknown entity type '{type_name}'")
    if not entity_type.is_document_root:
        raise ValueError(f"Entity type '{type_name}' is not a document root")

    key_properties = entity_type.key_properties()
    if len(key_properties) > 1 and not isinstance(key, dict):
        names = ", ".join(prop.name for prop in key_properties)
        raise ValueError(
            f"Entity type '{type_name}' has a compound key; pass a JSON object with {names}"
        )
    values = dict(key) if isinstance(key, dict) else {key_properties[0].name: key}
    decoder = JsonValueSerializer()
    typed: dict[str, Any] = {}
    for name, value in values.items():
        prop = entity_type.find_property(name)
        if prop is None or not prop.is_key:
            raise ValueError(f"'{name}' is not a key property of '{type_name}'")
        typed[name] = decoder.from_storage(prop, value)
    serializer = serializer_for(backend)
    entry = ChangeSet().track(entity_type, EntityState.UNCHANGED, typed)
    filter_document = DocumentWriter(ChangeSet(), serializer).key_document(entry)

    collection_name = entity_type.get_collection_name()
    match backend:
        case StorageBackend.SQLALCHEMY:
            if not is_started():
                startup()
            raw = SqlAlchemyStorageClient().find_document(collection_name, filter_document)
        case StorageBackend.MONGO:
            client = PyMongoStorageClient.from_config(get_mongo_config())
            try:
                raw = client.find_document(collection_name, filter_document)
            finally:
                client.close()

    if raw is None:
        log.info("No document in '%s' matches %s", collection_name, filter_document)
        return None
    return read_entity(entity_type, raw, serializer)
