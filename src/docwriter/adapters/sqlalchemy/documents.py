"""Document matching and bulk-write execution on top of the ``documents`` table.

Filters support equality on top-level and dotted fields, with a missing field
matching ``None``. Updates understand a single ``$set`` body whose keys may be
dotted paths. Writes run on the caller's connection; committing is left to it.
"""

from __future__ import annotations

import json
from copy import deepcopy
from logging import getLogger
from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, insert, select, update

from docwriter.domain.errors import DuplicateKeyError, StorageCommandError
from docwriter.domain.model import ID_ELEMENT_NAME, BulkWriteResult, OperationKind

from .mappings import documents_table

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping, Sequence

    from sqlalchemy.engine import Connection

    from docwriter.domain.model import Operation

log = getLogger(__name__)

_MISSING = object()


def document_key(value: Any) -> str:
    """Canonical text form of an ``_id`` value; compound ids compare field-order independent."""

    return json.dumps(value, sort_keys=True, separators=(",", ":"), default=str)


def get_path(document: Mapping[str, Any], path: str) -> Any:
    current: Any = document
    for part in path.split("."):
        if not isinstance(current, dict) or part not in current:
            return _MISSING
        current = current[part]
    return current


def matches(document: Mapping[str, Any], filter_document: Mapping[str, Any]) -> bool:
    for path, expected in filter_document.items():
        actual = get_path(document, path)
        if actual is _MISSING:
            if expected is not None:
                return False
        elif actual != expected:
            return False
    return True


def apply_set(document: Mapping[str, Any], set_document: Mapping[str, Any]) -> dict[str, Any]:
    """Return a copy of ``document`` with every ``$set`` field assigned."""

    updated = deepcopy(dict(document))
    for path, value in set_document.items():
        *parents, leaf = path.split(".")
        target = updated
        for part in parents:
            child = target.get(part)
            if not isinstance(child, dict):
                child = {}
                target[part] = child
            target = child
        target[leaf] = deepcopy(value)
    return updated


def find_documents(
    connection: Connection,
    collection_name: str,
    filter_document: Mapping[str, Any] | None = None,
) -> Iterator[tuple[str, dict[str, Any]]]:
    """Yield ``(document_id, body)`` pairs of ``collection_name`` matching the filter."""

    filter_document = filter_document or {}
    statement = select(documents_table.c.document_id, documents_table.c.body).where(
        documents_table.c.collection == collection_name
    )
    if ID_ELEMENT_NAME in filter_document:
        statement = statement.where(
            documents_table.c.document_id == document_key(filter_document[ID_ELEMENT_NAME])
        )
    for document_id, body in connection.execute(statement).all():
        if matches(body, filter_document):
            yield document_id, body


def find_one(
    connection: Connection,
    collection_name: str,
    filter_document: Mapping[str, Any],
) -> dict[str, Any] | None:
    for _, body in find_documents(connection, collection_name, filter_document):
        return body
    return None


def apply_operations(
    connection: Connection, collection_name: str, operations: Sequence[Operation]
) -> BulkWriteResult:
    """Apply ``operations`` in order, stopping at the first failing one."""

    inserted = matched = modified = deleted = 0
    for operation in operations:
        match operation.kind:
            case OperationKind.INSERT:
                _insert(connection, collection_name, operation.document or {})
                inserted += 1
            case OperationKind.UPDATE:
                found = _first_match(connection, collection_name, operation.filter or {})
                if found is None:
                    continue
                matched += 1
                document_id, body = found
                updated = apply_set(body, operation.document or {})
                if updated != body:
                    connection.execute(
                        update(documents_table)
                        .where(documents_table.c.collection == collection_name)
                        .where(documents_table.c.document_id == document_id)
                        .values(body=updated)
                    )
                    modified += 1
            case OperationKind.DELETE:
                found = _first_match(connection, collection_name, operation.filter or {})
                if found is None:
                    continue
                connection.execute(
                    delete(documents_table)
                    .where(documents_table.c.collection == collection_name)
                    .where(documents_table.c.document_id == found[0])
                )
                deleted += 1

    return BulkWriteResult(
        inserted_count=inserted,
        matched_count=matched,
        modified_count=modified,
        deleted_count=deleted,
    )


def _first_match(
    connection: Connection, collection_name: str, filter_document: Mapping[str, Any]
) -> tuple[str, dict[str, Any]] | None:
    return next(find_documents(connection, collection_name, filter_document), None)


def _insert(connection: Connection, collection_name: str, document: Mapping[str, Any]) -> None:
    if ID_ELEMENT_NAME not in document:
        raise StorageCommandError(
            f"Cannot insert into '{collection_name}': the document has no {ID_ELEMENT_NAME} field"
        )
    document_id = document_key(document[ID_ELEMENT_NAME])
    existing = connection.execute(
        select(documents_table.c.document_id)
        .where(documents_table.c.collection == collection_name)
        .where(documents_table.c.document_id == document_id)
    ).first()
    if existing is not None:
        log.warning("Rejected insert into '%s': duplicate _id %s", collection_name, document_id)
        raise DuplicateKeyError(collection_name, document[ID_ELEMENT_NAME])
    connection.execute(
        insert(documents_table).values(
            collection=collection_name, document_id=document_id, body=dict(document)
        )
    )
