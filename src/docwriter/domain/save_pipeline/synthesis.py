"""Synthesize one storage operation per changed document root."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, assert_never

from docwriter.domain.errors import MissingPrimaryKeyError
from docwriter.domain.model import (
    ID_ELEMENT_NAME,
    EntityState,
    Operation,
    OperationKind,
    RowVersion,
)
from docwriter.domain.save_pipeline.value_generation import (
    accept_temporary_values,
    assign_ordinals,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from docwriter.domain.model import ChangeEntry, ChangeSet, EntityType, Navigation, Property
    from docwriter.domain.ports import ValueSerializer


def create_operations(
    roots: Iterable[ChangeEntry], change_set: ChangeSet, serializer: ValueSerializer
) -> list[Operation]:
    """Convert root entries into operations, preserving their order.

    Every root is checked for a primary key before any document is serialized.
    """

    root_entries = list(roots)
    for entry in root_entries:
        ensure_primary_key(entry.entity_type)

    operations: list[Operation] = []
    for entry in root_entries:
        operation = create_operation(entry, change_set, serializer)
        if operation is not None:
            operations.append(operation)
    return operations


def create_operation(
    entry: ChangeEntry, change_set: ChangeSet, serializer: ValueSerializer
) -> Operation | None:
    ensure_primary_key(entry.entity_type)
    writer = DocumentWriter(change_set, serializer)
    match entry.state:
        case EntityState.ADDED:
            return _convert_added(entry, writer)
        case EntityState.MODIFIED:
            return _convert_modified(entry, writer)
        case EntityState.DELETED:
            return _convert_deleted(entry, writer)
        case EntityState.UNCHANGED | EntityState.DETACHED:
            return None
        case _:
            assert_never(entry.state)


def ensure_primary_key(entity_type: EntityType) -> None:
    if entity_type.find_primary_key() is None or not entity_type.key_properties():
        raise MissingPrimaryKeyError(entity_type.name)


def _convert_added(entry: ChangeEntry, writer: DocumentWriter) -> Operation:
    row_version = entry.entity_type.row_version
    if row_version is not None:
        initial = RowVersion.for_value(entry.current_value(row_version)).current
        entry.set_store_generated_value(row_version, initial)

    document = writer.write_entity(entry)
    return Operation(
        OperationKind.INSERT,
        entry.entity_type.get_collection_name(),
        document=document,
        entries=tuple(writer.written),
    )


def _convert_modified(entry: ChangeEntry, writer: DocumentWriter) -> Operation:
    # the filter must see the original token values, so build it first
    filter_document = writer.filter_document(entry)

    row_version = entry.entity_type.row_version
    if row_version is not None:
        bumped = RowVersion.for_value(entry.original_value(row_version)).next
        entry.set_store_generated_value(row_version, bumped)

    document = writer.write_entity(entry, changed_only=True)
    return Operation(
        OperationKind.UPDATE,
        entry.entity_type.get_collection_name(),
        document=document,
        filter=filter_document,
        entries=tuple(writer.written),
    )


def _convert_deleted(entry: ChangeEntry, writer: DocumentWriter) -> Operation:
    return Operation(
        OperationKind.DELETE,
        entry.entity_type.get_collection_name(),
        filter=writer.filter_document(entry),
        entries=(entry,),
    )


class DocumentWriter:
    """Serialize an entry and its owned graph into one storage-native document.

    ``written`` collects every entry serialized so far, root first, so pending
    generated values can be accepted or discarded together once the save ends.
    """

    def __init__(self, change_set: ChangeSet, serializer: ValueSerializer) -> None:
        self._change_set = change_set
        self._serializer = serializer
        self.written: list[ChangeEntry] = []

    def write_entity(self, entry: ChangeEntry, *, changed_only: bool = False) -> dict[str, Any]:
        """Serialize ``entry``.

        With ``changed_only`` the document is a ``$set`` body: key properties are
        left out and only modified scalars (plus the row version) are written, while
        owned navigations are always serialized in full.
        """

        self.written.append(entry)
        accept_temporary_values(entry)
        entity_type = entry.entity_type

        document: dict[str, Any] = {}
        if not changed_only:
            document.update(self.key_document(entry))

        for prop in entity_type.non_key_properties():
            if changed_only and not (entry.is_modified(prop) or prop.is_row_version):
                continue
            document[entity_type.element_name_of(prop)] = self._serialize(entry, prop)

        for navigation in entity_type.navigations:
            document[navigation.element_name] = self._write_navigation(entry, navigation)

        return document

    def key_document(self, entry: ChangeEntry) -> dict[str, Any]:
        entity_type = entry.entity_type
        key = entity_type.key_properties()
        values = {
            entity_type.element_name_of(prop): self._serialize(entry, prop) for prop in key
        }
        if len(key) > 1:
            return {ID_ELEMENT_NAME: values}
        return values

    def filter_document(self, entry: ChangeEntry) -> dict[str, Any]:
        """Match the document by key and by the original value of every concurrency token."""

        entity_type = entry.entity_type
        filter_document = self.key_document(entry)
        for token in entity_type.concurrency_tokens:
            if not entity_type.is_written(token):
                continue
            original = entry.original_value(token)
            if token.is_row_version:
                original = RowVersion.for_value(original).current
            filter_document[entity_type.element_name_of(token)] = self._serializer.to_storage(
                token, original
            )
        return filter_document

    def _write_navigation(self, entry: ChangeEntry, navigation: Navigation) -> Any:
        dependents = self._change_set.dependents(entry, navigation)
        if dependents is None:
            return None
        if navigation.is_collection:
            assign_ordinals(dependents)
            return [self.write_entity(dependent) for dependent in dependents]
        return self.write_entity(dependents[0])

    def _serialize(self, entry: ChangeEntry, prop: Property) -> Any:
        return self._serializer.to_storage(prop, entry.current_value(prop))


def read_entity(
    entity_type: EntityType, document: Mapping[str, Any], serializer: ValueSerializer
) -> dict[str, Any]:
    """Materialize property values (and nested owned values) from a stored document."""

    values: dict[str, Any] = {}
    key = entity_type.key_properties()
    key_source: Mapping[str, Any] = document
    if len(key) > 1:
        key_source = document.get(ID_ELEMENT_NAME) or {}
    for prop in key:
        element_name = entity_type.element_name_of(prop)
        if element_name in key_source:
            values[prop.name] = serializer.from_storage(prop, key_source[element_name])

    for prop in entity_type.non_key_properties():
        element_name = entity_type.element_name_of(prop)
        if element_name in document:
            values[prop.name] = serializer.from_storage(prop, document[element_name])

    for navigation in entity_type.navigations:
        raw = document.get(navigation.element_name)
        if raw is None:
            values[navigation.name] = None
        elif navigation.is_collection:
            values[navigation.name] = [
                read_entity(navigation.target, item, serializer) for item in raw
            ]
        else:
            values[navigation.name] = read_entity(navigation.target, raw, serializer)
    return values
