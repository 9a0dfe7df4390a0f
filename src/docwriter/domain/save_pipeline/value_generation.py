"""Value generation for keys, temporary values and owned-collection ordinals."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol
from uuid import UUID, uuid4

from bson import ObjectId

from docwriter.domain.model import EntityState

if TYPE_CHECKING:
    from collections.abc import Sequence

    from docwriter.domain.model import ChangeEntry, Property


class ValueGenerator(Protocol):
    def next(self, entry: ChangeEntry) -> Any: ...


class ObjectIdValueGenerator:
    def next(self, entry: ChangeEntry) -> ObjectId:
        _ = entry
        return ObjectId()


class UuidValueGenerator:
    def next(self, entry: ChangeEntry) -> UUID:
        _ = entry
        return uuid4()


def select_generator(prop: Property) -> ValueGenerator | None:
    """Return the generator for a client-generated key, if ``prop`` has one."""

    if not prop.value_generated or not prop.is_key or prop.is_ordinal_key:
        return None
    if prop.python_type is None or issubclass(prop.python_type, ObjectId):
        return ObjectIdValueGenerator()
    if issubclass(prop.python_type, UUID):
        return UuidValueGenerator()
    return None


def accept_temporary_values(entry: ChangeEntry) -> None:
    """Promote temporary values to final values and fill missing generated keys."""

    for prop in entry.entity_type.properties:
        if prop.is_ordinal_key:
            continue
        if entry.has_temporary_value(prop):
            entry.set_store_generated_value(prop, entry.current_value(prop))
            continue
        if entry.state is EntityState.ADDED and entry.current_value(prop) is None:
            generator = select_generator(prop)
            if generator is not None:
                entry.set_store_generated_value(prop, generator.next(entry))


def assign_ordinals(entries: Sequence[ChangeEntry]) -> None:
    """Give owned collection items with a temporary ordinal a fresh, non-colliding one.

    New ordinals continue from the highest ordinal already held by an item of the
    same collection, in enumeration order, so existing items keep their identity
    across reorders. Ordinals are not kept contiguous.
    """

    if not entries:
        return
    ordinal_key = entries[0].entity_type.ordinal_key
    if ordinal_key is None:
        return

    pending: list[ChangeEntry] = []
    existing: list[int] = []
    for entry in entries:
        value = entry.current_value(ordinal_key)
        if entry.has_temporary_value(ordinal_key) or value is None:
            pending.append(entry)
        else:
            existing.append(value)

    next_ordinal = max(existing, default=-1) + 1
    for entry in pending:
        entry.set_store_generated_value(ordinal_key, next_ordinal)
        next_ordinal += 1
