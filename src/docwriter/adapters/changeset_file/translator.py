"""Translate change-set file payloads into the entity model and a ``ChangeSet``.

Values in the file are JSON; they are decoded to their declared property types with
the JSON value serializer before being tracked. Names the model does not declare
raise ``ValueError``.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from logging import getLogger
from pathlib import Path
from typing import TYPE_CHECKING, Any, Final
from uuid import UUID

from bson import ObjectId

from docwriter.adapters.serialization import JsonValueSerializer
from docwriter.domain.model import ChangeSet, EntityState, Model, Property

from .schema import ChangeSetDocument

if TYPE_CHECKING:
    from collections.abc import Mapping

    from docwriter.domain.model import ChangeEntry, EntityType
    from docwriter.domain.ports import ValueSerializer

    from .schema import EntryPayload, OwnedEntryPayload, OwnedTypePayload, PropertyPayload


log = getLogger(__name__)

PYTHON_TYPES: Final[dict[str, type | None]] = {
    "any": None,
    "str": str,
    "int": int,
    "float": float,
    "bool": bool,
    "decimal": Decimal,
    "uuid": UUID,
    "datetime": datetime,
    "date": date,
    "objectid": ObjectId,
}


def load_change_set_file(path: Path | str) -> ChangeSetDocument:
    return ChangeSetDocument.model_validate_json(Path(path).read_text(encoding="utf-8"))


def translate_property(payload: PropertyPayload) -> Property:
    return Property(
        payload.name,
        python_type=PYTHON_TYPES[payload.type],
        element_name=payload.element_name,
        is_key=payload.key,
        is_concurrency_token=payload.concurrency_token,
        is_row_version=payload.row_version,
        is_ordinal_key=payload.ordinal_key,
        is_shadow=payload.shadow,
        value_generated=payload.generated,
    )


def build_model(document: ChangeSetDocument) -> Model:
    """Register every declared entity type and validate the resulting model."""

    model = Model()
    for payload in document.model.entity_types:
        root = model.add_entity_type(
            payload.name,
            properties=[translate_property(prop) for prop in payload.properties],
            collection_name=payload.collection,
        )
        _add_owned_types(model, root, payload.owned)
    model.validate()
    return model


def _add_owned_types(model: Model, owner: EntityType, owned: list[OwnedTypePayload]) -> None:
    for payload in owned:
        target = model.add_owned(
            owner,
            payload.navigation,
            payload.name,
            properties=[translate_property(prop) for prop in payload.properties],
            collection=payload.collection,
            element_name=payload.element_name,
        )
        _add_owned_types(model, target, payload.owned)


def build_change_set(
    document: ChangeSetDocument,
    model: Model,
    *,
    serializer: ValueSerializer | None = None,
) -> ChangeSet:
    """Track the file's entries, in file order, against ``model``."""

    decoder = serializer or JsonValueSerializer()
    change_set = ChangeSet()
    for payload in document.entries:
        entity_type = model.find_entity_type(payload.type)
        if entity_type is None:
            raise ValueError(f"Change-set entry has unknown entity type '{payload.type}'")
        entry = change_set.track(
            entity_type,
            EntityState(payload.state),
            _decode(entity_type, payload.values, decoder),
            original_values=_decode(entity_type, payload.original, decoder),
            modified=payload.modified,
            temporary=payload.temporary,
        )
        _track_owned(change_set, entry, payload, decoder)
    log.debug("Tracked %d entries from change-set file", len(change_set))
    return change_set


def _track_owned(
    change_set: ChangeSet,
    owner: ChangeEntry,
    payload: EntryPayload | OwnedEntryPayload,
    decoder: ValueSerializer,
) -> None:
    for owned in payload.owned:
        navigation = owner.entity_type.find_navigation(owned.navigation)
        if navigation is None:
            raise ValueError(
                f"Entity type '{owner.entity_type.name}' has no owned navigation "
                f"'{owned.navigation}'"
            )
        entry = change_set.track_owned(
            owner,
            owned.navigation,
            EntityState(owned.state),
            _decode(navigation.target, owned.values, decoder),
            original_values=_decode(navigation.target, owned.original, decoder),
            modified=owned.modified,
            temporary=owned.temporary,
        )
        _track_owned(change_set, entry, owned, decoder)


def _decode(
    entity_type: EntityType, values: Mapping[str, Any], decoder: ValueSerializer
) -> dict[str, Any]:
    decoded: dict[str, Any] = {}
    for name, value in values.items():
        prop = entity_type.find_property(name)
        if prop is None:
            raise ValueError(f"Entity type '{entity_type.name}' has no property '{name}'")
        decoded[name] = decoder.from_storage(prop, value)
    return decoded


def load_change_set(path: Path | str) -> tuple[Model, ChangeSet]:
    document = load_change_set_file(path)
    model = build_model(document)
    return model, build_change_set(document, model)
