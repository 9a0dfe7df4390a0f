"""Pydantic models describing the JSON change-set file format.

A file declares the entity model (document roots with their owned types) and the
tracked entries. Owned entries are nested under the entry that owns them.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

PropertyTypeName = Literal[
    "any", "str", "int", "float", "bool", "decimal", "uuid", "datetime", "date", "objectid"
]
EntryStateName = Literal["added", "modified", "deleted", "unchanged", "detached"]


class ChangeSetFileModel(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class PropertyPayload(ChangeSetFileModel):
    name: str
    type: PropertyTypeName = "any"
    element_name: str | None = None
    key: bool = False
    concurrency_token: bool = False
    row_version: bool = False
    ordinal_key: bool = False
    shadow: bool = False
    generated: bool = False


class OwnedTypePayload(ChangeSetFileModel):
    navigation: str
    name: str
    collection: bool = False
    element_name: str | None = None
    properties: list[PropertyPayload] = Field(default_factory=list)
    owned: list[OwnedTypePayload] = Field(default_factory=list)


class EntityTypePayload(ChangeSetFileModel):
    name: str
    collection: str | None = None
    properties: list[PropertyPayload] = Field(default_factory=list)
    owned: list[OwnedTypePayload] = Field(default_factory=list)


class ModelPayload(ChangeSetFileModel):
    entity_types: list[EntityTypePayload]

    @field_validator("entity_types")
    @classmethod
    def _require_entity_types(cls, value: list[EntityTypePayload]) -> list[EntityTypePayload]:
        if not value:
            raise ValueError("a model needs at least one entity type")
        return value


class OwnedEntryPayload(ChangeSetFileModel):
    navigation: str
    state: EntryStateName
    values: dict[str, Any] = Field(default_factory=dict)
    original: dict[str, Any] = Field(default_factory=dict)
    modified: list[str] = Field(default_factory=list)
    temporary: list[str] = Field(default_factory=list)
    owned: list[OwnedEntryPayload] = Field(default_factory=list)


class EntryPayload(ChangeSetFileModel):
    type: str
    state: EntryStateName
    values: dict[str, Any] = Field(default_factory=dict)
    original: dict[str, Any] = Field(default_factory=dict)
    modified: list[str] = Field(default_factory=list)
    temporary: list[str] = Field(default_factory=list)
    owned: list[OwnedEntryPayload] = Field(default_factory=list)


class ChangeSetDocument(ChangeSetFileModel):
    model: ModelPayload
    entries: list[EntryPayload] = Field(default_factory=list)


OwnedTypePayload.model_rebuild()
OwnedEntryPayload.model_rebuild()
