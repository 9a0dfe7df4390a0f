"""
Entity model metadata:
properties, owned navigations, document roots and element naming.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Final

from docwriter.domain.errors import ModelValidationError

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

ID_ELEMENT_NAME: Final[str] = "_id"
ROW_VERSION_ELEMENT_NAME: Final[str] = "_version"
ORDINAL_PROPERTY_NAME: Final[str] = "_ordinal"

ROW_VERSION_TYPES: Final[tuple[type, ...]] = (int,)


@dataclass(frozen=True, slots=True)
class Property:
    """A scalar property of an entity type.

    ``element_name`` overrides the document field name; an empty string means the
    property is never written. ``is_row_version`` implies a concurrency token.
    """

    name: str
    python_type: type | None = None
    element_name: str | None = None
    is_key: bool = False
    is_concurrency_token: bool = False
    is_row_version: bool = False
    is_ordinal_key: bool = False
    is_shadow: bool = False
    value_generated: bool = False

    @property
    def is_concurrency(self) -> bool:
        return self.is_concurrency_token or self.is_row_version


@dataclass(frozen=True, slots=True)
class Navigation:
    """An owned navigation: the target is embedded in the declaring document."""

    name: str
    target: EntityType
    is_collection: bool = False

    @property
    def element_name(self) -> str:
        return self.target.containing_element_name or self.name


@dataclass(eq=False, slots=True)
class EntityType:
    name: str
    properties: list[Property] = field(default_factory=list[Property])
    navigations: list[Navigation] = field(default_factory=list[Navigation])
    collection_name: str | None = None
    owner: EntityType | None = None
    containing_element_name: str | None = None

    def __repr__(self) -> str:
        return f"EntityType({self.name!r})"

    @property
    def is_document_root(self) -> bool:
        return self.owner is None

    def document_root_type(self) -> EntityType:
        current = self
        seen: set[int] = set()
        while current.owner is not None:
            if id(current) in seen:
                raise ModelValidationError(f"Ownership cycle detected at '{current.name}'")
            seen.add(id(current))
            current = current.owner
        return current

    def get_collection_name(self) -> str:
        root = self.document_root_type()
        return root.collection_name or root.name

    def find_property(self, name: str) -> Property | None:
        for prop in self.properties:
            if prop.name == name:
                return prop
        return None

    def get_property(self, name: str) -> Property:
        prop = self.find_property(name)
        if prop is None:
            raise KeyError(f"Entity type '{self.name}' has no property '{name}'")
        return prop

    def find_navigation(self, name: str) -> Navigation | None:
        for navigation in self.navigations:
            if navigation.name == name:
                return navigation
        return None

    def find_primary_key(self) -> tuple[Property, ...] | None:
        key = tuple(prop for prop in self.properties if prop.is_key)
        return key or None

    @property
    def concurrency_tokens(self) -> tuple[Property, ...]:
        return tuple(prop for prop in self.properties if prop.is_concurrency and not prop.is_key)

    @property
    def row_version(self) -> Property | None:
        return next((prop for prop in self.properties if prop.is_row_version), None)

    @property
    def ordinal_key(self) -> Property | None:
        return next((prop for prop in self.properties if prop.is_ordinal_key), None)

    def element_name_of(self, prop: Property) -> str:
        """Return the document field name ``prop`` is stored under."""

        if prop.element_name is not None:
            return prop.element_name
        if prop.is_key and not self.is_document_root:
            return ""
        if prop.is_row_version:
            return ROW_VERSION_ELEMENT_NAME
        key = self.find_primary_key()
        if prop.is_key and key is not None and len(key) == 1:
            return ID_ELEMENT_NAME
        return prop.name

    def is_written(self, prop: Property) -> bool:
        return not prop.is_shadow and self.element_name_of(prop) != ""

    def key_properties(self) -> tuple[Property, ...]:
        return tuple(prop for prop in self.find_primary_key() or () if self.is_written(prop))

    def non_key_properties(self) -> tuple[Property, ...]:
        return tuple(
            prop for prop in self.properties if not prop.is_key and self.is_written(prop)
        )


class Model:
    """Registry of entity types and the owned navigations connecting them."""

    def __init__(self) -> None:
        self._entity_types: dict[str, EntityType] = {}

    def __iter__(self) -> Iterator[EntityType]:
        return iter(self._entity_types.values())

    def __contains__(self, name: object) -> bool:
        return name in self._entity_types

    def add_entity_type(
        self,
        name: str,
        *,
        properties: Iterable[Property] = (),
        collection_name: str | None = None,
    ) -> EntityType:
        entity_type = EntityType(
            name=name, properties=list(properties), collection_name=collection_name
        )
        self._register(entity_type)
        return entity_type

    def add_owned(
        self,
        owner: EntityType,
        navigation_name: str,
        name: str,
        *,
        properties: Iterable[Property] = (),
        collection: bool = False,
        element_name: str | None = None,
    ) -> EntityType:
        """Declare ``name`` as owned by ``owner`` through ``navigation_name``.

        Owned collections receive a shadow ordinal key when none is declared.
        """

        props = list(properties)
        if collection and not any(prop.is_ordinal_key for prop in props):
            props.append(
                Property(
                    ORDINAL_PROPERTY_NAME,
                    python_type=int,
                    is_key=True,
                    is_ordinal_key=True,
                    is_shadow=True,
                    value_generated=True,
                )
            )
        target = EntityType(
            name=name,
            properties=props,
            owner=owner,
            containing_element_name=element_name,
        )
        self._register(target)
        owner.navigations.append(Navigation(navigation_name, target, is_collection=collection))
        return target

    def find_entity_type(self, name: str) -> EntityType | None:
        return self._entity_types.get(name)

    def get_entity_type(self, name: str) -> EntityType:
        entity_type = self.find_entity_type(name)
        if entity_type is None:
            raise KeyError(f"Unknown entity type '{name}'")
        return entity_type

    def validate(self) -> None:
        """Raise ``ModelValidationError`` for configurations the write pipeline cannot handle."""

        for entity_type in self._entity_types.values():
            entity_type.document_root_type()
            _validate_row_version(entity_type)
            for navigation in entity_type.navigations:
                if navigation.target.owner is not entity_type:
                    raise ModelValidationError(
                        f"Navigation '{entity_type.name}.{navigation.name}' targets "
                        f"'{navigation.target.name}' which is not owned by '{entity_type.name}'"
                    )
                if navigation.is_collection and navigation.target.ordinal_key is None:
                    raise ModelValidationError(
                        f"Owned collection '{entity_type.name}.{navigation.name}' requires "
                        "an ordinal key"
                    )

    def _register(self, entity_type: EntityType) -> None:
        if entity_type.name in self._entity_types:
            raise ModelValidationError(f"Entity type '{entity_type.name}' is already registered")
        self._entity_types[entity_type.name] = entity_type


def _validate_row_version(entity_type: EntityType) -> None:
    row_versions = [prop for prop in entity_type.properties if prop.is_row_version]
    if not row_versions:
        return
    if len(row_versions) > 1:
        raise ModelValidationError(
            f"Entity type '{entity_type.name}' has more than one row version"
        )
    if not entity_type.is_document_root:
        raise ModelValidationError(
            f"Row version '{row_versions[0].name}' must be declared on a document root, "
            f"not on owned type '{entity_type.name}'"
        )
    python_type = row_versions[0].python_type
    if python_type is not None and not issubclass(python_type, ROW_VERSION_TYPES):
        raise ModelValidationError(
            f"Row version '{entity_type.name}.{row_versions[0].name}' must be an integer"
        )
