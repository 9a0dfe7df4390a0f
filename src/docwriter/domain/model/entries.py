"""Change entries and the change-set arena that owns them.

Owned entries never point at their owner. Each entry records the id of its document
root, and owners reference their dependents by entry id through navigation values,
so the ownership tree is walked top-down from the root.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from docwriter.domain.model.enums import EntityState

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping

    from docwriter.domain.model.metadata import EntityType, Navigation, Property

type NavigationValue = int | list[int] | None


def _property_name(prop: Property | str) -> str:
    return prop if isinstance(prop, str) else prop.name


@dataclass(eq=False, slots=True)
class ChangeEntry:
    """Snapshot of one tracked entity instance.

    Store-generated values assigned while saving are kept pending in
    ``store_generated_values`` and only become current values once the save succeeds.
    """

    entry_id: int
    entity_type: EntityType
    state: EntityState
    current_values: dict[str, Any] = field(default_factory=dict[str, Any])
    original_values: dict[str, Any] = field(default_factory=dict[str, Any])
    modified_properties: set[str] = field(default_factory=set[str])
    temporary_properties: set[str] = field(default_factory=set[str])
    navigations: dict[str, NavigationValue] = field(default_factory=dict[str, NavigationValue])
    root_id: int | None = None
    store_generated_values: dict[str, Any] = field(default_factory=dict[str, Any])

    def __repr__(self) -> str:
        return f"ChangeEntry({self.entry_id}, {self.entity_type.name}, {self.state})"

    def current_value(self, prop: Property | str) -> Any:
        name = _property_name(prop)
        if name in self.store_generated_values:
            return self.store_generated_values[name]
        return self.current_values.get(name)

    def original_value(self, prop: Property | str) -> Any:
        name = _property_name(prop)
        if name in self.original_values:
            return self.original_values[name]
        return self.current_values.get(name)

    def is_modified(self, prop: Property | str) -> bool:
        return _property_name(prop) in self.modified_properties

    def has_temporary_value(self, prop: Property | str) -> bool:
        name = _property_name(prop)
        return name in self.temporary_properties and name not in self.store_generated_values

    def set_store_generated_value(self, prop: Property | str, value: Any) -> None:
        self.store_generated_values[_property_name(prop)] = value

    def accept_store_generated_values(self) -> None:
        """Make pending generated values current (called after a successful save)."""

        self.current_values.update(self.store_generated_values)
        self.temporary_properties.difference_update(self.store_generated_values)
        self.store_generated_values.clear()

    def discard_store_generated_values(self) -> None:
        self.store_generated_values.clear()


class ChangeSet:
    """Ordered arena of change entries forming one unit of work."""

    def __init__(self) -> None:
        self._entries: dict[int, ChangeEntry] = {}
        self._next_id = 1

    def __iter__(self) -> Iterator[ChangeEntry]:
        return iter(list(self._entries.values()))

    def __len__(self) -> int:
        return len(self._entries)

    def find(self, entry_id: int) -> ChangeEntry | None:
        return self._entries.get(entry_id)

    def get(self, entry_id: int) -> ChangeEntry:
        entry = self._entries.get(entry_id)
        if entry is None:
            raise KeyError(f"No tracked entry with id {entry_id}")
        return entry

    def track(
        self,
        entity_type: EntityType,
        state: EntityState,
        values: Mapping[str, Any] | None = None,
        *,
        original_values: Mapping[str, Any] | None = None,
        modified: Iterable[str] = (),
        temporary: Iterable[str] = (),
    ) -> ChangeEntry:
        """Track a document root entity."""

        return self._add(
            entity_type,
            state,
            values,
            original_values=original_values,
            modified=modified,
            temporary=temporary,
            root_id=None,
        )

    def track_owned(
        self,
        owner: ChangeEntry,
        navigation_name: str,
        state: EntityState,
        values: Mapping[str, Any] | None = None,
        *,
        original_values: Mapping[str, Any] | None = None,
        modified: Iterable[str] = (),
        temporary: Iterable[str] = (),
    ) -> ChangeEntry:
        """Track an entity owned by ``owner`` through ``navigation_name``.

        Deleted dependents are tracked but not attached to the owner's navigation.
        """

        navigation = _require_navigation(owner.entity_type, navigation_name)
        root_id = owner.entry_id if owner.root_id is None else owner.root_id
        entry = self._add(
            navigation.target,
            state,
            values,
            original_values=original_values,
            modified=modified,
            temporary=temporary,
            root_id=root_id,
        )
        if state is not EntityState.DELETED:
            self.attach(owner, navigation_name, entry)
        return entry

    def attach(self, owner: ChangeEntry, navigation_name: str, dependent: ChangeEntry) -> None:
        navigation = _require_navigation(owner.entity_type, navigation_name)
        if navigation.is_collection:
            current = owner.navigations.get(navigation.name)
            items = list(current) if isinstance(current, list) else []
            items.append(dependent.entry_id)
            owner.navigations[navigation.name] = items
        else:
            owner.navigations[navigation.name] = dependent.entry_id

    def remove_owned(
        self, owner: ChangeEntry, navigation_name: str, dependent: ChangeEntry
    ) -> None:
        """Detach ``dependent`` from ``owner`` and mark it deleted."""

        navigation = _require_navigation(owner.entity_type, navigation_name)
        current = owner.navigations.get(navigation.name)
        if isinstance(current, list):
            owner.navigations[navigation.name] = [
                entry_id for entry_id in current if entry_id != dependent.entry_id
            ]
        elif current == dependent.entry_id:
            owner.navigations[navigation.name] = None
        dependent.state = EntityState.DELETED

    def dependents(self, owner: ChangeEntry, navigation: Navigation) -> list[ChangeEntry] | None:
        value = owner.navigations.get(navigation.name)
        if value is None:
            return None
        if isinstance(value, list):
            return [self.get(entry_id) for entry_id in value]
        return [self.get(value)]

    def _add(
        self,
        entity_type: EntityType,
        state: EntityState,
        values: Mapping[str, Any] | None,
        *,
        original_values: Mapping[str, Any] | None,
        modified: Iterable[str],
        temporary: Iterable[str],
        root_id: int | None,
    ) -> ChangeEntry:
        entry = ChangeEntry(
            entry_id=self._next_id,
            entity_type=entity_type,
            state=state,
            current_values=dict(values or {}),
            original_values=dict(original_values or {}),
            modified_properties=set(modified),
            temporary_properties=set(temporary),
            root_id=root_id,
        )
        self._next_id += 1
        self._entries[entry.entry_id] = entry
        return entry


def _require_navigation(entity_type: EntityType, navigation_name: str) -> Navigation:
    navigation = entity_type.find_navigation(navigation_name)
    if navigation is None:
        raise KeyError(
            f"Entity type '{entity_type.name}' has no owned navigation '{navigation_name}'"
        )
    return navigation
