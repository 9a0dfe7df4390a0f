"""Fold owned entries into the document roots that must be rewritten."""

from __future__ import annotations

from typing import TYPE_CHECKING

from docwriter.domain.errors import MissingRootEntryError
from docwriter.domain.model import CHANGED_STATES, EntityState

if TYPE_CHECKING:
    from docwriter.domain.model import ChangeEntry, ChangeSet


def resolve_changed_roots(change_set: ChangeSet) -> list[ChangeEntry]:
    """Return the distinct document roots touched by ``change_set``.

    Only roots can be written, since owned entities live inside a root's document.
    A changed owned entry removes itself from the result and forces its root to be
    rewritten, escalating it from ``UNCHANGED`` to ``MODIFIED``. Roots keep the
    position at which they (or one of their owned entries) are first encountered.
    """

    roots: dict[int, ChangeEntry] = {}
    for entry in change_set:
        if entry.state not in CHANGED_STATES:
            continue
        if entry.entity_type.is_document_root:
            roots.setdefault(entry.entry_id, entry)
            continue

        root = find_root_entry(entry, change_set)
        if root.state is EntityState.UNCHANGED:
            root.state = EntityState.MODIFIED
        roots.setdefault(root.entry_id, root)
    return list(roots.values())


def find_root_entry(entry: ChangeEntry, change_set: ChangeSet) -> ChangeEntry:
    root_type = entry.entity_type.document_root_type()
    current = entry
    visited: set[int] = set()
    while not current.entity_type.is_document_root:
        visited.add(current.entry_id)
        root = change_set.find(current.root_id) if current.root_id is not None else None
        if root is None or root.entry_id in visited:
            raise MissingRootEntryError(entry.entity_type.name, root_type.name)
        current = root
    if current.entity_type is not root_type:
        raise MissingRootEntryError(entry.entity_type.name, root_type.name)
    return current
