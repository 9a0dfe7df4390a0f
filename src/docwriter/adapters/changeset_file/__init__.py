"""JSON change-set file adapter."""

from __future__ import annotations

from .schema import ChangeSetDocument, EntryPayload, ModelPayload, OwnedEntryPayload
from .translator import (
    build_change_set,
    build_model,
    load_change_set,
    load_change_set_file,
    translate_property,
)

__all__ = [
    "ChangeSetDocument",
    "EntryPayload",
    "ModelPayload",
    "OwnedEntryPayload",
    "build_change_set",
    "build_model",
    "load_change_set",
    "load_change_set_file",
    "translate_property",
]
