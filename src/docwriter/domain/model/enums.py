"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class EntityState(StrEnum):
    """Tracking state of an entity instance within one unit of work."""

    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"
    UNCHANGED = "unchanged"
    DETACHED = "detached"


class OperationKind(StrEnum):
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


class AutoTransactionBehavior(StrEnum):
    """Policy deciding whether ``save_changes`` wraps its writes in a transaction."""

    ALWAYS = "always"
    NEVER = "never"
    WHEN_NEEDED = "when_needed"


class TransactionState(StrEnum):
    ACTIVE = "active"
    COMMITTING = "committing"
    COMMITTED = "committed"
    ROLLING_BACK = "rolling_back"
    ROLLED_BACK = "rolled_back"
    FAILED = "failed"
    DISPOSED = "disposed"


CHANGED_STATES = frozenset({EntityState.ADDED, EntityState.MODIFIED, EntityState.DELETED})
