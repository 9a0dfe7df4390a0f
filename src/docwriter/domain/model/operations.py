"""Storage operations, batches and bulk-write outcomes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from docwriter.domain.model.enums import OperationKind

if TYPE_CHECKING:
    from docwriter.domain.model.entries import ChangeEntry


@dataclass(frozen=True, slots=True)
class Operation:
    """One write against a single document.

    For updates ``document`` holds the ``$set`` body; ``filter`` selects the target
    document for updates and deletes. ``entries`` lists the root entry first, followed
    by every owned entry serialized into the document.
    """

    kind: OperationKind
    collection_name: str
    document: dict[str, Any] | None = None
    filter: dict[str, Any] | None = None
    entries: tuple[ChangeEntry, ...] = ()

    @property
    def entry(self) -> ChangeEntry | None:
        return self.entries[0] if self.entries else None

    @property
    def update_document(self) -> dict[str, Any]:
        return {"$set": self.document or {}}


@dataclass(slots=True)
class Batch:
    """A maximal run of consecutive operations against the same collection."""

    collection_name: str
    operations: list[Operation] = field(default_factory=list[Operation])

    def _count(self, kind: OperationKind) -> int:
        return sum(1 for operation in self.operations if operation.kind is kind)

    @property
    def inserts(self) -> int:
        return self._count(OperationKind.INSERT)

    @property
    def updates(self) -> int:
        return self._count(OperationKind.UPDATE)

    @property
    def deletes(self) -> int:
        return self._count(OperationKind.DELETE)


@dataclass(frozen=True, slots=True)
class BulkWriteResult:
    inserted_count: int = 0
    matched_count: int = 0
    modified_count: int = 0
    deleted_count: int = 0

    @property
    def affected_count(self) -> int:
        # matched rather than modified: a no-op update still succeeded
        return self.inserted_count + self.matched_count + self.deleted_count


@dataclass(frozen=True, slots=True)
class RowVersion:
    """Filter/written pair for an auto-incrementing row version (0 counts as 1)."""

    current: int
    next: int

    @classmethod
    def for_value(cls, value: int | None) -> RowVersion:
        current = value or 1
        return cls(current=current, next=current + 1)
