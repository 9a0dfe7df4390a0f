"""Optimistic concurrency verification of bulk-write outcomes."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from docwriter.domain.errors import ConcurrencyConflictError
from docwriter.domain.model import OperationKind

if TYPE_CHECKING:
    from docwriter.domain.model import Batch, BulkWriteResult

log = getLogger(__name__)


def assert_writes_applied(batch: Batch, result: BulkWriteResult) -> int:
    """Compare expected and reported counts for ``batch`` and return the affected count.

    When a count falls short, either the document was deleted or a concurrency token
    changed so the filter no longer matched. Updates are checked against the matched
    count, not the modified count, because an update that changes nothing still matched.
    """

    variances = {
        OperationKind.UPDATE: batch.updates - result.matched_count,
        OperationKind.INSERT: batch.inserts - result.inserted_count,
        OperationKind.DELETE: batch.deletes - result.deleted_count,
    }
    if any(variances.values()):
        conflicting = [
            operation for operation in batch.operations if variances[operation.kind] != 0
        ]
        log.warning(
            "Concurrency conflict in '%s': %d update, %d insert, %d delete variance",
            batch.collection_name,
            variances[OperationKind.UPDATE],
            variances[OperationKind.INSERT],
            variances[OperationKind.DELETE],
        )
        raise ConcurrencyConflictError(
            batch.collection_name,
            operations=conflicting,
            updated_variance=variances[OperationKind.UPDATE],
            inserted_variance=variances[OperationKind.INSERT],
            deleted_variance=variances[OperationKind.DELETE],
        )

    return result.affected_count
