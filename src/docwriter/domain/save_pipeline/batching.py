"""Group ordered operations into per-collection bulk-write batches."""

from __future__ import annotations

from typing import TYPE_CHECKING

from docwriter.domain.model import Batch

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from docwriter.domain.model import Operation


def create_batches(operations: Iterable[Operation]) -> Iterator[Batch]:
    """Yield batches of adjacent operations sharing a collection.

    Operations are never reordered: ``[A, A, B, A]`` yields three batches.
    """

    batch: Batch | None = None
    for operation in operations:
        if batch is not None and batch.collection_name == operation.collection_name:
            batch.operations.append(operation)
            continue
        if batch is not None:
            yield batch
        batch = Batch(operation.collection_name, [operation])

    if batch is not None:
        yield batch
