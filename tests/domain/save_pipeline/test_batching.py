from __future__ import annotations

from docwriter.domain.model import Operation, OperationKind
from docwriter.domain.save_pipeline import create_batches


def _insert(collection_name: str, document_id: int) -> Operation:
    return Operation(OperationKind.INSERT, collection_name, document={"_id": document_id})


def test_adjacent_operations_share_a_batch() -> None:
    operations = [_insert("a", 1), _insert("a", 2), _insert("b", 3), _insert("a", 4)]

    batches = list(create_batches(operations))

    assert [batch.collection_name for batch in batches] == ["a", "b", "a"]
    assert [len(batch.operations) for batch in batches] == [2, 1, 1]


def test_batches_partition_operations_in_order() -> None:
    operations = [_insert(name, index) for index, name in enumerate("aabbbca")]

    batches = list(create_batches(operations))

    flattened = [operation for batch in batches for operation in batch.operations]
    assert flattened == operations
    assert all(
        operation.collection_name == batch.collection_name
        for batch in batches
        for operation in batch.operations
    )


def test_no_operations_yield_no_batches() -> None:
    assert list(create_batches([])) == []


def test_batches_are_produced_lazily() -> None:
    consumed: list[int] = []

    def operations():  # noqa: ANN202
        for index, name in enumerate("ab"):
            consumed.append(index)
            yield _insert(name, index)

    batches = create_batches(operations())
    first = next(batches)

    assert first.collection_name == "a"
    assert consumed == [0, 1]
