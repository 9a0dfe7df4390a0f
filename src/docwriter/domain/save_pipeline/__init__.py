"""Write pipeline persisting change sets to a document store.

Changed entries are folded into their document roots, each root becomes one
insert, update or delete, adjacent operations on the same collection are grouped
into bulk writes, and every bulk write is checked for concurrency conflicts. The
phases are plain functions so they can be exercised without a storage engine;
``DocumentSaver`` and ``AsyncDocumentSaver`` tie them to a storage client.
"""

from __future__ import annotations

from .batching import create_batches
from .executor import AsyncDocumentSaver, DocumentSaver, plan_operations, should_start_transaction
from .roots import find_root_entry, resolve_changed_roots
from .synthesis import DocumentWriter, create_operation, create_operations, read_entity
from .transaction import AsyncTransaction, Transaction
from .value_generation import (
    ObjectIdValueGenerator,
    UuidValueGenerator,
    ValueGenerator,
    accept_temporary_values,
    assign_ordinals,
    select_generator,
)
from .verification import assert_writes_applied

__all__ = [
    "AsyncDocumentSaver",
    "AsyncTransaction",
    "DocumentSaver",
    "DocumentWriter",
    "ObjectIdValueGenerator",
    "Transaction",
    "UuidValueGenerator",
    "ValueGenerator",
    "accept_temporary_values",
    "assert_writes_applied",
    "assign_ordinals",
    "create_batches",
    "create_operation",
    "create_operations",
    "find_root_entry",
    "plan_operations",
    "read_entity",
    "resolve_changed_roots",
    "select_generator",
    "should_start_transaction",
]
