"""Public domain model surface."""

from __future__ import annotations

from docwriter.domain.model.entries import ChangeEntry, ChangeSet, NavigationValue
from docwriter.domain.model.enums import (
    CHANGED_STATES,
    AutoTransactionBehavior,
    EntityState,
    OperationKind,
    TransactionState,
)
from docwriter.domain.model.metadata import (
    ID_ELEMENT_NAME,
    ORDINAL_PROPERTY_NAME,
    ROW_VERSION_ELEMENT_NAME,
    EntityType,
    Model,
    Navigation,
    Property,
)
from docwriter.domain.model.operations import Batch, BulkWriteResult, Operation, RowVersion

__all__ = [  # noqa: RUF022
    # enums
    "CHANGED_STATES",
    "AutoTransactionBehavior",
    "EntityState",
    "OperationKind",
    "TransactionState",
    # metadata
    "ID_ELEMENT_NAME",
    "ORDINAL_PROPERTY_NAME",
    "ROW_VERSION_ELEMENT_NAME",
    "EntityType",
    "Model",
    "Navigation",
    "Property",
    # entries
    "ChangeEntry",
    "ChangeSet",
    "NavigationValue",
    # operations
    "Batch",
    "BulkWriteResult",
    "Operation",
    "RowVersion",
]
