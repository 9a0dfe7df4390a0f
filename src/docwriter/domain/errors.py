"""Error taxonomy for the document write pipeline."""

from __future__ import annotations

from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from collections.abc import Sequence

    from docwriter.domain.model import Operation

TRANSACTION_BY_DEFAULT: Final[str] = (
    "docwriter uses transactions to ensure all updates in a save_changes call are applied "
    "together or not at all."
)
DISABLE_TRANSACTIONS: Final[str] = (
    "If you are sure you do not need save consistency or optimistic concurrency you can "
    "disable transactions by setting auto_transaction to AutoTransactionBehavior.NEVER "
    "(DOCWRITER_AUTO_TRANSACTION=never)."
)


class DocWriterError(Exception):
    """Base class for all errors raised by docwriter."""


class ModelValidationError(DocWriterError):
    """Raised when the entity model is inconsistent (ownership cycles, bad tokens, ...)."""


class MissingPrimaryKeyError(DocWriterError):
    """Raised before any serialization when a document root has no primary key."""

    def __init__(self, entity_type_name: str) -> None:
        super().__init__(f"Cannot find the primary key for the entity type '{entity_type_name}'.")
        self.entity_type_name = entity_type_name


class MissingRootEntryError(DocWriterError):
    """Raised when an owned entry's document root is not tracked in the unit of work."""

    def __init__(self, entity_type_name: str, root_type_name: str) -> None:
        super().__init__(
            f"The entity of type '{entity_type_name}' is mapped as a part of the document "
            f"mapped to '{root_type_name}', but there is no tracked entity of this type with "
            "the corresponding key value."
        )
        self.entity_type_name = entity_type_name
        self.root_type_name = root_type_name


class TransactionUnsupportedError(DocWriterError):
    """Raised when the storage topology cannot run transactions."""

    def __init__(self, reason: str) -> None:
        super().__init__(" ".join((TRANSACTION_BY_DEFAULT, reason, DISABLE_TRANSACTIONS)))
        self.reason = reason

    @classmethod
    def standalone_server(cls) -> TransactionUnsupportedError:
        return cls(
            "Your current server configuration does not support transactions and you should "
            "consider switching to a replica set or load balanced configuration."
        )

    @classmethod
    def server_version(cls) -> TransactionUnsupportedError:
        return cls(
            "Your current server version does not support transactions and you should "
            "consider upgrading to a newer version."
        )


class InvalidTransactionStateError(DocWriterError):
    """Raised when a transaction action is attempted from the wrong state."""


class ConcurrencyConflictError(DocWriterError):
    """Raised when a verified bulk write affected fewer documents than expected.

    ``operations`` is a best-effort hint: a bulk write only reports aggregate counts
    per operation kind, so every operation of a kind with a non-zero variance is listed.
    """

    def __init__(
        self,
        collection_name: str,
        *,
        operations: Sequence[Operation],
        updated_variance: int,
        inserted_variance: int,
        deleted_variance: int,
    ) -> None:
        super().__init__(
            f"Conflicts were detected when performing updates to '{collection_name}'. "
            f"Did not perform {updated_variance} modifications, {inserted_variance} "
            f"insertions, and {deleted_variance} deletions."
        )
        self.collection_name = collection_name
        self.operations = tuple(operations)
        self.updated_variance = updated_variance
        self.inserted_variance = inserted_variance
        self.deleted_variance = deleted_variance


class StorageCommandError(DocWriterError):
    """Raised by bundled storage adapters when the engine rejects a command."""


class DuplicateKeyError(StorageCommandError):
    """Raised when an insert targets an ``_id`` that already exists."""

    def __init__(self, collection_name: str, document_id: object) -> None:
        super().__init__(
            f"Duplicate key error in collection '{collection_name}': _id {document_id!r}"
        )
        self.collection_name = collection_name
        self.document_id = document_id
