"""SQLAlchemy document-store adapter for docwriter."""

from __future__ import annotations

from .async_client import (
    AsyncSqlAlchemySession,
    AsyncSqlAlchemyStorageClient,
    create_storage_engine,
)
from .client import (
    SqlAlchemySession,
    SqlAlchemyStorageClient,
    StartupError,
    configured_engine,
    is_started,
    shutdown,
    startup,
)
from .documents import apply_operations, apply_set, document_key, find_documents, find_one, matches
from .mappings import create_all_tables, create_all_tables_async, documents_table, metadata

__all__ = [
    "AsyncSqlAlchemySession",
    "AsyncSqlAlchemyStorageClient",
    "SqlAlchemySession",
    "SqlAlchemyStorageClient",
    "StartupError",
    "apply_operations",
    "apply_set",
    "configured_engine",
    "create_all_tables",
    "create_all_tables_async",
    "create_storage_engine",
    "document_key",
    "documents_table",
    "find_documents",
    "find_one",
    "is_started",
    "matches",
    "metadata",
    "shutdown",
    "startup",
]
