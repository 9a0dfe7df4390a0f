"""PyMongo adapter for docwriter."""

from __future__ import annotations

from .client import (
    AsyncPyMongoSession,
    AsyncPyMongoStorageClient,
    PyMongoSession,
    PyMongoStorageClient,
    check_transaction_support,
    to_write_model,
)

__all__ = [
    "AsyncPyMongoSession",
    "AsyncPyMongoStorageClient",
    "PyMongoSession",
    "PyMongoStorageClient",
    "check_transaction_support",
    "to_write_model",
]
