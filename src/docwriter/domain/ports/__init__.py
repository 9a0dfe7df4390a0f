"""Domain port definitions for adapters."""

from __future__ import annotations

from .serialization import ValueSerializer
from .storage import AsyncStorageClient, AsyncStorageSession, StorageClient, StorageSession

__all__ = [
    "AsyncStorageClient",
    "AsyncStorageSession",
    "StorageClient",
    "StorageSession",
    "ValueSerializer",
]
