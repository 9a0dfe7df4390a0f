"""Port for converting typed property values to storage-native values."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from docwriter.domain.model import Property


@runtime_checkable
class ValueSerializer(Protocol):
    def to_storage(self, prop: Property, value: Any) -> Any: ...

    def from_storage(self, prop: Property, value: Any) -> Any: ...
