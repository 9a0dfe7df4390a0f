"""Value serializers converting typed property values to storage-native values."""

from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Any
from uuid import UUID

from bson import Binary, Decimal128, ObjectId
from bson.binary import UuidRepresentation

if TYPE_CHECKING:
    from docwriter.domain.model import Property


class JsonValueSerializer:
    """Encode values as JSON-safe scalars; decoding is driven by ``Property.python_type``."""

    def to_storage(self, prop: Property, value: Any) -> Any:
        _ = prop
        return _to_json(value)

    def from_storage(self, prop: Property, value: Any) -> Any:
        python_type = prop.python_type
        if value is None or python_type is None or isinstance(value, python_type):
            return value
        if issubclass(python_type, datetime):
            return datetime.fromisoformat(value)
        if issubclass(python_type, date):
            return date.fromisoformat(value)
        if issubclass(python_type, (UUID, Decimal, ObjectId, Enum)):
            return python_type(value)
        return value


def _to_json(value: Any) -> Any:
    match value:
        case Enum():
            return _to_json(value.value)
        case None | bool() | int() | float() | str():
            return value
        case datetime() | date():
            return value.isoformat()
        case UUID() | Decimal() | ObjectId():
            return str(value)
        case dict():
            return {str(key): _to_json(item) for key, item in value.items()}
        case list() | tuple():
            return [_to_json(item) for item in value]
        case _:
            raise TypeError(f"Cannot store value of type {type(value).__name__} as JSON")


class BsonValueSerializer:
    """Keep BSON-native values as they are and convert the rest for PyMongo."""

    def to_storage(self, prop: Property, value: Any) -> Any:
        _ = prop
        return _to_bson(value)

    def from_storage(self, prop: Property, value: Any) -> Any:
        python_type = prop.python_type
        if value is None or python_type is None:
            return value
        if isinstance(value, Decimal128):
            value = value.to_decimal()
        if isinstance(value, Binary) and issubclass(python_type, UUID):
            return value.as_uuid(UuidRepresentation.STANDARD)
        if (
            isinstance(value, datetime)
            and issubclass(python_type, date)
            and not issubclass(python_type, datetime)
        ):
            return value.date()
        if isinstance(value, python_type):
            return value
        if issubclass(python_type, Enum):
            return python_type(value)
        return value


def _to_bson(value: Any) -> Any:
    match value:
        case Enum():
            return _to_bson(value.value)
        case Decimal():
            return Decimal128(value)
        case UUID():
            return Binary.from_uuid(value, UuidRepresentation.STANDARD)
        case datetime():
            return value
        case date():
            return datetime.combine(value, time())
        case dict():
            return {str(key): _to_bson(item) for key, item in value.items()}
        case list() | tuple():
            return [_to_bson(item) for item in value]
        case _:
            return value
