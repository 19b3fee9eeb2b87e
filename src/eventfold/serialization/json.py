"""
JSON serialization utilities for eventfold types.

Event payloads and metadata are stored as JSON text by the SQL event store.
Payloads produced by `DomainEvent.to_new_event()` are already JSON-ready,
but hand-built `NewEvent` data may still carry UUIDs, datetimes or decimals.

Example:
    >>> from eventfold.serialization import json_dumps, json_loads
    >>> from uuid import uuid4
    >>>
    >>> data = {"id": uuid4()}
    >>> json_str = json_dumps(data)
    >>> parsed = json_loads(json_str)
"""

import json
from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID


class EventFoldJSONEncoder(json.JSONEncoder):
    """
    JSON encoder that handles UUID, date/datetime and Decimal objects.

    - UUID objects: converted to their string representation
    - date and datetime objects: converted to ISO 8601 strings
    - Decimal objects: converted to strings to keep their precision
    """

    def default(self, obj: Any) -> Any:
        if isinstance(obj, UUID):
            return str(obj)
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        if isinstance(obj, Decimal):
            return str(obj)
        return super().default(obj)


def json_dumps(obj: Any) -> str:
    """
    Serialize object to a JSON string using EventFoldJSONEncoder.

    Args:
        obj: Object to serialize

    Returns:
        JSON string representation
    """
    return json.dumps(obj, cls=EventFoldJSONEncoder, separators=(",", ":"))


def json_loads(s: str | None) -> Any:
    """
    Deserialize a JSON string.

    UUID and datetime strings are NOT converted back to their original
    types; typed payload classes do that during validation.

    Args:
        s: JSON string to deserialize (None is treated as an empty object)

    Returns:
        Python object representation
    """
    if s is None:
        return {}
    return json.loads(s)


__all__ = [
    "EventFoldJSONEncoder",
    "json_dumps",
    "json_loads",
]
