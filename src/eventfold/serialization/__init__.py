"""
Serialization utilities for eventfold.

Example:
    >>> from eventfold.serialization import json_dumps
    >>> json_dumps({"quantity": 2})
    '{"quantity":2}'
"""

from eventfold.serialization.json import (
    EventFoldJSONEncoder,
    json_dumps,
    json_loads,
)

__all__ = [
    "EventFoldJSONEncoder",
    "json_dumps",
    "json_loads",
]
