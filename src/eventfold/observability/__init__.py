"""
Observability utilities for eventfold.

Tracing is composition based: components accept a `Tracer` and fall back to
`create_tracer(__name__, enable_tracing)`.

Example:
    >>> from eventfold.observability import create_tracer
    >>>
    >>> class MyStore:
    ...     def __init__(self, enable_tracing: bool = True):
    ...         self._tracer = create_tracer(__name__, enable_tracing)
"""

from eventfold.observability.attributes import (
    ATTR_COMMAND_TYPE,
    ATTR_DB_OPERATION,
    ATTR_DB_SYSTEM,
    ATTR_EVENT_COUNT,
    ATTR_EVENT_ID,
    ATTR_EVENT_TYPE,
    ATTR_EXPECTED_REVISION,
    ATTR_FROM_POSITION,
    ATTR_FROM_REVISION,
    ATTR_HANDLER_COUNT,
    ATTR_POSITION,
    ATTR_REVISION,
    ATTR_STREAM_ID,
    ATTR_SUBSCRIPTION_NAME,
)
from eventfold.observability.tracer import (
    MockTracer,
    NullTracer,
    OpenTelemetryTracer,
    Tracer,
    create_tracer,
)

__all__ = [
    # Tracers
    "Tracer",
    "NullTracer",
    "OpenTelemetryTracer",
    "MockTracer",
    "create_tracer",
    # Attributes
    "ATTR_COMMAND_TYPE",
    "ATTR_DB_OPERATION",
    "ATTR_DB_SYSTEM",
    "ATTR_EVENT_COUNT",
    "ATTR_EVENT_ID",
    "ATTR_EVENT_TYPE",
    "ATTR_EXPECTED_REVISION",
    "ATTR_FROM_POSITION",
    "ATTR_FROM_REVISION",
    "ATTR_HANDLER_COUNT",
    "ATTR_POSITION",
    "ATTR_REVISION",
    "ATTR_STREAM_ID",
    "ATTR_SUBSCRIPTION_NAME",
]
