"""
Standard span attributes for eventfold.

Attribute constants shared by every traced component so spans can be
filtered consistently across the store, the command handler and the
subscription runner.
"""

# =============================================================================
# Stream Attributes
# =============================================================================

ATTR_STREAM_ID = "eventfold.stream.id"
"""Identifier of the event stream (string)."""

ATTR_REVISION = "eventfold.stream.revision"
"""Revision of a stream after an operation (integer)."""

ATTR_EXPECTED_REVISION = "eventfold.stream.expected_revision"
"""Expected revision supplied for optimistic concurrency (string)."""

ATTR_FROM_REVISION = "eventfold.stream.from_revision"
"""Starting revision for a stream read (integer)."""

# =============================================================================
# Event Attributes
# =============================================================================

ATTR_EVENT_ID = "eventfold.event.id"
"""Unique identifier for the event (UUID string)."""

ATTR_EVENT_TYPE = "eventfold.event.type"
"""Type name of the event (e.g., 'cart-opened')."""

ATTR_EVENT_COUNT = "eventfold.event.count"
"""Number of events in an operation (integer)."""

# =============================================================================
# Position Attributes
# =============================================================================

ATTR_POSITION = "eventfold.position"
"""Global position of an event (integer)."""

ATTR_FROM_POSITION = "eventfold.from_position"
"""Global position a read starts after (integer, -1 for the beginning)."""

# =============================================================================
# Command Attributes
# =============================================================================

ATTR_COMMAND_TYPE = "eventfold.command.type"
"""Class name of the command being handled."""

# =============================================================================
# Subscription Attributes
# =============================================================================

ATTR_SUBSCRIPTION_NAME = "eventfold.subscription.name"
"""Name of the subscription (string)."""

ATTR_HANDLER_COUNT = "eventfold.handler.count"
"""Number of projection handlers invoked for an event (integer)."""

# =============================================================================
# Database Attributes (OpenTelemetry semantic conventions)
# =============================================================================

ATTR_DB_SYSTEM = "db.system"
"""Database system identifier (e.g., 'postgresql', 'sqlite')."""

ATTR_DB_OPERATION = "db.operation"
"""Database operation name (e.g., 'INSERT', 'SELECT')."""

__all__ = [
    "ATTR_STREAM_ID",
    "ATTR_REVISION",
    "ATTR_EXPECTED_REVISION",
    "ATTR_FROM_REVISION",
    "ATTR_EVENT_ID",
    "ATTR_EVENT_TYPE",
    "ATTR_EVENT_COUNT",
    "ATTR_POSITION",
    "ATTR_FROM_POSITION",
    "ATTR_COMMAND_TYPE",
    "ATTR_SUBSCRIPTION_NAME",
    "ATTR_HANDLER_COUNT",
    "ATTR_DB_SYSTEM",
    "ATTR_DB_OPERATION",
]
