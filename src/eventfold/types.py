"""Common type definitions for the eventfold library."""

from typing import TypeVar

# Type variable for aggregate state (any immutable value)
TState = TypeVar("TState")

# Type variable for commands handed to decision functions
TCommand = TypeVar("TCommand")

# Stream identifier (e.g. "cart-3f2a...")
StreamId = str

# Zero-based position of an event within its stream
Revision = int

# Zero-based position of an event in the store-wide log
GlobalPosition = int
