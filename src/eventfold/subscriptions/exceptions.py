"""
Subscription-specific exceptions.

All exceptions inherit from SubscriptionError for easy catching.
This module follows the same patterns as eventfold.exceptions.
"""

from eventfold.exceptions import EventFoldError


class SubscriptionError(EventFoldError):
    """Base exception for subscription-related errors."""

    pass


class SubscriptionConfigError(SubscriptionError, ValueError):
    """Raised when subscription configuration is invalid."""

    pass


class SubscriptionStateError(SubscriptionError):
    """Raised when an operation is invalid for the current state."""

    pass


class SubscriptionAlreadyExistsError(SubscriptionError):
    """Raised when trying to register a duplicate subscription."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Subscription '{name}' already exists")


class SubscriptionNotFoundError(SubscriptionError, KeyError):
    """Raised when a subscription name is not registered with a manager."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Subscription '{name}' is not registered")


__all__ = [
    "SubscriptionError",
    "SubscriptionConfigError",
    "SubscriptionStateError",
    "SubscriptionAlreadyExistsError",
    "SubscriptionNotFoundError",
]
