"""
Checkpointed subscriptions to the global log.

Example:
    >>> from eventfold.subscriptions import SubscriptionRunner, SubscriptionConfig
    >>>
    >>> runner = SubscriptionRunner(
    ...     "cart-details",
    ...     event_store,
    ...     sink,
    ...     [project_cart_details],
    ...     config=SubscriptionConfig(stop_when_caught_up=True),
    ... )
    >>> await runner.run()
"""

from eventfold.subscriptions.config import SubscriptionConfig, create_rebuild_config
from eventfold.subscriptions.exceptions import (
    SubscriptionAlreadyExistsError,
    SubscriptionConfigError,
    SubscriptionError,
    SubscriptionNotFoundError,
    SubscriptionStateError,
)
from eventfold.subscriptions.manager import SubscriptionManager
from eventfold.subscriptions.runner import SubscriptionRunner
from eventfold.subscriptions.subscription import (
    VALID_TRANSITIONS,
    ProjectionHandler,
    Subscription,
    SubscriptionState,
    SubscriptionStatus,
    is_valid_transition,
)

__all__ = [
    # Configuration
    "SubscriptionConfig",
    "create_rebuild_config",
    # State
    "Subscription",
    "SubscriptionState",
    "SubscriptionStatus",
    "ProjectionHandler",
    "VALID_TRANSITIONS",
    "is_valid_transition",
    # Running
    "SubscriptionRunner",
    "SubscriptionManager",
    # Exceptions
    "SubscriptionError",
    "SubscriptionConfigError",
    "SubscriptionStateError",
    "SubscriptionAlreadyExistsError",
    "SubscriptionNotFoundError",
]
