"""
Configuration for subscription runners.

Checkpoints are always saved per event, in the same transaction as the
projection writes, so unlike batch-oriented subscription frameworks there is
no checkpoint strategy to choose.
"""

from __future__ import annotations

from dataclasses import dataclass

from eventfold.subscriptions.exceptions import SubscriptionConfigError


@dataclass(frozen=True)
class SubscriptionConfig:
    """
    Configuration for a subscription runner.

    Attributes:
        stop_when_caught_up: End run() once the backlog has been applied
            instead of waiting for live events (projection rebuilds, tests)
        shutdown_timeout: Max seconds stop() waits for an in-flight event
            transaction before cancelling it
        progress_log_interval: Log progress every N applied events while
            catching up (0 disables progress logging)

    Example:
        >>> config = SubscriptionConfig(stop_when_caught_up=True)
    """

    stop_when_caught_up: bool = False
    shutdown_timeout: float = 30.0
    progress_log_interval: int = 1000

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.shutdown_timeout <= 0:
            raise SubscriptionConfigError(
                f"shutdown_timeout must be positive, got {self.shutdown_timeout}. "
                "Use a value like 30.0 (default) seconds."
            )

        if self.progress_log_interval < 0:
            raise SubscriptionConfigError(
                f"progress_log_interval must be >= 0, got {self.progress_log_interval}."
            )


def create_rebuild_config() -> SubscriptionConfig:
    """
    Create a configuration for one-shot projection rebuilds.

    The runner applies the backlog and returns instead of going live.
    """
    return SubscriptionConfig(stop_when_caught_up=True)


__all__ = [
    "SubscriptionConfig",
    "create_rebuild_config",
]
