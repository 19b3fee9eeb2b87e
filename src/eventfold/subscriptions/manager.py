"""
Subscription manager for running several named subscriptions.

Each registered SubscriptionRunner runs in its own task with its own
checkpoint. Runners never interact: a faulted runner does not stop the
others, and its error is kept for inspection.

Example:
    >>> manager = SubscriptionManager()
    >>> manager.register(SubscriptionRunner("cart-details", store, sink, [...]))
    >>> manager.register(SubscriptionRunner("cart-totals", store, sink, [...]))
    >>>
    >>> async with manager:
    ...     ...  # both subscriptions are live
"""

import asyncio
import logging
from typing import Any

from eventfold.observability import ATTR_SUBSCRIPTION_NAME, Tracer, create_tracer
from eventfold.subscriptions.exceptions import (
    SubscriptionAlreadyExistsError,
    SubscriptionNotFoundError,
)
from eventfold.subscriptions.runner import SubscriptionRunner
from eventfold.subscriptions.subscription import SubscriptionStatus

logger = logging.getLogger(__name__)


class SubscriptionManager:
    """
    Registers subscription runners by unique name and drives their lifecycle.

    Args:
        tracer: Optional custom Tracer instance
        enable_tracing: Emit OpenTelemetry spans (default: True)
    """

    def __init__(
        self,
        *,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._runners: dict[str, SubscriptionRunner] = {}
        self._tasks: dict[str, asyncio.Task[SubscriptionStatus]] = {}
        self._failures: dict[str, BaseException] = {}

    def register(self, runner: SubscriptionRunner) -> SubscriptionRunner:
        """
        Register a runner under its subscription name.

        Raises:
            SubscriptionAlreadyExistsError: If the name is already registered
        """
        if runner.name in self._runners:
            raise SubscriptionAlreadyExistsError(runner.name)
        self._runners[runner.name] = runner
        logger.debug(
            "Registered subscription %s",
            runner.name,
            extra={"subscription": runner.name},
        )
        return runner

    async def unregister(self, name: str) -> bool:
        """
        Stop (if running) and remove a subscription.

        Returns:
            True if the subscription was found and removed, False otherwise
        """
        runner = self._runners.pop(name, None)
        if runner is None:
            return False
        await runner.stop()
        self._tasks.pop(name, None)
        self._failures.pop(name, None)
        return True

    def get(self, name: str) -> SubscriptionRunner:
        """
        Get a registered runner by name.

        Raises:
            SubscriptionNotFoundError: If the name is not registered
        """
        try:
            return self._runners[name]
        except KeyError:
            raise SubscriptionNotFoundError(name) from None

    @property
    def subscription_names(self) -> list[str]:
        return list(self._runners)

    @property
    def failures(self) -> dict[str, BaseException]:
        """Errors of runners whose task ended with a fault, by name."""
        return dict(self._failures)

    def get_all_statuses(self) -> dict[str, SubscriptionStatus]:
        """Status snapshots of all subscriptions, by name."""
        return {name: runner.status() for name, runner in self._runners.items()}

    def start(self, subscription_names: list[str] | None = None) -> None:
        """
        Start registered subscriptions concurrently.

        Subscriptions that are already running are left alone.

        Args:
            subscription_names: Names to start; None starts all
        """
        names = subscription_names if subscription_names is not None else list(self._runners)
        logger.info(
            "Starting %d subscription(s)",
            len(names),
            extra={"subscriptions": names},
        )
        for name in names:
            runner = self.get(name)
            existing = self._tasks.get(name)
            if existing is not None and not existing.done():
                continue
            with self._tracer.span(
                "eventfold.subscription_manager.start",
                {ATTR_SUBSCRIPTION_NAME: name},
            ):
                self._failures.pop(name, None)
                task = runner.start()
                task.add_done_callback(self._on_task_done(name))
                self._tasks[name] = task

    async def stop(self, subscription_names: list[str] | None = None) -> None:
        """
        Stop subscriptions concurrently, each within its shutdown timeout.

        Args:
            subscription_names: Names to stop; None stops all
        """
        names = subscription_names if subscription_names is not None else list(self._runners)
        with self._tracer.span("eventfold.subscription_manager.stop"):
            await asyncio.gather(*(self.get(name).stop() for name in names))
        logger.info(
            "Stopped %d subscription(s)",
            len(names),
            extra={"subscriptions": names},
        )

    async def wait(self) -> dict[str, BaseException | None]:
        """
        Wait until every started subscription has ended.

        Returns:
            Mapping of subscription name to its fault, or None if it
            stopped cleanly
        """
        tasks = list(self._tasks.values())
        if tasks:
            await asyncio.wait(tasks)
        return {name: self._failures.get(name) for name in self._tasks}

    def _on_task_done(self, name: str) -> Any:
        def callback(task: asyncio.Task[SubscriptionStatus]) -> None:
            if task.cancelled():
                return
            error = task.exception()
            if error is not None:
                self._failures[name] = error

        return callback

    async def __aenter__(self) -> "SubscriptionManager":
        self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        await self.stop()


__all__ = ["SubscriptionManager"]
