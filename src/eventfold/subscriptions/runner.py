"""
Subscription runner: checkpointed projection of the global log.

The runner loads the subscription's checkpoint, subscribes to the global log
strictly after it and applies every event in its own relational
transaction:

    async with sink.begin() as scope:
        for handler in handlers:
            await handler(scope, event)
        await checkpoint_store.save(scope, name, event.global_position)

The handlers' writes and the checkpoint commit or roll back together, so a
crash between events never loses or double-applies a committed event.
Redelivered events are absorbed by handlers written with the revision fence
(see eventfold.projections).

A handler failure rolls the transaction back, faults the subscription and
raises ProjectionError. There is no automatic restart: the operator fixes
the handler, or skips the poison event with skip_event(), and runs again.
"""

import asyncio
import logging
from collections.abc import Sequence
from contextlib import aclosing

from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncEngine

from eventfold.events.base import RecordedEvent
from eventfold.exceptions import ProjectionError
from eventfold.observability import (
    ATTR_EVENT_ID,
    ATTR_EVENT_TYPE,
    ATTR_HANDLER_COUNT,
    ATTR_POSITION,
    ATTR_SUBSCRIPTION_NAME,
    Tracer,
    create_tracer,
)
from eventfold.repositories._connection import translate_db_errors
from eventfold.repositories.checkpoint import CheckpointStore, SQLAlchemyCheckpointStore
from eventfold.stores.interface import CaughtUp, EventStore
from eventfold.subscriptions.config import SubscriptionConfig
from eventfold.subscriptions.exceptions import SubscriptionStateError
from eventfold.subscriptions.subscription import (
    ProjectionHandler,
    Subscription,
    SubscriptionState,
    SubscriptionStatus,
)

logger = logging.getLogger(__name__)


class SubscriptionRunner:
    """
    Applies the global log to projection handlers, one event per transaction.

    Args:
        name: Unique subscription name; keys the checkpoint
        event_store: Store whose global log is projected
        sink: Engine of the relational database holding the projections
            and the checkpoint table
        handlers: Projection handlers, called in order for every event
        checkpoint_store: Defaults to SQLAlchemyCheckpointStore on the sink
        config: Runner configuration
        tracer: Optional custom Tracer instance
        enable_tracing: Emit OpenTelemetry spans (default: True)

    Example:
        >>> runner = SubscriptionRunner(
        ...     "cart-details", store, sink, [project_cart_details]
        ... )
        >>> runner.start()
        >>> ...
        >>> await runner.stop()
    """

    def __init__(
        self,
        name: str,
        event_store: EventStore,
        sink: AsyncEngine,
        handlers: Sequence[ProjectionHandler],
        *,
        checkpoint_store: CheckpointStore | None = None,
        config: SubscriptionConfig | None = None,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        if not name:
            raise ValueError("subscription name must not be empty")

        self._name = name
        self._event_store = event_store
        self._sink = sink
        self._handlers = list(handlers)
        self._config = config or SubscriptionConfig()
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._checkpoints = checkpoint_store or SQLAlchemyCheckpointStore(
            sink, tracer=self._tracer
        )

        self._subscription = Subscription(name=name)
        self._task: asyncio.Task[SubscriptionStatus] | None = None
        self._stop_requested = False
        self._applying = False

    @property
    def name(self) -> str:
        return self._name

    @property
    def state(self) -> SubscriptionState:
        return self._subscription.state

    @property
    def config(self) -> SubscriptionConfig:
        return self._config

    @property
    def is_running(self) -> bool:
        return self._subscription.is_running

    def status(self) -> SubscriptionStatus:
        """Point-in-time status snapshot."""
        return self._subscription.get_status()

    async def run(self) -> SubscriptionStatus:
        """
        Run the subscription until stopped, faulted or caught up.

        Returns:
            Final status snapshot (state STOPPED)

        Raises:
            ProjectionError: If a handler failed; the subscription is FAULTED
            TransportError: If the store or the sink became unreachable;
                the subscription is FAULTED
            SubscriptionStateError: If the subscription is already running
        """
        subscription = self._subscription
        if subscription.is_running:
            raise SubscriptionStateError(f"Subscription '{self._name}' is already running")
        if subscription.state in (SubscriptionState.FAULTED, SubscriptionState.STOPPED):
            await subscription.transition_to(SubscriptionState.IDLE)

        self._stop_requested = False
        self._task = asyncio.current_task()

        try:
            await self._consume()
        except asyncio.CancelledError:
            if subscription.state != SubscriptionState.STOPPED:
                await subscription.transition_to(SubscriptionState.STOPPED)
            if not self._stop_requested:
                raise
            task = asyncio.current_task()
            if task is not None:
                task.uncancel()
        except Exception as e:
            await subscription.set_error(e)
            raise
        else:
            await subscription.transition_to(SubscriptionState.STOPPED)

        logger.info(
            "Subscription %s stopped at position %s",
            self._name,
            subscription.position,
            extra={
                "subscription": self._name,
                "position": subscription.position,
                "events_processed": subscription.events_processed,
            },
        )
        return subscription.get_status()

    async def _consume(self) -> None:
        subscription = self._subscription

        with translate_db_errors(f"load checkpoint {self._name}"):
            position = await self._checkpoints.load(self._name)
        subscription.position = position
        await subscription.transition_to(SubscriptionState.CATCHING_UP)

        logger.info(
            "Subscription %s starting after position %s",
            self._name,
            position,
            extra={"subscription": self._name, "position": position},
        )

        applied = 0
        async with aclosing(self._event_store.subscribe_to_all(after_position=position)) as log:
            async for item in log:
                if isinstance(item, CaughtUp):
                    if self._config.stop_when_caught_up:
                        logger.info(
                            "Subscription %s caught up at position %s",
                            self._name,
                            item.position,
                            extra={"subscription": self._name, "position": item.position},
                        )
                        return
                    if subscription.state == SubscriptionState.CATCHING_UP:
                        await subscription.transition_to(SubscriptionState.LIVE)
                    continue

                self._applying = True
                try:
                    await self._apply(item)
                finally:
                    self._applying = False

                applied += 1
                interval = self._config.progress_log_interval
                if (
                    interval
                    and applied % interval == 0
                    and subscription.state == SubscriptionState.CATCHING_UP
                ):
                    logger.info(
                        "Subscription %s catching up: %d events applied, at position %d",
                        self._name,
                        applied,
                        item.global_position,
                        extra={
                            "subscription": self._name,
                            "events_applied": applied,
                            "position": item.global_position,
                        },
                    )

                if self._stop_requested:
                    return

    async def _apply(self, event: RecordedEvent) -> None:
        with self._tracer.span(
            "eventfold.subscription.apply",
            {
                ATTR_SUBSCRIPTION_NAME: self._name,
                ATTR_EVENT_ID: str(event.event_id),
                ATTR_EVENT_TYPE: event.type,
                ATTR_POSITION: event.global_position,
                ATTR_HANDLER_COUNT: len(self._handlers),
            },
        ):
            with translate_db_errors(f"apply event at position {event.global_position}"):
                async with self._sink.begin() as scope:
                    for handler in self._handlers:
                        try:
                            await handler(scope, event)
                        except (OperationalError, InterfaceError):
                            raise
                        except Exception as e:
                            raise ProjectionError(
                                self._name,
                                _handler_name(handler),
                                event.type,
                                event.global_position,
                                str(e),
                            ) from e
                    await self._checkpoints.save(scope, self._name, event.global_position)

        await self._subscription.record_event_processed(event.global_position, event.type)
        logger.debug(
            "Subscription %s applied %s at position %d",
            self._name,
            event.type,
            event.global_position,
            extra={
                "subscription": self._name,
                "event_type": event.type,
                "stream_id": event.stream_id,
                "position": event.global_position,
            },
        )

    def start(self) -> asyncio.Task[SubscriptionStatus]:
        """
        Run the subscription in a background task.

        Returns:
            The task running run(); awaiting it re-raises a fault

        Raises:
            SubscriptionStateError: If the subscription is already running
        """
        if self._task is not None and not self._task.done():
            raise SubscriptionStateError(f"Subscription '{self._name}' is already running")
        self._task = asyncio.create_task(self.run(), name=f"subscription:{self._name}")
        return self._task

    async def stop(self) -> None:
        """
        Request a clean stop and wait for it.

        A runner waiting for live events is cancelled at once. An event
        transaction in flight is allowed to finish; if it takes longer than
        config.shutdown_timeout the task is cancelled and the transaction
        rolls back.
        """
        task = self._task
        if task is None or task.done():
            return

        self._stop_requested = True
        if not self._applying:
            task.cancel()

        done, _ = await asyncio.wait({task}, timeout=self._config.shutdown_timeout)
        if not done:
            logger.warning(
                "Subscription %s did not stop within %.1fs, cancelling",
                self._name,
                self._config.shutdown_timeout,
                extra={
                    "subscription": self._name,
                    "shutdown_timeout": self._config.shutdown_timeout,
                },
            )
            task.cancel()
            await asyncio.wait({task})

        # Cancelled before run() got to execute
        if self._subscription.state == SubscriptionState.IDLE:
            await self._subscription.transition_to(SubscriptionState.STOPPED)

    async def skip_event(self, position: int) -> None:
        """
        Move the checkpoint past a poison event.

        The checkpoint is saved at `position` in its own transaction, so
        the next run starts strictly after it. Nothing is written to the
        projections.

        Raises:
            SubscriptionStateError: If the subscription is running
        """
        if self._subscription.is_running:
            raise SubscriptionStateError(
                f"Cannot skip events while subscription '{self._name}' is running"
            )

        with translate_db_errors(f"skip event at position {position}"):
            async with self._sink.begin() as scope:
                await self._checkpoints.save(scope, self._name, position)

        current = self._subscription.position
        if current is None or position > current:
            self._subscription.position = position

        logger.warning(
            "Subscription %s skipped event at position %d",
            self._name,
            position,
            extra={"subscription": self._name, "position": position},
        )


def _handler_name(handler: ProjectionHandler) -> str:
    return getattr(handler, "__qualname__", None) or type(handler).__name__


__all__ = ["SubscriptionRunner"]
