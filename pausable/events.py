"""Per-instance event bus for interpreter lifecycle events.

Each interpreter instance owns one EventBus. Subscribers register an async
callback for one EventKind; publish() fans the event out to every callback
registered for its kind and waits for all of them to settle.

The bus is confined to the event loop that runs the instance (the Temporal
workflow loop, or the asyncio loop of the local host). subscribe() and
unsubscribe() have no await points, so they are atomic with respect to
publish() and to each other.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from itertools import count
from typing import Any, Awaitable, Callable, ClassVar, Dict, List, Optional, Union

_default_logger = logging.getLogger("pausable.events")


class EventKind(str, Enum):
    PAUSED = "paused"
    RESUMED = "resumed"


@dataclass(frozen=True)
class InterpreterEvent:
    """An event published during the lifecycle of an interpreter instance."""
    kind: ClassVar[EventKind]

    instance_id: str
    payload: Optional[Any] = None


@dataclass(frozen=True)
class PausedEvent(InterpreterEvent):
    kind: ClassVar[EventKind] = EventKind.PAUSED


@dataclass(frozen=True)
class ResumedEvent(InterpreterEvent):
    kind: ClassVar[EventKind] = EventKind.RESUMED


EventCallback = Callable[[InterpreterEvent], Awaitable[None]]

_subscription_ids = count(1)


class Subscription:
    """Handle binding one event kind to one callback.

    Owned by whoever called subscribe(); must be released with unsubscribe().
    """

    __slots__ = ("id", "kind", "callback", "active")

    def __init__(self, kind: EventKind, callback: EventCallback) -> None:
        self.id = next(_subscription_ids)
        self.kind = kind
        self.callback = callback
        self.active = True

    def __repr__(self) -> str:
        return f"Subscription(id={self.id}, kind={self.kind.value}, active={self.active})"


class PublishError(Exception):
    """One or more subscribers failed while handling an event."""

    def __init__(self, event: InterpreterEvent, errors: List[Exception]) -> None:
        self.event = event
        self.errors = errors
        super().__init__(
            f"{len(errors)} subscriber(s) failed handling {event.kind.value} "
            f"event for '{event.instance_id}': {errors[0]!r}"
        )


class EventBus:
    """In-process publish/subscribe hub scoped to one interpreter instance."""

    def __init__(
        self, logger: Optional[Union[logging.Logger, logging.LoggerAdapter]] = None
    ) -> None:
        self._logger = logger or _default_logger
        self._subscriptions: Dict[EventKind, List[Subscription]] = {
            kind: [] for kind in EventKind
        }

    def subscribe(self, kind: EventKind, callback: EventCallback) -> Subscription:
        """Register a callback for an event kind."""
        subscription = Subscription(EventKind(kind), callback)
        self._subscriptions[subscription.kind].append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        """Release a subscription. Unknown or already-released handles are ignored."""
        subscription.active = False
        subscribers = self._subscriptions.get(subscription.kind, [])
        if subscription in subscribers:
            subscribers.remove(subscription)

    def subscriber_count(self, kind: EventKind) -> int:
        return len(self._subscriptions[EventKind(kind)])

    async def publish(self, event: InterpreterEvent) -> None:
        """Deliver an event to every current subscriber of its kind.

        Callbacks run concurrently. A failing callback does not stop its
        siblings; once all have settled, failures are raised together as a
        PublishError.
        """
        subscribers = tuple(self._subscriptions[event.kind])
        if not subscribers:
            return

        results = await asyncio.gather(
            *(self._deliver(subscription, event) for subscription in subscribers),
            return_exceptions=True,
        )

        errors: List[Exception] = []
        for result in results:
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, Exception):
                errors.append(result)

        if errors:
            for error in errors:
                self._logger.error(
                    f"Instance {event.instance_id}: subscriber failed on "
                    f"{event.kind.value} event: {error!r}"
                )
            raise PublishError(event, errors)

    @staticmethod
    async def _deliver(subscription: Subscription, event: InterpreterEvent) -> None:
        # Released between snapshot and delivery
        if not subscription.active:
            return
        await subscription.callback(event)
