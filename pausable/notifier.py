"""Lifecycle notifications of an interpreter run.

LifecycleNotifier wraps a run: it reports "started" before the first block,
forwards paused/resumed events from the instance's event bus, and reports
"ended" exactly once however the run exits. Notification failures are logged
and never change the outcome of the run; a cancellation observed while
notifying still cancels it.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

from .adapter import InterpreterAdapter
from .errors import CanceledError
from .events import EventBus, EventKind, InterpreterEvent
from .models import ErrorDetail

T = TypeVar("T")


class LifecycleNotifier:
    def __init__(
        self,
        adapter: InterpreterAdapter,
        instance_id: str,
        eventing: EventBus,
    ) -> None:
        self._adapter = adapter
        self._logger = adapter.logger
        self._instance_id = instance_id
        self._eventing = eventing
        self._tracking = False

    async def run(self, body: Callable[[], Awaitable[T]]) -> T:
        """Run body between the started and ended notifications."""
        if self._tracking:
            raise RuntimeError(
                f"Lifecycle of '{self._instance_id}' is already being tracked"
            )
        self._tracking = True

        subscriptions = [
            self._eventing.subscribe(EventKind.PAUSED, self._on_paused),
            self._eventing.subscribe(EventKind.RESUMED, self._on_resumed),
        ]
        result: Optional[Any] = None
        error: Optional[BaseException] = None
        try:
            await self._notify_started()
            result = await body()
            return result
        except BaseException as exc:
            error = exc
            raise
        finally:
            for subscription in subscriptions:
                self._eventing.unsubscribe(subscription)
            await self._notify_ended(result, error)

    async def _notify_started(self) -> None:
        try:
            await self._adapter.notify_started(self._instance_id, self._adapter.now())
        except CanceledError:
            raise
        except Exception as e:
            self._logger.error(f"Instance {self._instance_id}: started notification failed: {e}")

    async def _notify_ended(
        self, result: Optional[Any], error: Optional[BaseException]
    ) -> None:
        detail = ErrorDetail.from_exception(error)
        payload: Optional[Dict[str, Any]] = result if isinstance(result, dict) else None
        try:
            await self._adapter.notify_ended(
                self._instance_id, self._adapter.now(), payload, detail
            )
        except Exception as e:
            self._logger.error(f"Instance {self._instance_id}: ended notification failed: {e}")

    async def _on_paused(self, event: InterpreterEvent) -> None:
        try:
            await self._adapter.notify_paused(
                event.instance_id, self._adapter.now(), event.payload
            )
        except CanceledError as exc:
            raise asyncio.CancelledError() from exc
        except Exception as e:
            self._logger.error(f"Instance {event.instance_id}: paused notification failed: {e}")

    async def _on_resumed(self, event: InterpreterEvent) -> None:
        try:
            await self._adapter.notify_resumed(
                event.instance_id, self._adapter.now(), event.payload
            )
        except CanceledError as exc:
            raise asyncio.CancelledError() from exc
        except Exception as e:
            self._logger.error(f"Instance {event.instance_id}: resumed notification failed: {e}")
