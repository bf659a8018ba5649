"""Pause/resume gate of one interpreter instance.

The gate owns the is_paused flag. pause() and resume() run under one
per-instance lock, so the check-then-set of the flag and the matching event
publish happen as a unit: two concurrent resumes can never both observe a
paused instance. wait_until_resumed() never holds the lock, otherwise no
resume could ever get in.

Subscribers of the gate's events run inside the lock and must not call back
into the gate.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from datetime import timedelta
from typing import Any, Optional

from .adapter import InterpreterAdapter
from .errors import PausedTooLongError, PreconditionError, ValidationError
from .events import EventBus, PausedEvent, ResumedEvent
from .models import ResumeResponse


class PauseGate:
    def __init__(
        self,
        instance_id: str,
        eventing: EventBus,
        adapter: InterpreterAdapter,
    ) -> None:
        self._instance_id = instance_id
        self._eventing = eventing
        self._adapter = adapter
        self._logger = adapter.logger
        self._lock = asyncio.Lock()
        self._paused = False

    @property
    def is_paused(self) -> bool:
        return self._paused

    async def pause(self, payload: Optional[Any] = None) -> bool:
        """Mark the instance paused and publish a PausedEvent.

        Pausing an already paused instance is a no-op, so re-entering the
        same pause after a replay does not publish a duplicate event.
        Returns True when the state changed.
        """
        async with self._lock:
            if self._paused:
                self._logger.info(
                    f"Instance {self._instance_id}: already paused, "
                    "skipping duplicate pause"
                )
                return False

            self._paused = True
            self._logger.info(f"Instance {self._instance_id}: paused (payload={payload!r})")
            await self._eventing.publish(PausedEvent(self._instance_id, payload))
        return True

    def check_resumable(self, payload: Optional[Any]) -> None:
        """Raise if a resume with this payload would be rejected.

        Raises:
            PreconditionError: the instance is not paused
            ValidationError: the payload is missing or not an object
        """
        if not self._paused:
            raise PreconditionError(
                f"Interpreter '{self._instance_id}' is not paused and "
                "therefore cannot be resumed.",
                self._instance_id,
            )
        check_resume_payload(self._instance_id, payload)

    async def resume(self, payload: Optional[Any]) -> ResumeResponse:
        """Clear the paused flag and publish a ResumedEvent.

        The resume contract is checked again inside the lock; a rejected
        resume leaves the gate untouched.
        """
        async with self._lock:
            self.check_resumable(payload)
            self._paused = False
            self._logger.info(f"Instance {self._instance_id}: resumed")
            await self._eventing.publish(ResumedEvent(self._instance_id, payload))
        return ResumeResponse(message="resumed")

    async def wait_until_resumed(self, timeout: timedelta) -> None:
        """Suspend until resumed. Raises PausedTooLongError on timeout."""
        resumed = await self._adapter.durable_wait(lambda: not self._paused, timeout)
        if not resumed:
            self._logger.warning(
                f"Instance {self._instance_id}: no resume within {timeout}"
            )
            raise PausedTooLongError(
                f"Interpreter '{self._instance_id}' was paused and did not "
                f"receive a continuation within {timeout}.",
                self._instance_id,
            )

    def close(self) -> None:
        """Clear the flag of a terminal instance without publishing."""
        self._paused = False


def check_resume_payload(instance_id: str, payload: Optional[Any]) -> None:
    """Raise ValidationError unless payload is an object-shaped value."""
    if payload is None:
        raise ValidationError(
            f"Failed to resume interpreter '{instance_id}' because "
            "the 'payload' is required and was missing.",
            instance_id,
        )

    if not isinstance(payload, Mapping):
        raise ValidationError(
            f"Failed to resume interpreter '{instance_id}' because "
            f"the 'payload' must be an 'object' but it's "
            f"'{type(payload).__name__}'.",
            instance_id,
        )
