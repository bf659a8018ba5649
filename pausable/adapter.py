"""Host engine interface used by the interpreter.

The interpreter never talks to remote services or timers directly. It calls
an InterpreterAdapter, which the host engine implements:

- pausable.local.LocalAdapter: in-process asyncio host
- pausable.temporal.adapter.TemporalAdapter: Temporal workflow host

Remote step calls are retried by the adapter according to a CallPolicy; the
interpreter itself never retries.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional, Union

from .models import ErrorDetail, WorkflowDefinition
from .settings import (
    NOTIFY_MAX_ATTEMPTS,
    NOTIFY_START_TO_CLOSE_SECONDS,
    STARTED_MAX_ATTEMPTS,
    STARTED_START_TO_CLOSE_SECONDS,
    STEP_BACKOFF_COEFFICIENT,
    STEP_INITIAL_INTERVAL_SECONDS,
    STEP_MAX_ATTEMPTS,
    STEP_START_TO_CLOSE_SECONDS,
)


@dataclass(frozen=True)
class CallPolicy:
    """Timeout and retry budget of one kind of remote call."""
    start_to_close_timeout: timedelta
    maximum_attempts: int = 3
    initial_interval: timedelta = timedelta(seconds=1)
    backoff_coefficient: float = 2.0


STEP_POLICY = CallPolicy(
    start_to_close_timeout=timedelta(seconds=STEP_START_TO_CLOSE_SECONDS),
    maximum_attempts=STEP_MAX_ATTEMPTS,
    initial_interval=timedelta(seconds=STEP_INITIAL_INTERVAL_SECONDS),
    backoff_coefficient=STEP_BACKOFF_COEFFICIENT,
)

STARTED_POLICY = CallPolicy(
    start_to_close_timeout=timedelta(seconds=STARTED_START_TO_CLOSE_SECONDS),
    maximum_attempts=STARTED_MAX_ATTEMPTS,
)

NOTIFY_POLICY = CallPolicy(
    start_to_close_timeout=timedelta(seconds=NOTIFY_START_TO_CLOSE_SECONDS),
    maximum_attempts=NOTIFY_MAX_ATTEMPTS,
)

_core_logger = logging.getLogger("pausable.interpreter")


class InterpreterAdapter(ABC):
    """Remote step calls, notifications and durable waits of one host engine."""

    @property
    def logger(self) -> Union[logging.Logger, logging.LoggerAdapter]:
        """Logger for interpreter code hosted by this engine."""
        return _core_logger

    @abstractmethod
    async def fetch_definition(self, instance_id: str) -> WorkflowDefinition:
        """Fetch the block definition. Raises DefinitionUnavailableError."""

    @abstractmethod
    async def execute_block(self, block_id: int) -> Any:
        """Execute one block remotely. Raises BlockExecutionError."""

    @abstractmethod
    async def notify_started(self, instance_id: str, started_at: datetime) -> None:
        ...

    @abstractmethod
    async def notify_paused(
        self, instance_id: str, paused_at: datetime, payload: Optional[Any]
    ) -> None:
        ...

    @abstractmethod
    async def notify_resumed(
        self, instance_id: str, resumed_at: datetime, payload: Optional[Any]
    ) -> None:
        ...

    @abstractmethod
    async def notify_ended(
        self,
        instance_id: str,
        ended_at: datetime,
        result: Optional[Dict[str, Any]],
        error: Optional[ErrorDetail],
    ) -> None:
        ...

    @abstractmethod
    async def durable_wait(
        self, predicate: Callable[[], bool], timeout: timedelta
    ) -> bool:
        """Wait until predicate() is true or timeout elapses.

        Returns False on timeout. Must be safe to re-enter identically after
        a restart/replay.
        """

    @abstractmethod
    def now(self) -> datetime:
        """Current time as seen by the host engine."""
