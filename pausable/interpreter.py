"""Interpreter state machine.

Runs the blocks of one instance in order and suspends at pause-points:

    initializing -> running -> (pausing <-> awaiting_resume) -> running -> ...
                 -> completed | failed

The run loop is the only writer of the block queue and the result. The
is_paused flag is shared with resume callers and lives in the PauseGate.
"""

from __future__ import annotations

import asyncio
from collections import deque
from datetime import timedelta
from enum import Enum
from typing import Any, Deque, Dict, List, Optional, Tuple

from .adapter import InterpreterAdapter
from .errors import CanceledError, InterpreterError
from .events import EventBus
from .gate import PauseGate
from .models import ResumeResponse, WorkflowDefinition
from .settings import PAUSE_TIMEOUT_DAYS

DEFAULT_RESUME_TIMEOUT = timedelta(days=PAUSE_TIMEOUT_DAYS)


class InterpreterState(str, Enum):
    INITIALIZING = "initializing"
    RUNNING = "running"
    PAUSING = "pausing"
    AWAITING_RESUME = "awaiting_resume"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_STATES = frozenset({InterpreterState.COMPLETED, InterpreterState.FAILED})


class Interpreter:
    """Executes the block sequence of one instance.

    Args:
        instance_id: Identifier of the instance
        adapter: Host engine used for remote steps and durable waits
        input: Opaque run input, kept for the owner
        resume_timeout: How long a pause may wait for a resume
        eventing: Event bus of the instance (created when omitted)
    """

    def __init__(
        self,
        instance_id: str,
        adapter: InterpreterAdapter,
        *,
        input: Optional[Any] = None,
        resume_timeout: timedelta = DEFAULT_RESUME_TIMEOUT,
        eventing: Optional[EventBus] = None,
    ) -> None:
        self.instance_id = instance_id
        self.input = input
        self.eventing = eventing or EventBus(logger=adapter.logger)
        self._adapter = adapter
        self._logger = adapter.logger
        self._resume_timeout = resume_timeout
        self._gate = PauseGate(instance_id, self.eventing, adapter)

        self._state = InterpreterState.INITIALIZING
        self._started = False
        self._definition: Optional[WorkflowDefinition] = None
        self._remaining: Deque[int] = deque()
        self._result: Optional[Dict[str, Any]] = None
        self._error: Optional[BaseException] = None

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def is_paused(self) -> bool:
        return self._gate.is_paused

    @property
    def state(self) -> InterpreterState:
        return self._state

    @property
    def definition(self) -> Optional[WorkflowDefinition]:
        return self._definition

    @property
    def remaining_blocks(self) -> Tuple[int, ...]:
        return tuple(self._remaining)

    @property
    def result(self) -> Optional[Dict[str, Any]]:
        return self._result

    @property
    def error(self) -> Optional[BaseException]:
        return self._error

    @property
    def is_terminal(self) -> bool:
        return self._state in TERMINAL_STATES

    # ------------------------------------------------------------------
    # Resume
    # ------------------------------------------------------------------

    def validate_resume(self, payload: Optional[Any]) -> None:
        """Boundary check of a resume request; never mutates state."""
        self._gate.check_resumable(payload)

    async def resume(self, payload: Optional[Any]) -> ResumeResponse:
        self.validate_resume(payload)
        return await self._gate.resume(payload)

    # ------------------------------------------------------------------
    # Run loop
    # ------------------------------------------------------------------

    async def run(self) -> Dict[str, Any]:
        """Run the instance to completion.

        Returns the accumulated result. Raises the terminal InterpreterError
        on failure; cancellation surfaces as CanceledError.
        """
        if self._started:
            raise RuntimeError(f"Interpreter '{self.instance_id}' has already run")
        self._started = True

        try:
            result = await self._run_blocks()
        except asyncio.CancelledError as exc:
            error = CanceledError(
                f"Interpreter '{self.instance_id}' was cancelled "
                f"while {self._state.value}.",
                self.instance_id,
            )
            self._fail(error)
            raise error from exc
        except InterpreterError as exc:
            if exc.instance_id is None:
                exc.instance_id = self.instance_id
            self._fail(exc)
            raise
        except Exception as exc:
            self._fail(exc)
            raise

        self._result = result
        self._state = InterpreterState.COMPLETED
        self._logger.info(f"Instance {self.instance_id}: completed")
        return result

    async def _run_blocks(self) -> Dict[str, Any]:
        self._state = InterpreterState.INITIALIZING
        self._definition = await self._adapter.fetch_definition(self.instance_id)
        self._remaining = deque(self._definition.blocks)
        pause_points = self._definition.pause_points
        self._logger.info(
            f"Instance {self.instance_id}: {len(self._remaining)} blocks, "
            f"pause points {sorted(pause_points)}"
        )

        outputs: List[Dict[str, Any]] = []
        self._state = InterpreterState.RUNNING
        while self._remaining:
            block = self._remaining.popleft()
            output = await self._adapter.execute_block(block)
            outputs.append({"block": block, "output": output})

            if block in pause_points:
                self._state = InterpreterState.PAUSING
                await self._gate.pause(block)
                self._state = InterpreterState.AWAITING_RESUME
                await self._gate.wait_until_resumed(self._resume_timeout)
                self._state = InterpreterState.RUNNING

        return {"instance_id": self.instance_id, "blocks": outputs}

    def _fail(self, error: BaseException) -> None:
        self._logger.error(f"Instance {self.instance_id}: failed in {self._state.value}: {error}")
        self._error = error
        self._state = InterpreterState.FAILED
        self._gate.close()
