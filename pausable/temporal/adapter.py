"""Interpreter adapter backed by the Temporal workflow runtime.

Must only be used from inside workflow code: remote steps become activities
with a RetryPolicy, the durable wait is workflow.wait_condition, the clock
is workflow.now() and the logger is workflow.logger, all of which behave
deterministically under replay.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional

from temporalio import workflow
from temporalio.common import RetryPolicy
from temporalio.exceptions import ActivityError, is_cancelled_exception

with workflow.unsafe.imports_passed_through():
    from ..adapter import (
        NOTIFY_POLICY,
        STARTED_POLICY,
        STEP_POLICY,
        CallPolicy,
        InterpreterAdapter,
    )
    from ..errors import BlockExecutionError, CanceledError, DefinitionUnavailableError
    from ..models import (
        ErrorDetail,
        ExecutionEndedInput,
        ExecutionPausedInput,
        ExecutionResumedInput,
        ExecutionStartedInput,
        WorkflowDefinition,
    )
    from .activities import (
        execute_block_activity,
        execution_ended_activity,
        execution_paused_activity,
        execution_resumed_activity,
        execution_started_activity,
        get_definition_activity,
    )


def _activity_options(policy: CallPolicy) -> Dict[str, Any]:
    return {
        "start_to_close_timeout": policy.start_to_close_timeout,
        "retry_policy": RetryPolicy(
            maximum_attempts=policy.maximum_attempts,
            initial_interval=policy.initial_interval,
            backoff_coefficient=policy.backoff_coefficient,
        ),
    }


class TemporalAdapter(InterpreterAdapter):
    def __init__(
        self,
        step_policy: CallPolicy = STEP_POLICY,
        started_policy: CallPolicy = STARTED_POLICY,
        notify_policy: CallPolicy = NOTIFY_POLICY,
    ) -> None:
        self._step_options = _activity_options(step_policy)
        self._started_options = _activity_options(started_policy)
        self._notify_options = _activity_options(notify_policy)

    async def fetch_definition(self, instance_id: str) -> WorkflowDefinition:
        try:
            return await workflow.execute_activity(
                get_definition_activity, instance_id, **self._step_options
            )
        except ActivityError as exc:
            _raise_if_cancelled(exc, f"definition of '{instance_id}'")
            raise DefinitionUnavailableError(
                f"Definition of '{instance_id}' is unavailable: {exc.cause or exc}",
                instance_id,
            ) from exc

    async def execute_block(self, block_id: int) -> Any:
        try:
            return await workflow.execute_activity(
                execute_block_activity, block_id, **self._step_options
            )
        except ActivityError as exc:
            _raise_if_cancelled(exc, f"block {block_id}")
            raise BlockExecutionError(
                f"Block {block_id} failed: {exc.cause or exc}",
                block_id=block_id,
            ) from exc

    async def notify_started(self, instance_id: str, started_at: datetime) -> None:
        await self._notify(
            execution_started_activity,
            ExecutionStartedInput(instance_id, started_at.isoformat()),
            self._started_options,
        )

    async def notify_paused(
        self, instance_id: str, paused_at: datetime, payload: Optional[Any]
    ) -> None:
        await self._notify(
            execution_paused_activity,
            ExecutionPausedInput(instance_id, paused_at.isoformat(), payload),
            self._notify_options,
        )

    async def notify_resumed(
        self, instance_id: str, resumed_at: datetime, payload: Optional[Any]
    ) -> None:
        await self._notify(
            execution_resumed_activity,
            ExecutionResumedInput(instance_id, resumed_at.isoformat(), payload),
            self._notify_options,
        )

    async def notify_ended(
        self,
        instance_id: str,
        ended_at: datetime,
        result: Optional[Dict[str, Any]],
        error: Optional[ErrorDetail],
    ) -> None:
        await self._notify(
            execution_ended_activity,
            ExecutionEndedInput(instance_id, ended_at.isoformat(), result, error),
            self._notify_options,
        )

    async def durable_wait(
        self, predicate: Callable[[], bool], timeout: timedelta
    ) -> bool:
        try:
            await workflow.wait_condition(predicate, timeout=timeout)
        except asyncio.TimeoutError:
            return False
        return True

    def now(self) -> datetime:
        return workflow.now()

    @property
    def logger(self) -> logging.LoggerAdapter:
        # Replay-aware: suppressed while the workflow replays history
        return workflow.logger

    async def _notify(self, activity_fn: Any, arg: Any, options: Dict[str, Any]) -> None:
        try:
            await workflow.execute_activity(activity_fn, arg, **options)
        except ActivityError as exc:
            _raise_if_cancelled(exc, activity_fn.__name__)
            raise


def _raise_if_cancelled(exc: BaseException, description: str) -> None:
    if is_cancelled_exception(exc):
        raise CanceledError(f"Call to {description} was cancelled") from exc
