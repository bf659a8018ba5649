"""In-process host engine.

LocalAdapter runs remote steps as plain coroutines with a timeout/retry
policy and implements the durable wait by polling on the asyncio loop. It has
no persistence: an instance does not survive a process restart. Use the
Temporal host (pausable.temporal) for that.

start_interpreter() is the caller-facing entry point and returns an
InterpreterHandle for querying, resuming, cancelling and awaiting the run.
"""

from __future__ import annotations

import asyncio
import logging
import random
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Dict, Optional, Type

from .adapter import (
    NOTIFY_POLICY,
    STARTED_POLICY,
    STEP_POLICY,
    CallPolicy,
    InterpreterAdapter,
)
from .errors import (
    BlockExecutionError,
    CanceledError,
    DefinitionUnavailableError,
    RemoteStepError,
)
from .interpreter import DEFAULT_RESUME_TIMEOUT, Interpreter
from .models import ErrorDetail, ResumeResponse, RunResult, WorkflowDefinition
from .notifier import LifecycleNotifier
from .settings import LOCAL_WAIT_POLL_INTERVAL

logger = logging.getLogger("pausable.local")

FetchDefinition = Callable[[str], Awaitable[WorkflowDefinition]]
ExecuteBlock = Callable[[int], Awaitable[Any]]
Webhook = Callable[[str, Dict[str, Any]], Awaitable[None]]


class LocalAdapter(InterpreterAdapter):
    """Adapter backed by in-process coroutines.

    Args:
        fetch_definition: Returns the definition of an instance
        execute_block: Executes one block and returns its output
        webhook: Receives (event_type, body) lifecycle notifications; optional
        step_policy / started_policy / notify_policy: Retry budgets
        poll_interval: Seconds between predicate checks of durable_wait
    """

    def __init__(
        self,
        fetch_definition: FetchDefinition,
        execute_block: ExecuteBlock,
        webhook: Optional[Webhook] = None,
        *,
        step_policy: CallPolicy = STEP_POLICY,
        started_policy: CallPolicy = STARTED_POLICY,
        notify_policy: CallPolicy = NOTIFY_POLICY,
        poll_interval: float = LOCAL_WAIT_POLL_INTERVAL,
    ) -> None:
        self._fetch_definition = fetch_definition
        self._execute_block = execute_block
        self._webhook = webhook
        self._step_policy = step_policy
        self._started_policy = started_policy
        self._notify_policy = notify_policy
        self._poll_interval = poll_interval

    async def fetch_definition(self, instance_id: str) -> WorkflowDefinition:
        return await _call_with_policy(
            self._step_policy,
            DefinitionUnavailableError,
            f"definition of '{instance_id}'",
            self._fetch_definition,
            instance_id,
        )

    async def execute_block(self, block_id: int) -> Any:
        try:
            return await _call_with_policy(
                self._step_policy,
                BlockExecutionError,
                f"block {block_id}",
                self._execute_block,
                block_id,
            )
        except BlockExecutionError as exc:
            exc.block_id = block_id
            raise

    async def notify_started(self, instance_id: str, started_at: datetime) -> None:
        await self._notify(self._started_policy, "execution.started", {
            "instance_id": instance_id,
            "timestamp": started_at.isoformat(),
        })

    async def notify_paused(
        self, instance_id: str, paused_at: datetime, payload: Optional[Any]
    ) -> None:
        await self._notify(self._notify_policy, "execution.paused", {
            "instance_id": instance_id,
            "timestamp": paused_at.isoformat(),
            "payload": payload,
        })

    async def notify_resumed(
        self, instance_id: str, resumed_at: datetime, payload: Optional[Any]
    ) -> None:
        await self._notify(self._notify_policy, "execution.resumed", {
            "instance_id": instance_id,
            "timestamp": resumed_at.isoformat(),
            "payload": payload,
        })

    async def notify_ended(
        self,
        instance_id: str,
        ended_at: datetime,
        result: Optional[Dict[str, Any]],
        error: Optional[ErrorDetail],
    ) -> None:
        await self._notify(self._notify_policy, "execution.ended", {
            "instance_id": instance_id,
            "timestamp": ended_at.isoformat(),
            "result": result,
            "error": error.to_dict() if error else None,
        })

    async def durable_wait(
        self, predicate: Callable[[], bool], timeout: timedelta
    ) -> bool:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout.total_seconds()
        while not predicate():
            remaining = deadline - loop.time()
            if remaining <= 0:
                return False
            await asyncio.sleep(min(self._poll_interval, remaining))
        return True

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    async def _notify(
        self, policy: CallPolicy, event_type: str, body: Dict[str, Any]
    ) -> None:
        if self._webhook is None:
            return
        await _call_with_policy(
            policy, RemoteStepError, f"webhook {event_type}",
            self._webhook, event_type, body,
        )


async def _call_with_policy(
    policy: CallPolicy,
    error_type: Type[RemoteStepError],
    description: str,
    func: Callable[..., Awaitable[Any]],
    *args: Any,
) -> Any:
    """Call func with per-attempt timeout and exponential backoff.

    Raises error_type once all attempts have failed. Cancellation is never
    retried.
    """
    last_error: Optional[BaseException] = None
    for attempt in range(policy.maximum_attempts):
        try:
            # func runs in the calling task; a cancel of the run reaches it directly
            async with asyncio.timeout(policy.start_to_close_timeout.total_seconds()):
                return await func(*args)
        except asyncio.CancelledError as exc:
            raise CanceledError(f"Call to {description} was cancelled") from exc
        except Exception as e:
            last_error = e
            logger.warning(
                f"Call to {description} failed "
                f"(attempt {attempt + 1}/{policy.maximum_attempts}): {e!r}"
            )
            if attempt < policy.maximum_attempts - 1:
                # Exponential backoff + jitter
                delay = (
                    policy.initial_interval.total_seconds()
                    * (policy.backoff_coefficient ** attempt)
                    * (1.0 + random.uniform(-0.25, 0.25))
                )
                await asyncio.sleep(delay)

    raise error_type(
        f"Call to {description} failed after "
        f"{policy.maximum_attempts} attempt(s): {last_error!r}"
    ) from last_error


# ---------------------------------------------------------------------------
# Caller-facing surface
# ---------------------------------------------------------------------------


class InterpreterHandle:
    """Handle of one running local instance."""

    def __init__(self, interpreter: Interpreter, notifier: LifecycleNotifier) -> None:
        self._interpreter = interpreter
        self._notifier = notifier
        self._entered = False
        self._task: "asyncio.Task[Dict[str, Any]]" = asyncio.get_running_loop().create_task(
            self._run(), name=f"interpreter-{interpreter.instance_id}"
        )

    async def _run(self) -> Dict[str, Any]:
        self._entered = True
        return await self._notifier.run(self._interpreter.run)

    @property
    def instance_id(self) -> str:
        return self._interpreter.instance_id

    @property
    def interpreter(self) -> Interpreter:
        return self._interpreter

    @property
    def done(self) -> bool:
        return self._task.done()

    def is_paused(self) -> bool:
        return self._interpreter.is_paused

    async def resume(self, payload: Optional[Any]) -> ResumeResponse:
        return await self._interpreter.resume(payload)

    def cancel(self) -> None:
        """Request cancellation; takes effect at the next suspension point.

        A task cancelled before its first step never runs its body, so the
        request is deferred until the lifecycle notifier has been entered
        and can still report the ended notification.
        """
        if self._entered:
            self._task.cancel()
        else:
            self._task.get_loop().call_soon(self._task.cancel)

    async def result(self) -> RunResult:
        """Wait for the run to become terminal and return its outcome."""
        try:
            value = await asyncio.shield(self._task)
        except Exception as exc:
            return RunResult.failure(ErrorDetail.from_exception(exc))
        return RunResult.success(value)


def start_interpreter(
    instance_id: str,
    input: Optional[Any],
    adapter: InterpreterAdapter,
    *,
    resume_timeout: timedelta = DEFAULT_RESUME_TIMEOUT,
) -> InterpreterHandle:
    """Start a run on the current event loop and return its handle."""
    interpreter = Interpreter(
        instance_id, adapter, input=input, resume_timeout=resume_timeout
    )
    notifier = LifecycleNotifier(adapter, instance_id, interpreter.eventing)
    handle = InterpreterHandle(interpreter, notifier)
    logger.info(f"Instance {instance_id}: started")
    return handle
