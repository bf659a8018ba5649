"""Tests for pausable/temporal/adapter.py

workflow.* calls are patched, so these run without a Temporal server. They
check how remote steps map to activities and how activity failures map to
interpreter errors.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from temporalio.exceptions import ActivityError, ApplicationError, RetryState
from temporalio.exceptions import CancelledError as TemporalCancelledError

from pausable.adapter import CallPolicy
from pausable.errors import BlockExecutionError, CanceledError, DefinitionUnavailableError
from pausable.models import (
    ErrorDetail,
    ExecutionEndedInput,
    ExecutionPausedInput,
    ExecutionStartedInput,
    WorkflowDefinition,
)
from pausable.temporal.activities import (
    execute_block_activity,
    execution_ended_activity,
    execution_paused_activity,
    execution_started_activity,
    get_definition_activity,
)
from pausable.temporal.adapter import TemporalAdapter

NOW = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

STEP = CallPolicy(timedelta(seconds=120), maximum_attempts=3)
NOTIFY = CallPolicy(timedelta(seconds=10), maximum_attempts=3)


def _activity_error(cause: BaseException, activity_type: str = "interpreter.block") -> ActivityError:
    err = ActivityError(
        "activity failed",
        scheduled_event_id=1,
        started_event_id=2,
        identity="worker",
        activity_type=activity_type,
        activity_id="1",
        retry_state=RetryState.MAXIMUM_ATTEMPTS_REACHED,
    )
    err.__cause__ = cause
    return err


@pytest.fixture
def execute_activity():
    with patch(
        "pausable.temporal.adapter.workflow.execute_activity", new_callable=AsyncMock
    ) as mock:
        yield mock


@pytest.fixture
def adapter() -> TemporalAdapter:
    return TemporalAdapter(step_policy=STEP, started_policy=NOTIFY, notify_policy=NOTIFY)


class TestRemoteSteps:
    @pytest.mark.asyncio
    async def test_fetch_definition_runs_activity_with_retry_policy(
        self, adapter, execute_activity
    ):
        definition = WorkflowDefinition(blocks=[1, 2], pauses=[2])
        execute_activity.return_value = definition

        assert await adapter.fetch_definition("inst-1") is definition

        args, kwargs = execute_activity.await_args
        assert args == (get_definition_activity, "inst-1")
        assert kwargs["start_to_close_timeout"] == timedelta(seconds=120)
        assert kwargs["retry_policy"].maximum_attempts == 3

    @pytest.mark.asyncio
    async def test_fetch_definition_failure(self, adapter, execute_activity):
        execute_activity.side_effect = _activity_error(
            ApplicationError("not found", type="DefinitionNotFound", non_retryable=True),
            "interpreter.definition",
        )

        with pytest.raises(DefinitionUnavailableError) as exc_info:
            await adapter.fetch_definition("inst-1")

        assert exc_info.value.instance_id == "inst-1"
        assert "not found" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_execute_block(self, adapter, execute_activity):
        execute_activity.return_value = {"rows": 3}

        assert await adapter.execute_block(7) == {"rows": 3}
        assert execute_activity.await_args.args == (execute_block_activity, 7)

    @pytest.mark.asyncio
    async def test_execute_block_failure_carries_block_id(self, adapter, execute_activity):
        execute_activity.side_effect = _activity_error(ApplicationError("500 from service"))

        with pytest.raises(BlockExecutionError) as exc_info:
            await adapter.execute_block(7)

        assert exc_info.value.block_id == 7

    @pytest.mark.asyncio
    async def test_cancelled_activity_becomes_canceled_error(self, adapter, execute_activity):
        execute_activity.side_effect = _activity_error(TemporalCancelledError("Cancelled"))

        with pytest.raises(CanceledError):
            await adapter.execute_block(7)


class TestNotifications:
    @pytest.mark.asyncio
    async def test_started_uses_started_activity(self, adapter, execute_activity):
        await adapter.notify_started("inst-1", NOW)

        args, kwargs = execute_activity.await_args
        assert args == (
            execution_started_activity,
            ExecutionStartedInput("inst-1", NOW.isoformat()),
        )
        assert kwargs["start_to_close_timeout"] == timedelta(seconds=10)

    @pytest.mark.asyncio
    async def test_paused_carries_payload(self, adapter, execute_activity):
        await adapter.notify_paused("inst-1", NOW, 2)

        assert execute_activity.await_args.args == (
            execution_paused_activity,
            ExecutionPausedInput("inst-1", NOW.isoformat(), 2),
        )

    @pytest.mark.asyncio
    async def test_ended_carries_result_and_error(self, adapter, execute_activity):
        error = ErrorDetail("CanceledError", "CanceledError", "cancelled")

        await adapter.notify_ended("inst-1", NOW, None, error)

        assert execute_activity.await_args.args == (
            execution_ended_activity,
            ExecutionEndedInput("inst-1", NOW.isoformat(), None, error),
        )

    @pytest.mark.asyncio
    async def test_failed_notification_is_reraised(self, adapter, execute_activity):
        failure = _activity_error(ApplicationError("webhook down"))
        execute_activity.side_effect = failure

        with pytest.raises(ActivityError) as exc_info:
            await adapter.notify_paused("inst-1", NOW, 2)
        assert exc_info.value is failure

    @pytest.mark.asyncio
    async def test_cancelled_notification(self, adapter, execute_activity):
        execute_activity.side_effect = _activity_error(TemporalCancelledError("Cancelled"))

        with pytest.raises(CanceledError):
            await adapter.notify_started("inst-1", NOW)


class TestWaitAndClock:
    @pytest.mark.asyncio
    async def test_durable_wait_satisfied(self, adapter):
        with patch(
            "pausable.temporal.adapter.workflow.wait_condition", new_callable=AsyncMock
        ) as wait_condition:
            predicate = lambda: True  # noqa: E731
            assert await adapter.durable_wait(predicate, timedelta(days=15)) is True

        wait_condition.assert_awaited_once_with(predicate, timeout=timedelta(days=15))

    @pytest.mark.asyncio
    async def test_durable_wait_timeout(self, adapter):
        with patch(
            "pausable.temporal.adapter.workflow.wait_condition",
            new_callable=AsyncMock,
            side_effect=asyncio.TimeoutError(),
        ):
            assert await adapter.durable_wait(lambda: False, timedelta(seconds=1)) is False

    def test_now_is_workflow_time(self, adapter):
        with patch("pausable.temporal.adapter.workflow.now", return_value=NOW):
            assert adapter.now() == NOW

    def test_logger_is_workflow_logger(self, adapter):
        workflow_logger = MagicMock()
        with patch("pausable.temporal.adapter.workflow.logger", workflow_logger):
            assert adapter.logger is workflow_logger
