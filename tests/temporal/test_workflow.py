"""Tests for PausableWorkflow and LifecycleInterceptor without a Temporal server.

The workflow runtime calls (execute_activity, wait_condition, now, logger,
all_handlers_finished, instance) are patched with an in-process fake, so the
update handler, its validator, the queries and the interceptor run on the
test's event loop. tests/temporal/test_workflow_e2e.py covers the same flow on
a real server when PAUSABLE_TEMPORAL_E2E=1.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from types import SimpleNamespace
from typing import Any, List, Optional
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from pausable.errors import CanceledError, PreconditionError, ValidationError
from pausable.events import EventBus
from pausable.models import InterpreterParams, ResumeResponse, WorkflowDefinition
from pausable.temporal.activities import (
    execute_block_activity,
    execution_resumed_activity,
    get_definition_activity,
)
from pausable.temporal.interceptor import LifecycleInterceptor
from pausable.temporal.workflows import PausableWorkflow

NOW = datetime(2026, 1, 1, tzinfo=timezone.utc)


class FakeRuntime:
    """Stands in for the workflow event loop of one execution."""

    def __init__(self) -> None:
        self.pauses: List[int] = [2]
        self.activities: List[str] = []
        self.updates: List[asyncio.Task] = []
        self.instance: Optional[Any] = None
        self.resumed_release = asyncio.Event()
        self.resumed_release.set()
        self.logger = MagicMock()

    async def execute_activity(self, fn: Any, arg: Any, **options: Any) -> Any:
        self.activities.append(fn.__name__)
        if fn is get_definition_activity:
            return WorkflowDefinition(blocks=[1, 2, 3], pauses=list(self.pauses))
        if fn is execute_block_activity:
            return f"out-{arg}"
        if fn is execution_resumed_activity:
            await self.resumed_release.wait()
        return None

    async def wait_condition(self, predicate, timeout=None) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout.total_seconds() if timeout else None
        while not predicate():
            if deadline is not None and loop.time() > deadline:
                raise asyncio.TimeoutError()
            await asyncio.sleep(0.005)

    def all_handlers_finished(self) -> bool:
        return all(task.done() for task in self.updates)

    def update(self, coro) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        self.updates.append(task)
        return task

    def notifications(self) -> List[str]:
        return [name for name in self.activities if name.startswith("execution_")]


@pytest.fixture
def runtime():
    fake = FakeRuntime()
    with patch("temporalio.workflow.execute_activity", side_effect=fake.execute_activity), \
            patch("temporalio.workflow.wait_condition", side_effect=fake.wait_condition), \
            patch("temporalio.workflow.all_handlers_finished", side_effect=fake.all_handlers_finished), \
            patch("temporalio.workflow.instance", side_effect=lambda: fake.instance), \
            patch("temporalio.workflow.now", return_value=NOW), \
            patch("temporalio.workflow.logger", fake.logger):
        yield fake


def _inbound(execute_workflow):
    inbound_cls = LifecycleInterceptor().workflow_interceptor_class(MagicMock())
    return inbound_cls(MagicMock(execute_workflow=execute_workflow))


def _start(runtime: FakeRuntime, instance_id: str = "inst-1"):
    """Start PausableWorkflow behind the lifecycle interceptor."""
    params = InterpreterParams(instance_id)
    wf = PausableWorkflow(params)
    runtime.instance = wf

    async def execute_workflow(input):
        return await wf.run(params)

    inbound = _inbound(AsyncMock(side_effect=execute_workflow))
    run = asyncio.create_task(inbound.execute_workflow(MagicMock(args=[params])))
    return wf, run


class TestPausableWorkflow:
    @pytest.mark.asyncio
    async def test_queries_and_validator(self, runtime, wait_until):
        wf = PausableWorkflow(InterpreterParams("inst-1"))

        assert wf.is_paused() is False
        assert wf.state() == "initializing"
        with pytest.raises(PreconditionError):
            wf.validate_resume({})

        run = asyncio.create_task(wf.run(InterpreterParams("inst-1")))
        await wait_until(wf.is_paused)

        assert wf.state() == "awaiting_resume"
        with pytest.raises(ValidationError):
            wf.validate_resume(5)
        with pytest.raises(ValidationError):
            wf.validate_resume(None)
        wf.validate_resume({})

        assert await runtime.update(wf.resume({})) == ResumeResponse("resumed")
        result = await asyncio.wait_for(run, timeout=2)
        assert [b["block"] for b in result["blocks"]] == [1, 2, 3]
        assert wf.is_paused() is False

    @pytest.mark.asyncio
    async def test_resume_rejected_by_update_leaves_run_paused(self, runtime, wait_until):
        wf, run = _start(runtime)
        await wait_until(wf.is_paused)

        with pytest.raises(ValidationError):
            await runtime.update(wf.resume("go"))

        assert wf.is_paused() is True
        assert not run.done()
        await runtime.update(wf.resume({}))
        await asyncio.wait_for(run, timeout=2)

    @pytest.mark.asyncio
    async def test_run_waits_for_resume_update_on_last_block(self, runtime, wait_until):
        runtime.pauses = [3]
        runtime.resumed_release.clear()
        wf, run = _start(runtime)
        await wait_until(wf.is_paused)

        update = runtime.update(wf.resume({}))
        await wait_until(lambda: "execution_resumed_activity" in runtime.activities)
        await asyncio.sleep(0.05)

        # Blocks are done, the update is still publishing its Resumed event
        assert wf.state() == "completed"
        assert not update.done()
        assert not run.done()
        assert "execution_ended_activity" not in runtime.activities

        runtime.resumed_release.set()
        assert await asyncio.wait_for(update, timeout=2) == ResumeResponse("resumed")
        result = await asyncio.wait_for(run, timeout=2)

        assert len(result["blocks"]) == 3
        assert runtime.notifications() == [
            "execution_started_activity",
            "execution_paused_activity",
            "execution_resumed_activity",
            "execution_ended_activity",
        ]

    @pytest.mark.asyncio
    async def test_cancel_while_paused(self, runtime, wait_until):
        wf, run = _start(runtime)
        await wait_until(wf.is_paused)

        run.cancel()

        with pytest.raises(CanceledError):
            await asyncio.wait_for(run, timeout=2)
        assert wf.state() == "failed"
        assert wf.is_paused() is False
        assert runtime.notifications()[-1] == "execution_ended_activity"

    @pytest.mark.asyncio
    async def test_logs_through_workflow_logger(self, runtime, wait_until):
        wf, run = _start(runtime)
        await wait_until(wf.is_paused)
        await runtime.update(wf.resume({}))
        await asyncio.wait_for(run, timeout=2)

        messages = [c.args[0] for c in runtime.logger.info.call_args_list]
        assert "Instance inst-1: run started" in messages
        assert "Instance inst-1: resume accepted" in messages
        assert "Instance inst-1: completed" in messages


class TestLifecycleInterceptor:
    @pytest.mark.asyncio
    async def test_other_workflows_pass_through(self, runtime):
        execute = AsyncMock(return_value="done")
        runtime.instance = SimpleNamespace()

        assert await _inbound(execute).execute_workflow(MagicMock(args=["x"])) == "done"

        execute.assert_awaited_once()
        assert runtime.activities == []

    @pytest.mark.asyncio
    async def test_wrong_argument_type_passes_through(self, runtime):
        runtime.instance = SimpleNamespace(eventing=EventBus())

        await _inbound(AsyncMock(return_value="done")).execute_workflow(
            MagicMock(args=[{"instance_id": "x"}])
        )

        assert runtime.activities == []

    @pytest.mark.asyncio
    async def test_failed_body_reports_ended_once(self, runtime):
        runtime.instance = SimpleNamespace(eventing=EventBus())
        execute = AsyncMock(side_effect=RuntimeError("boom"))

        with pytest.raises(RuntimeError):
            await _inbound(execute).execute_workflow(
                MagicMock(args=[InterpreterParams("inst-9")])
            )

        assert runtime.notifications() == [
            "execution_started_activity",
            "execution_ended_activity",
        ]
