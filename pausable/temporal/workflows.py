"""Temporal Workflow Definitions"""

from __future__ import annotations

from typing import Any, Optional

from temporalio import workflow

with workflow.unsafe.imports_passed_through():
    from ..errors import InterpreterError
    from ..events import EventBus
    from ..interpreter import Interpreter
    from ..models import InterpreterParams, ResumeResponse
    from .adapter import TemporalAdapter


@workflow.defn(failure_exception_types=[InterpreterError])
class PausableWorkflow:
    """Temporal workflow hosting one pausable interpreter instance.

    The interpreter is built in the workflow initializer, so the "paused"
    query and the "resume" update are answerable before run() starts.
    InterpreterError subclasses fail the workflow (or the update) instead of
    retrying the workflow task.

    Lifecycle notifications are not sent from here; the worker's
    LifecycleInterceptor wraps run() using the ``eventing`` bus below.
    """

    @workflow.init
    def __init__(self, params: InterpreterParams) -> None:
        self._instance_id = params.instance_id
        self._interpreter = Interpreter(
            params.instance_id,
            TemporalAdapter(),
            input=params.input,
        )

    @property
    def eventing(self) -> EventBus:
        return self._interpreter.eventing

    @workflow.run
    async def run(self, params: InterpreterParams) -> dict:
        """Execute the block sequence of params.instance_id."""
        workflow.logger.info(f"Instance {params.instance_id}: run started")
        try:
            return await self._interpreter.run()
        finally:
            # A resume that released the last pause may still be publishing
            # its Resumed event; the update must finish before the run ends.
            await workflow.wait_condition(workflow.all_handlers_finished)

    @workflow.query(name="paused")
    def is_paused(self) -> bool:
        return self._interpreter.is_paused

    @workflow.query(name="state")
    def state(self) -> str:
        return self._interpreter.state.value

    @workflow.update(name="resume")
    async def resume(self, payload: Optional[Any]) -> ResumeResponse:
        """Resume a paused run. The payload must be a JSON object."""
        response = await self._interpreter.resume(payload)
        workflow.logger.info(f"Instance {self._instance_id}: resume accepted")
        return response

    @resume.validator
    def validate_resume(self, payload: Optional[Any]) -> None:
        self._interpreter.validate_resume(payload)
