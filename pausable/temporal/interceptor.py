"""Worker interceptor that reports interpreter lifecycle notifications.

Any workflow whose instance exposes an interpreter EventBus as ``eventing``
and receives InterpreterParams as its first argument is wrapped in a
LifecycleNotifier: started before the run, paused/resumed while it runs,
ended once it exits. Other workflows pass through untouched.
"""

from __future__ import annotations

import functools
from typing import Any, Optional, Type

from temporalio import workflow
from temporalio.worker import (
    ExecuteWorkflowInput,
    Interceptor,
    WorkflowInboundInterceptor,
    WorkflowInterceptorClassInput,
)

with workflow.unsafe.imports_passed_through():
    from ..events import EventBus
    from ..models import InterpreterParams
    from ..notifier import LifecycleNotifier
    from .adapter import TemporalAdapter


class LifecycleInterceptor(Interceptor):
    def workflow_interceptor_class(
        self, input: WorkflowInterceptorClassInput
    ) -> Optional[Type[WorkflowInboundInterceptor]]:
        return _LifecycleWorkflowInbound


class _LifecycleWorkflowInbound(WorkflowInboundInterceptor):
    async def execute_workflow(self, input: ExecuteWorkflowInput) -> Any:
        eventing = getattr(workflow.instance(), "eventing", None)
        params = _interpreter_params(input)
        if not isinstance(eventing, EventBus) or params is None:
            return await super().execute_workflow(input)

        notifier = LifecycleNotifier(TemporalAdapter(), params.instance_id, eventing)
        return await notifier.run(
            functools.partial(super().execute_workflow, input)
        )


def _interpreter_params(input: ExecuteWorkflowInput) -> Optional[InterpreterParams]:
    if not input.args:
        return None
    params = input.args[0]
    return params if isinstance(params, InterpreterParams) else None
