"""Temporal client side of the interpreter API.

Holds the process-wide client and speaks the PausableWorkflow contract:
workflow type, workflow ID scheme, the "paused" query and the "resume"
update. Routes never name workflow handlers themselves.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from temporalio.client import Client, WorkflowHandle
from temporalio.exceptions import WorkflowAlreadyStartedError

from pausable.config import TASK_QUEUE, TEMPORAL_ADDRESS
from pausable.models import InterpreterParams, ResumeResponse

logger = logging.getLogger("pausable_api.temporal")

WORKFLOW_TYPE = "PausableWorkflow"
PAUSED_QUERY = "paused"
RESUME_UPDATE = "resume"

# Singleton client instance (initialized via lifespan)
_client: Optional[Client] = None
_client_lock = asyncio.Lock()


class InterpreterAlreadyRunning(Exception):
    """A run with the same workflow ID is still open."""

    def __init__(self, instance_id: str, workflow_id: str) -> None:
        super().__init__(
            f"Interpreter '{instance_id}' is already running as workflow '{workflow_id}'"
        )
        self.instance_id = instance_id
        self.workflow_id = workflow_id


def workflow_id_for(instance_id: str) -> str:
    return f"interp-{instance_id}"


async def init_temporal_client() -> Optional[Client]:
    """Connect once; None when Temporal is unreachable (endpoints answer 503)."""
    global _client
    async with _client_lock:
        if _client is None:
            try:
                _client = await Client.connect(TEMPORAL_ADDRESS)
                logger.info(f"Temporal connected: {TEMPORAL_ADDRESS}")
            except Exception as e:
                logger.warning(f"Temporal not connected ({TEMPORAL_ADDRESS}): {e}")
    return _client


async def close_temporal_client() -> None:
    global _client
    _client = None


async def get_client() -> Client:
    """Connected client; RuntimeError while Temporal is unreachable."""
    client = _client
    if client is None:
        client = await init_temporal_client()
    if client is None:
        raise RuntimeError("Temporal is not connected, start the Temporal service first")
    return client


async def start_interpreter(instance_id: str, input: Optional[Any] = None) -> str:
    """Start a PausableWorkflow run of instance_id and return its workflow ID.

    Raises:
        InterpreterAlreadyRunning: a run of the same instance is still open
    """
    client = await get_client()
    workflow_id = workflow_id_for(instance_id)
    try:
        await client.start_workflow(
            WORKFLOW_TYPE,
            InterpreterParams(instance_id=instance_id, input=input),
            id=workflow_id,
            task_queue=TASK_QUEUE,
        )
    except WorkflowAlreadyStartedError as exc:
        raise InterpreterAlreadyRunning(instance_id, workflow_id) from exc
    logger.info(f"Instance {instance_id}: started as workflow {workflow_id}")
    return workflow_id


async def get_interpreter_handle(workflow_id: str) -> WorkflowHandle:
    client = await get_client()
    return client.get_workflow_handle(workflow_id)


async def query_paused(workflow_id: str) -> bool:
    handle = await get_interpreter_handle(workflow_id)
    return await handle.query(PAUSED_QUERY, result_type=bool)


async def resume_interpreter(workflow_id: str, payload: Optional[Any]) -> ResumeResponse:
    """Run the resume update; its validator rejects before any state changes."""
    handle = await get_interpreter_handle(workflow_id)
    return await handle.execute_update(RESUME_UPDATE, payload, result_type=ResumeResponse)
