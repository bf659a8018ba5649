"""Interpreter API routes.

Start, query, resume, cancel and inspect PausableWorkflow executions.
"""

from __future__ import annotations

from typing import Any, Optional
from uuid import uuid4

from fastapi import APIRouter, Body, HTTPException
from temporalio.client import (
    WorkflowExecutionStatus,
    WorkflowFailureError,
    WorkflowUpdateFailedError,
)
from temporalio.exceptions import ApplicationError
from temporalio.service import RPCError, RPCStatusCode

from pausable.errors import ErrorKind
from pausable.logging_config import get_api_logger

from ..schemas import (
    ControlResponse,
    ErrorSummary,
    InterpreterResultResponse,
    PausedResponse,
    ResumeResult,
    StartInterpreterRequest,
    StartInterpreterResponse,
)
from ..temporal_adapter import (
    InterpreterAlreadyRunning,
    get_interpreter_handle,
    query_paused,
    resume_interpreter,
    start_interpreter,
)

logger = get_api_logger()

router = APIRouter(prefix="/api/v1/interpreters", tags=["interpreters"])

# Resume failure type -> HTTP status
_RESUME_ERROR_STATUS = {
    ErrorKind.PRECONDITION.value: 409,
    ErrorKind.VALIDATION.value: 422,
}

_TERMINAL_STATUS = {
    WorkflowExecutionStatus.COMPLETED: "completed",
    WorkflowExecutionStatus.FAILED: "failed",
    WorkflowExecutionStatus.CANCELED: "canceled",
    WorkflowExecutionStatus.TERMINATED: "terminated",
    WorkflowExecutionStatus.TIMED_OUT: "timed_out",
}


def _not_found_or_unavailable(workflow_id: str, exc: Exception) -> HTTPException:
    if isinstance(exc, RPCError) and exc.status == RPCStatusCode.NOT_FOUND:
        return HTTPException(status_code=404, detail=f"Interpreter '{workflow_id}' not found")
    return HTTPException(status_code=503, detail=f"Temporal unavailable: {exc}")


def _error_summary(exc: BaseException) -> ErrorSummary:
    cause = getattr(exc, "cause", None)
    if isinstance(cause, ApplicationError):
        return ErrorSummary(type=cause.type or "ApplicationError", message=cause.message)
    if cause is not None:
        return ErrorSummary(type=type(cause).__name__, message=str(cause))
    return ErrorSummary(type=type(exc).__name__, message=str(exc))


@router.post("", response_model=StartInterpreterResponse, status_code=201)
async def create_interpreter(payload: StartInterpreterRequest):
    """Start a new interpreter run."""
    instance_id = payload.instance_id or str(uuid4())
    try:
        workflow_id = await start_interpreter(instance_id, payload.input)
    except InterpreterAlreadyRunning as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except Exception as exc:
        logger.error(f"Instance {instance_id}: failed to start: {exc}")
        raise HTTPException(
            status_code=503,
            detail=f"Unable to start interpreter: {exc}",
        ) from exc

    return StartInterpreterResponse(workflow_id=workflow_id, instance_id=instance_id)


@router.get("/{workflow_id}/paused", response_model=PausedResponse)
async def get_paused(workflow_id: str):
    """Whether the interpreter is currently waiting for a resume."""
    try:
        paused = await query_paused(workflow_id)
    except (RPCError, RuntimeError) as exc:
        raise _not_found_or_unavailable(workflow_id, exc) from exc
    return PausedResponse(workflow_id=workflow_id, paused=bool(paused))


@router.post("/{workflow_id}/resume", response_model=ResumeResult)
async def post_resume(workflow_id: str, payload: Optional[Any] = Body(None)):
    """Resume a paused interpreter. The body must be a JSON object.

    The workflow's update validator checks the paused state before the
    payload, so a non-paused instance answers 409 whatever the body is.
    """
    try:
        response = await resume_interpreter(workflow_id, payload)
    except WorkflowUpdateFailedError as exc:
        summary = _error_summary(exc)
        status_code = _RESUME_ERROR_STATUS.get(summary.type, 500)
        logger.warning(f"Interpreter {workflow_id}: resume rejected ({summary.type}): {summary.message}")
        raise HTTPException(
            status_code=status_code,
            detail={"type": summary.type, "message": summary.message},
        ) from exc
    except (RPCError, RuntimeError) as exc:
        raise _not_found_or_unavailable(workflow_id, exc) from exc

    logger.info(f"Interpreter {workflow_id}: resumed")
    return ResumeResult(message=response.message)


@router.get("/{workflow_id}/result", response_model=InterpreterResultResponse)
async def get_result(workflow_id: str):
    """Outcome of the run; status 'running' while it is not terminal."""
    try:
        handle = await get_interpreter_handle(workflow_id)
        description = await handle.describe()
    except (RPCError, RuntimeError) as exc:
        raise _not_found_or_unavailable(workflow_id, exc) from exc

    status = _TERMINAL_STATUS.get(description.status)
    if status is None:
        return InterpreterResultResponse(workflow_id=workflow_id, status="running")

    try:
        result = await handle.result()
    except WorkflowFailureError as exc:
        return InterpreterResultResponse(
            workflow_id=workflow_id, status=status, error=_error_summary(exc)
        )
    return InterpreterResultResponse(workflow_id=workflow_id, status=status, result=result)


@router.post("/{workflow_id}/cancel", response_model=ControlResponse)
async def cancel_interpreter(workflow_id: str):
    """Request cancellation; the run fails with CanceledError at its next suspension point."""
    try:
        handle = await get_interpreter_handle(workflow_id)
        await handle.cancel()
    except (RPCError, RuntimeError) as exc:
        raise _not_found_or_unavailable(workflow_id, exc) from exc
    logger.info(f"Interpreter {workflow_id}: cancellation requested")
    return ControlResponse(workflow_id=workflow_id, status="cancelling")
