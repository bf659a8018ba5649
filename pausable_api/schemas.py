"""Pydantic schemas for the interpreter API endpoints."""

from __future__ import annotations

from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field


class StartInterpreterRequest(BaseModel):
    """Request for POST /api/v1/interpreters."""
    instance_id: Optional[str] = Field(
        None,
        min_length=1,
        description="Interpreter instance ID (generated when omitted)",
    )
    input: Optional[Any] = Field(None, description="Opaque run input")


class StartInterpreterResponse(BaseModel):
    workflow_id: str
    instance_id: str
    status: Literal["running"] = "running"


class PausedResponse(BaseModel):
    workflow_id: str
    paused: bool


class ResumeResult(BaseModel):
    message: str


class ErrorSummary(BaseModel):
    type: str
    message: str


class InterpreterResultResponse(BaseModel):
    workflow_id: str
    status: str
    result: Optional[Dict[str, Any]] = None
    error: Optional[ErrorSummary] = None


class ControlResponse(BaseModel):
    workflow_id: str
    status: str
