"""Data types shared by the interpreter, its host engines and the API.

These are plain dataclasses so the Temporal data converter can carry them
as workflow/activity arguments and results.
"""

from __future__ import annotations

import asyncio
import traceback
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional

from .errors import ErrorKind, InterpreterError


@dataclass
class InterpreterParams:
    """Parameters of one interpreter run."""
    instance_id: str
    input: Optional[Any] = None


@dataclass
class WorkflowDefinition:
    """Ordered blocks plus the subset of them that pause the run."""
    definition: Dict[str, Any] = field(default_factory=dict)
    blocks: List[int] = field(default_factory=list)
    pauses: List[int] = field(default_factory=list)

    @property
    def pause_points(self) -> FrozenSet[int]:
        return frozenset(self.pauses)


@dataclass
class ResumeResponse:
    message: str = "resumed"


@dataclass
class ErrorDetail:
    """JSON serializable summary of an exception."""
    type: str
    kind: str
    message: str
    stack_trace: str = ""

    @property
    def is_canceled(self) -> bool:
        return self.kind == ErrorKind.CANCELED.value

    @classmethod
    def from_exception(cls, exc: Optional[BaseException]) -> Optional["ErrorDetail"]:
        """Build an ErrorDetail from an exception, or None when there is none."""
        if exc is None:
            return None

        if isinstance(exc, InterpreterError):
            kind = exc.kind
        elif isinstance(exc, asyncio.CancelledError):
            kind = ErrorKind.CANCELED
        else:
            kind = ErrorKind.INTERNAL

        return cls(
            type=type(exc).__name__,
            kind=kind.value,
            message=str(exc) or type(exc).__name__,
            stack_trace="".join(
                traceback.format_exception(type(exc), exc, exc.__traceback__)
            ),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "kind": self.kind,
            "message": self.message,
            "stack_trace": self.stack_trace,
        }


@dataclass
class RunResult:
    """Outcome of a terminal run: success(value) or failure(error)."""
    ok: bool
    value: Optional[Dict[str, Any]] = None
    error: Optional[ErrorDetail] = None

    @classmethod
    def success(cls, value: Optional[Dict[str, Any]]) -> "RunResult":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: ErrorDetail) -> "RunResult":
        return cls(ok=False, error=error)


# ---------------------------------------------------------------------------
# Activity inputs (one dataclass per webhook activity)
# ---------------------------------------------------------------------------


@dataclass
class ExecutionStartedInput:
    instance_id: str
    started_at: str


@dataclass
class ExecutionPausedInput:
    instance_id: str
    paused_at: str
    payload: Optional[Any] = None


@dataclass
class ExecutionResumedInput:
    instance_id: str
    resumed_at: str
    payload: Optional[Any] = None


@dataclass
class ExecutionEndedInput:
    instance_id: str
    ended_at: str
    result: Optional[Dict[str, Any]] = None
    error: Optional[ErrorDetail] = None
