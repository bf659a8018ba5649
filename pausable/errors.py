"""Interpreter error taxonomy.

Every error the interpreter raises on purpose derives from InterpreterError
and carries an ErrorKind, which is what lifecycle notifications and API
responses report.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    VALIDATION = "ValidationError"
    PRECONDITION = "PreconditionError"
    TIMEOUT = "TimeoutError"
    CANCELED = "CanceledError"
    DEFINITION_UNAVAILABLE = "DefinitionUnavailableError"
    BLOCK_EXECUTION = "BlockExecutionError"
    INTERNAL = "InternalError"


class InterpreterError(Exception):
    """Base class for interpreter errors."""

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(self, message: str, instance_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.instance_id = instance_id


class ValidationError(InterpreterError):
    """Resume payload does not satisfy the resume contract."""

    kind = ErrorKind.VALIDATION


class PreconditionError(InterpreterError):
    """Resume requested while the instance is not paused."""

    kind = ErrorKind.PRECONDITION


class InterpreterTimeoutError(InterpreterError):
    kind = ErrorKind.TIMEOUT


class PausedTooLongError(InterpreterTimeoutError):
    """No resume arrived within the pause wait budget. Fatal to the run."""


class CanceledError(InterpreterError):
    kind = ErrorKind.CANCELED


class RemoteStepError(InterpreterError):
    """A remote step failed after the adapter's retry policy was exhausted."""


class DefinitionUnavailableError(RemoteStepError):
    kind = ErrorKind.DEFINITION_UNAVAILABLE


class BlockExecutionError(RemoteStepError):
    kind = ErrorKind.BLOCK_EXECUTION

    def __init__(
        self,
        message: str,
        instance_id: Optional[str] = None,
        block_id: Optional[int] = None,
    ) -> None:
        super().__init__(message, instance_id)
        self.block_id = block_id
