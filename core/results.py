"""
Uniform result shape returned by every orchestrator operation.
"""

from dataclasses import dataclass
from enum import Enum
from functools import wraps
from typing import Any, Callable, Dict, Generic, Optional, TypeVar

from core.exceptions import (
    ArtifactNotFoundError,
    UserAlreadyExistsError,
    UserNotFoundError,
    ValidationError
)
from core.process_manager import CommandResult, FailureKind

T = TypeVar('T')


class ErrorKind(Enum):
    INVALID_INPUT = "invalid_input"
    AUTH_REQUIRED = "auth_required"
    NOT_FOUND = "not_found"
    ALREADY_EXISTS = "already_exists"
    TIMEOUT = "timeout"
    EXTERNAL_TOOL_FAILURE = "external_tool_failure"
    PARTIAL_SUCCESS = "partial_success"
    INTERNAL_ERROR = "internal_error"


AUTH_REQUIRED_MESSAGE = (
    "Sudo password required. Please configure passwordless sudo for the "
    "VPN management commands."
)


@dataclass
class OperationResult(Generic[T]):
    success: bool
    data: Optional[T] = None
    error_kind: Optional[ErrorKind] = None
    message: Optional[str] = None

    @classmethod
    def ok(cls, data: Optional[T] = None, message: Optional[str] = None) -> 'OperationResult[T]':
        return cls(success=True, data=data, message=message)

    @classmethod
    def fail(cls, kind: ErrorKind, message: str, data: Optional[T] = None) -> 'OperationResult[T]':
        return cls(success=False, data=data, error_kind=kind, message=message)

    @classmethod
    def from_command(cls, result: CommandResult, fallback: str) -> 'OperationResult[T]':
        """Translate a failed CommandResult into a failure result."""
        kind = _FAILURE_KINDS.get(result.failure_kind, ErrorKind.EXTERNAL_TOOL_FAILURE)
        if kind is ErrorKind.AUTH_REQUIRED:
            return cls.fail(kind, AUTH_REQUIRED_MESSAGE)
        return cls.fail(kind, result.error_text() or fallback)

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"success": self.success}
        if self.message:
            body["message"] = self.message
        if self.error_kind is not None:
            body["error"] = self.error_kind.value
        return body


_FAILURE_KINDS = {
    FailureKind.TIMEOUT: ErrorKind.TIMEOUT,
    FailureKind.AUTH_REQUIRED: ErrorKind.AUTH_REQUIRED,
    FailureKind.COMMAND_NOT_FOUND: ErrorKind.EXTERNAL_TOOL_FAILURE,
    FailureKind.NON_ZERO_EXIT: ErrorKind.EXTERNAL_TOOL_FAILURE,
}


def guarded(operation: str) -> Callable[[Callable[..., OperationResult]], Callable[..., OperationResult]]:
    """Convert anything a method raises into a failure OperationResult.

    The decorated method's instance must expose ``logger``.
    """
    def decorator(func: Callable[..., OperationResult]) -> Callable[..., OperationResult]:
        @wraps(func)
        def wrapper(self, *args, **kwargs) -> OperationResult:
            try:
                return func(self, *args, **kwargs)
            except ValidationError as e:
                return OperationResult.fail(ErrorKind.INVALID_INPUT, str(e))
            except UserAlreadyExistsError as e:
                return OperationResult.fail(ErrorKind.ALREADY_EXISTS, str(e))
            except (UserNotFoundError, ArtifactNotFoundError) as e:
                return OperationResult.fail(ErrorKind.NOT_FOUND, str(e))
            except Exception as e:
                self.logger.exception("Operation failed unexpectedly", operation=operation, error=str(e))
                return OperationResult.fail(ErrorKind.INTERNAL_ERROR, f"Failed to {operation}")
        return wrapper
    return decorator
