# =============================================================================
# Error Handling Types (Result + ScriptRunnerError)
# =============================================================================

from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, TypeVar

from loguru import logger

T = TypeVar("T")


class ErrorType(Enum):
    MANIFEST_NOT_FOUND = "manifest_not_found"
    MANIFEST_MALFORMED = "manifest_malformed"
    SCRIPT_NOT_FOUND = "script_not_found"
    SPAWN_FAILURE = "spawn_failure"
    CLIPBOARD_UNSUPPORTED = "clipboard_unsupported"


@dataclass
class Error:
    error_type: ErrorType
    message: str
    context: dict = field(default_factory=dict)
    original_exception: Exception | None = None


@dataclass
class Result(Generic[T]):
    success: bool
    value: T | None = None
    error: Error | None = None

    @staticmethod
    def ok(value: T) -> "Result[T]":
        return Result(success=True, value=value)

    @staticmethod
    def err(error: Error) -> "Result[T]":
        return Result(success=False, error=error)

    def is_ok(self) -> bool:
        return self.success

    def is_err(self) -> bool:
        return not self.success


class ScriptRunnerError(Exception):
    """Base class for runtime failures that carry a structured Error."""

    error_type: ErrorType = None

    def __init__(self, message: str, context: dict | None = None,
                 original_exception: Exception | None = None):
        super().__init__(message)
        self.error = Error(
            error_type=self.error_type,
            message=message,
            context=context or {},
            original_exception=original_exception,
        )


class ScriptNotFoundError(ScriptRunnerError):
    error_type = ErrorType.SCRIPT_NOT_FOUND


class SpawnError(ScriptRunnerError):
    error_type = ErrorType.SPAWN_FAILURE


class ClipboardError(ScriptRunnerError):
    error_type = ErrorType.CLIPBOARD_UNSUPPORTED


@dataclass
class ErrorReport:
    errors: list[Error] = field(default_factory=list)
    warnings: list[Error] = field(default_factory=list)

    def add_error(self, error: Error):
        self.errors.append(error)
        logger.error(
            error.message,
            operation="error_report",
            status="error",
            error_type=error.error_type.value,
            **error.context
        )

    def add_warning(self, error: Error):
        self.warnings.append(error)
        logger.warning(
            error.message,
            operation="error_report",
            status="warning",
            error_type=error.error_type.value,
            **error.context
        )

    def collect_result(self, result: Result) -> bool:
        """Collect error from Result into report if failed."""
        if result.is_err():
            self.add_error(result.error)
            return False
        return True

    def has_errors(self) -> bool:
        return len(self.errors) > 0

    def log_summary(self, op_trace_id: str):
        """Log the error/warning totals for one CLI invocation."""
        logger.info(
            "Startup checks complete",
            operation="error_report",
            status="failed" if self.has_errors() else "complete",
            trace_id=op_trace_id,
            metrics={
                "total_errors": len(self.errors),
                "total_warnings": len(self.warnings)
            }
        )
