"""Error types and classification utilities for repository-backed operations."""

from enum import Enum
from typing import Literal

from pydantic import BaseModel


class StoreUnavailableError(RuntimeError):
    """Raised when a repository backend cannot complete a read or write."""


class ErrorCategory(Enum):
    """Categories of errors surfaced to callers."""

    STORE_UNAVAILABLE = "store_unavailable"
    NETWORK_ERROR = "network_error"
    PERMISSION_DENIED = "permission_denied"
    NOT_FOUND = "not_found"
    INVALID_INPUT = "invalid_input"
    UNKNOWN = "unknown"


class ErrorSeverity(Enum):
    """Severity levels for errors."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCode:
    """Error codes for specific error conditions."""

    ERR_STORE_UNAVAILABLE = "ERR_STORE_UNAVAILABLE"
    ERR_NETWORK_ERROR = "ERR_NETWORK_ERROR"
    ERR_PERMISSION_DENIED = "ERR_PERMISSION_DENIED"
    ERR_NOT_FOUND = "ERR_NOT_FOUND"
    ERR_INVALID_INPUT = "ERR_INVALID_INPUT"
    ERR_UNKNOWN = "ERR_UNKNOWN"


class ErrorResponse(BaseModel):
    """Structured error response with user-friendly messaging."""

    code: str
    category: ErrorCategory
    message: str
    suggestion: str
    severity: ErrorSeverity


_ERROR_PATTERNS: dict[Literal["store", "network"], dict[str, list[str] | set[str]]] = {
    "store": {
        "phrases": [
            "database is locked",
            "unable to open database",
            "disk i/o error",
            "readonly database",
        ],
        "exception_types": {"StoreUnavailableError", "OperationalError"},
    },
    "network": {
        "phrases": [
            "connection",
            "timeout",
            "unreachable",
        ],
        "exception_types": {"ConnectionError", "TimeoutError", "RedisConnectionError"},
    },
}


def _match_error_pattern(*, error_str: str, exception_type: str, pattern_type: Literal["store", "network"]) -> bool:
    """Return True if the error matches the configured pattern type."""
    patterns = _ERROR_PATTERNS[pattern_type]
    return any(phrase in error_str for phrase in patterns["phrases"]) or exception_type in patterns["exception_types"]


def classify_error_with_response(exception: Exception) -> ErrorResponse:
    """Classify an error and return a structured response with recovery suggestions.

    Args:
        exception: The exception raised during execution

    Returns:
        ErrorResponse with code, category, message, suggestion, and severity
    """
    error_str = str(exception).lower()
    exception_type = type(exception).__name__

    if _match_error_pattern(error_str=error_str, exception_type=exception_type, pattern_type="store"):
        return ErrorResponse(
            code=ErrorCode.ERR_STORE_UNAVAILABLE,
            category=ErrorCategory.STORE_UNAVAILABLE,
            message="The task store is not available right now.",
            suggestion="Please try again in a moment.",
            severity=ErrorSeverity.HIGH,
        )

    if isinstance(exception, PermissionError):
        return ErrorResponse(
            code=ErrorCode.ERR_PERMISSION_DENIED,
            category=ErrorCategory.PERMISSION_DENIED,
            message="You don't have permission for this action.",
            suggestion="Ask an administrator to make this change.",
            severity=ErrorSeverity.MEDIUM,
        )

    if isinstance(exception, KeyError):
        return ErrorResponse(
            code=ErrorCode.ERR_NOT_FOUND,
            category=ErrorCategory.NOT_FOUND,
            message="The requested record was not found.",
            suggestion="Refresh the list and try again.",
            severity=ErrorSeverity.LOW,
        )

    if isinstance(exception, ValueError):
        return ErrorResponse(
            code=ErrorCode.ERR_INVALID_INPUT,
            category=ErrorCategory.INVALID_INPUT,
            message=str(exception) or "Invalid input.",
            suggestion="Check the submitted values and try again.",
            severity=ErrorSeverity.LOW,
        )

    if _match_error_pattern(error_str=error_str, exception_type=exception_type, pattern_type="network"):
        return ErrorResponse(
            code=ErrorCode.ERR_NETWORK_ERROR,
            category=ErrorCategory.NETWORK_ERROR,
            message="Network error occurred.",
            suggestion="Please check your connection and try again.",
            severity=ErrorSeverity.MEDIUM,
        )

    return ErrorResponse(
        code=ErrorCode.ERR_UNKNOWN,
        category=ErrorCategory.UNKNOWN,
        message="An unexpected error occurred.",
        suggestion="Please try again later.",
        severity=ErrorSeverity.MEDIUM,
    )
