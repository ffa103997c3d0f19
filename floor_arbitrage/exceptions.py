"""
Exception hierarchy for the floor arbitrage system.

Every failure that leaves the request layer is normalized into a
ReservoirError subclass so callers can branch on the error kind, its
retryability and its severity instead of parsing transport exceptions.
"""

import asyncio
import json
from typing import Any, Dict, Mapping, Optional

import aiohttp

from .constants import (
    DEFAULT_RETRY_AFTER_MS,
    ErrorCode,
    ErrorSeverity,
)


class FloorArbitrageError(Exception):
    """Base exception for all floor arbitrage related errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.details = details or {}


class ConfigurationError(FloorArbitrageError):
    """Raised when there are configuration-related issues."""

    pass


class ReservoirError(FloorArbitrageError):
    """Base class for normalized marketplace API failures."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.UNKNOWN_ERROR,
        details: Optional[Dict[str, Any]] = None,
        retryable: bool = False,
        severity: ErrorSeverity = ErrorSeverity.HIGH,
        status: Optional[int] = None,
    ):
        super().__init__(message, details)
        self.message = message
        self.code = code
        self.retryable = retryable
        self.severity = severity
        self.status = status

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": type(self).__name__,
            "message": self.message,
            "code": self.code.value,
            "retryable": self.retryable,
            "severity": self.severity.value,
            "status": self.status,
            "details": dict(self.details),
        }

    def __str__(self) -> str:
        return f"{self.message} ({self.code.value})"


class RateLimitError(ReservoirError):
    """Raised when the remote API or the local limiter throttles a request."""

    def __init__(
        self,
        retry_after_ms: Optional[int] = DEFAULT_RETRY_AFTER_MS,
        message: str = "Rate limit exceeded",
        details: Optional[Dict[str, Any]] = None,
    ):
        merged = {"retry_after_ms": retry_after_ms}
        merged.update(details or {})
        super().__init__(
            message,
            code=ErrorCode.RATE_LIMIT,
            details=merged,
            retryable=True,
            severity=ErrorSeverity.WARNING,
            status=429,
        )
        self.retry_after_ms = retry_after_ms


class AuthenticationError(ReservoirError):
    """Raised when the API key is missing or rejected."""

    def __init__(
        self,
        message: str = "Invalid API key",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message,
            code=ErrorCode.API_KEY_INVALID,
            details=details,
            retryable=False,
            severity=ErrorSeverity.CRITICAL,
            status=401,
        )


class ValidationError(ReservoirError):
    """Raised when a request parameter or a response body is malformed."""

    def __init__(
        self,
        field: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message,
            code=ErrorCode.VALIDATION_ERROR,
            details=details,
            retryable=False,
            severity=ErrorSeverity.CRITICAL,
            status=400,
        )
        self.field = field


class RequestTimeoutError(ReservoirError):
    """Raised when an outbound call exceeds its hard timeout."""

    def __init__(
        self,
        message: str = "Request timed out",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message,
            code=ErrorCode.TIMEOUT,
            details=details,
            retryable=False,
            severity=ErrorSeverity.CRITICAL,
        )


class NetworkError(ReservoirError):
    """Raised for transport-level failures (DNS, refused connection, reset)."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            f"Network error: {message}",
            code=ErrorCode.NETWORK_ERROR,
            details=details,
            retryable=False,
            severity=ErrorSeverity.CRITICAL,
        )


class HttpError(ReservoirError):
    """Generic non-2xx response that has no more specific mapping."""

    def __init__(
        self,
        status: int,
        message: Optional[str] = None,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        code = (
            ErrorCode.SERVICE_UNAVAILABLE if status == 503 else ErrorCode.HTTP_ERROR
        )
        super().__init__(
            message or f"HTTP error! status: {status}",
            code=code,
            details=details,
            retryable=False,
            severity=ErrorSeverity.HIGH if status >= 500 else ErrorSeverity.MEDIUM,
            status=status,
        )
        self.error_code = error_code or "UNKNOWN_ERROR"

    @property
    def is_server_error(self) -> bool:
        return self.status >= 500


class UnknownReservoirError(ReservoirError):
    """Fallback for failures that match no other category."""

    def __init__(
        self,
        message: str = "Unknown error",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message,
            code=ErrorCode.UNKNOWN_ERROR,
            details=details,
            retryable=False,
            severity=ErrorSeverity.MEDIUM,
        )


class OrderError(ReservoirError):
    """Raised when an execution call is rejected for a specific order."""

    def __init__(
        self,
        message: str,
        order_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message,
            code=ErrorCode.ORDER_ERROR,
            details=details,
            retryable=False,
            severity=ErrorSeverity.CRITICAL,
        )
        self.order_id = order_id


class CircuitOpenError(ReservoirError):
    """Raised without calling downstream while a circuit is open."""

    def __init__(self, name: str, retry_in_seconds: float = 0.0):
        super().__init__(
            f"Circuit '{name}' is open",
            code=ErrorCode.CIRCUIT_OPEN,
            details={"circuit": name, "retry_in_seconds": retry_in_seconds},
            retryable=False,
            severity=ErrorSeverity.WARNING,
            status=503,
        )
        self.name = name
        self.retry_in_seconds = retry_in_seconds


def parse_retry_after(value: Optional[str]) -> Optional[int]:
    """Convert a Retry-After header (seconds) to milliseconds, or None without a usable hint."""
    if value is None:
        return None
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        return None
    if seconds < 0:
        return None
    return int(seconds * 1000)


def classify_http_status(
    status: int,
    headers: Optional[Mapping[str, str]] = None,
    body: Any = None,
) -> ReservoirError:
    """Map a non-2xx HTTP response to the error taxonomy."""
    headers = headers or {}
    message = None
    error_code = None
    details: Dict[str, Any] = {"status": status}
    if isinstance(body, dict):
        message = body.get("message")
        error_code = body.get("code")
        if isinstance(body.get("details"), dict):
            details.update(body["details"])

    if status == 401:
        return AuthenticationError(message or "Invalid API key", details=details)
    if status == 429:
        return RateLimitError(parse_retry_after(headers.get("Retry-After")), details=details)
    return HttpError(status, message=message, error_code=error_code, details=details)


def normalize_error(error: BaseException) -> ReservoirError:
    """Convert any raised exception into a ReservoirError."""
    if isinstance(error, ReservoirError):
        return error
    if isinstance(error, asyncio.TimeoutError):
        return RequestTimeoutError(details={"cause": type(error).__name__})
    if isinstance(error, aiohttp.ContentTypeError):
        return ValidationError("response", f"Invalid response content type: {error.message}")
    if isinstance(error, aiohttp.ClientResponseError):
        return classify_http_status(error.status, error.headers)
    if isinstance(error, aiohttp.ClientError):
        return NetworkError(str(error) or type(error).__name__)
    if isinstance(error, json.JSONDecodeError):
        return ValidationError("response", f"Invalid JSON response: {error.msg}")
    return UnknownReservoirError(str(error) or type(error).__name__)
