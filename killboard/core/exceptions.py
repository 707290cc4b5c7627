"""Structured exception hierarchy for consistent error handling.

Key components:
- **ErrorCode enum**: Standardized error identifiers for programmatic handling
- **Severity enum**: Error classification for monitoring and alerting
- **KillboardError**: Base exception with context, cause and fingerprinting
- **Specialized exceptions**: validation, lookup miss, upstream failure and
  closed-stream errors

Validation failures and lookup misses are expected outcomes (LOW severity);
they are translated to fixed HTTP responses and never logged as failures.
Upstream failures keep their original cause for operators while clients only
ever see a generic message.
"""

import hashlib
import traceback
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Any


class ErrorCode(Enum):
    """Standardized error codes for the Killboard application."""

    INTERNAL_ERROR = "INTERNAL_ERROR"
    """An unexpected internal error occurred in the system."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    """Request input failed schema validation."""

    NOT_FOUND = "NOT_FOUND"
    """The requested resource could not be found."""

    UPSTREAM_ERROR = "UPSTREAM_ERROR"
    """The store or transport failed while serving the request."""

    STREAM_CLOSED = "STREAM_CLOSED"
    """An operation was attempted on an event stream that is already closed."""


class Severity(Enum):
    """Severity levels used for logging and alerting decisions."""

    LOW = "LOW"
    """Expected outcomes caused by client input."""

    MEDIUM = "MEDIUM"
    """Errors that may affect some features but not critical operations."""

    HIGH = "HIGH"
    """Errors impacting critical functionality, such as store outages."""

    CRITICAL = "CRITICAL"
    """Unexpected failures requiring immediate attention."""


@dataclass(frozen=True, slots=True)
class FieldError:
    """One invalid input field and a human readable explanation."""

    field: str
    message: str

    def to_dict(self) -> dict[str, str]:
        """Return the error as a JSON-ready mapping."""
        return {"field": self.field, "message": self.message}


class KillboardError(Exception):
    """Base exception class for all Killboard application exceptions.

    Args:
        error_code: Unique identifier for the error type (string or ErrorCode enum)
        message: Human-readable error message
        severity: Severity level of the error (defaults to MEDIUM)
        context: Additional context information about the error
        cause: The original exception that caused this error
    """

    def __init__(
        self,
        error_code: str | ErrorCode,
        message: str,
        severity: Severity = Severity.MEDIUM,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        self.error_code = (
            error_code.value if isinstance(error_code, ErrorCode) else error_code
        )
        self.message = message
        self.severity = severity
        self.context = context or {}
        self.cause = cause

        # Capture stack trace at creation time, excluding this frame
        self.stack_trace = traceback.format_stack()[:-1]
        self.fingerprint = self._generate_fingerprint()

        super().__init__(message)
        if cause:
            self.__cause__ = cause

    def _generate_fingerprint(self) -> str:
        """Generate a fingerprint grouping errors by type and raise location.

        Returns:
            str: A 16 character hash.
        """
        max_frames = 5
        relevant_frames = self.stack_trace[-max_frames:]

        fingerprint_data = f"{self.__class__.__name__}:{self.error_code}"
        for frame in relevant_frames:
            if "site-packages" not in frame and "killboard/" in frame:
                lines = frame.strip().split("\n")
                if lines:
                    fingerprint_data += f":{lines[0]}"

        return hashlib.sha256(fingerprint_data.encode()).hexdigest()[:16]

    @property
    def is_expected(self) -> bool:
        """Whether this error occurs during normal operation (LOW or MEDIUM)."""
        return self.severity in (Severity.LOW, Severity.MEDIUM)

    @property
    def should_alert(self) -> bool:
        """Whether this error should trigger alerts (HIGH or CRITICAL)."""
        return self.severity in (Severity.HIGH, Severity.CRITICAL)

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        class_name = self.__class__.__name__
        context_str = f", context={self.context}" if self.context else ""
        return (
            f"{class_name}(error_code='{self.error_code}', "
            f"message='{self.message}', severity={self.severity.value}{context_str})"
        )


class ValidationError(KillboardError):
    """Raised when request input does not satisfy its schema.

    Carries every invalid field at once so a single response can report all
    of them.

    Args:
        errors: The field errors collected by the validation gateway
        message: Summary message returned to the client
        context: Additional context information about the error
    """

    def __init__(
        self,
        errors: Iterable[FieldError],
        message: str = "Validation Failed",
        context: dict[str, Any] | None = None,
    ) -> None:
        self.errors = tuple(errors)
        super().__init__(
            ErrorCode.VALIDATION_ERROR,
            message,
            Severity.LOW,
            {**(context or {}), "fields": [error.field for error in self.errors]},
        )


class NotFoundError(KillboardError):
    """Raised when a single-key lookup returns no row.

    The message is always ``"<resource> not found"``.

    Args:
        resource: Human readable resource name, e.g. ``"Region"``
        context: Additional context information about the error
    """

    def __init__(self, resource: str, context: dict[str, Any] | None = None) -> None:
        self.resource = resource
        super().__init__(
            ErrorCode.NOT_FOUND, f"{resource} not found", Severity.LOW, context
        )


class UpstreamError(KillboardError):
    """Raised when the store or transport fails.

    The cause is kept for operator diagnostics and never sent to clients.

    Args:
        message: Operator-facing description of the failure
        context: Additional context information about the error
        cause: The original exception raised by the collaborator
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(ErrorCode.UPSTREAM_ERROR, message, Severity.HIGH, context, cause)


class StreamStateError(KillboardError):
    """Raised for an operation on a closed event stream.

    The streaming layer logs and suppresses it; it never reaches a handler.

    Args:
        operation: The attempted operation, e.g. ``"push"``
        stream_id: The stream the operation targeted
    """

    def __init__(self, operation: str, stream_id: str) -> None:
        self.operation = operation
        self.stream_id = stream_id
        super().__init__(
            ErrorCode.STREAM_CLOSED,
            f"Cannot {operation} on closed stream {stream_id}",
            Severity.LOW,
            {"operation": operation, "stream_id": stream_id},
        )
