"""Sensitive data sanitization for error logging and query parameters.

Values are redacted by field name, either matching a default pattern or one
of the configured ``log_config.sensitive_fields``. Nested dicts, lists and
tuples are sanitized recursively up to ``MAX_DEPTH``. Only logged copies are
sanitized; the original data is left untouched.
"""

from __future__ import annotations

import re
from functools import lru_cache
from re import Pattern
from typing import Any, Final

from killboard.core.config import get_settings
from killboard.core.constants import REDACTED

type SanitizableValue = (
    str | int | float | bool | None | dict[str, Any] | list[Any] | tuple[Any, ...]
)

DEFAULT_SENSITIVE_PATTERN: Final[Pattern[str]] = re.compile(
    r"(password|passwd|pwd|secret|token|api[_-]?key|apikey|auth|authorization|"
    r"credential|private[_-]?key|access[_-]?key|session|cookie)",
    re.IGNORECASE,
)

MAX_DEPTH: Final[int] = 10


@lru_cache(maxsize=1)
def _get_sensitive_fields() -> tuple[str, ...]:
    """Get the configured sensitive field names, lower-cased."""
    return tuple(
        field.lower() for field in get_settings().log_config.sensitive_fields
    )


def is_sensitive_field(field_name: str) -> bool:
    """Check if a field name indicates sensitive data.

    Args:
        field_name: The field name to check.

    Returns:
        bool: True if the field appears to contain sensitive data.
    """
    if DEFAULT_SENSITIVE_PATTERN.search(field_name):
        return True

    field_lower = field_name.lower()
    return any(sensitive in field_lower for sensitive in _get_sensitive_fields())


def sanitize_value(
    value: SanitizableValue, field_name: str = "", depth: int = 0
) -> SanitizableValue:
    """Sanitize a value if it appears to be sensitive.

    Args:
        value: The value to potentially sanitize.
        field_name: The field name for context.
        depth: Current recursion depth.

    Returns:
        SanitizableValue: Sanitized value or original if not sensitive.
    """
    if depth > MAX_DEPTH:
        return REDACTED

    if field_name and is_sensitive_field(field_name):
        return REDACTED

    if isinstance(value, dict):
        return {k: sanitize_value(v, k, depth + 1) for k, v in value.items()}

    if isinstance(value, list):
        return [sanitize_value(item, "", depth + 1) for item in value]

    if isinstance(value, tuple):
        return tuple(sanitize_value(item, "", depth + 1) for item in value)

    return value


def sanitize_error_context(
    error: Exception, context: dict[str, Any] | None = None
) -> dict[str, Any]:
    """Build a log-safe context for an exception.

    Merges the exception's own ``context`` (when it carries one) with the
    caller's context, adds the error type and fingerprint, and redacts
    sensitive values.

    Args:
        error: The exception being logged.
        context: Extra request-level context.

    Returns:
        dict[str, Any]: Sanitized context ready to bind to a log record.
    """
    merged: dict[str, Any] = {"error_type": type(error).__name__}

    error_context = getattr(error, "context", None)
    if isinstance(error_context, dict) and error_context:
        merged["error_context"] = error_context

    if fingerprint := getattr(error, "fingerprint", None):
        merged["fingerprint"] = fingerprint

    if cause := getattr(error, "cause", None):
        merged["cause_type"] = type(cause).__name__
        merged["cause_message"] = str(cause)

    if context:
        merged.update(context)

    sanitized = sanitize_value(merged)
    return sanitized if isinstance(sanitized, dict) else {}


def sanitize_sql_params(
    params: dict[str, Any] | list[Any] | tuple[Any, ...] | None,
) -> dict[str, Any] | list[Any] | tuple[Any, ...] | None:
    """Sanitize bound query parameters before they are logged.

    Args:
        params: Named (dict) or positional (list/tuple) parameters.

    Returns:
        The sanitized parameters, or None when there were none.
    """
    if params is None:
        return None

    sanitized = sanitize_value(params)
    if isinstance(sanitized, dict | list | tuple):
        return sanitized
    return None
