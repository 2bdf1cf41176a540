"""
Custom exceptions for the retry layer.

Two families live here:

- Configuration errors, raised synchronously at the call that violates a
  setup precondition (duplicate policy, frozen options, ...). They are never
  retried.
- ``HttpStatusError``, the failure produced when a response-like result with a
  non-success status code is converted into an exception.

Exceptions raised by the wrapped operation itself are never wrapped: the
engine re-raises them unchanged once it stops retrying.
"""

from http import HTTPStatus
from typing import Any


class HttpResilienceError(Exception):
    """
    Base exception for all errors raised by http_resilience itself.

    Catch this to handle any library-originated error with a single except
    clause.
    """
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(HttpResilienceError):
    """
    Raised when the engine, its policies or its options are set up incorrectly.

    Examples:
    - Registering the same concrete policy twice for one outcome type
    - Calling the untyped ``retry_on_exception`` more than once
    - Passing ``None`` where a handler or policy is required
    - Invalid option values (negative max_retries, min_backoff > max_backoff)
    """
    pass


class OptionsReadOnlyError(ConfigurationError):
    """
    Raised when a frozen ``RetryOptions`` instance is mutated.

    The message names the property that was being changed.
    """
    def __init__(self, property_name: str):
        super().__init__(
            f"RetryOptions is marked as readonly; '{property_name}' cannot be changed.",
            {"property": property_name},
        )
        self.property_name = property_name


class HttpStatusError(HttpResilienceError):
    """
    Raised when a response-like result carries a non-success status code
    and ``ensure_success_status_code`` is enabled.

    Attributes:
        status_code: Status code of the offending response
        reason: Human-readable reason phrase
        response: The response-like object that failed the check
    """
    def __init__(self, status_code: int, reason: str | None = None, response: Any = None):
        self.status_code = status_code
        self.reason = reason or _reason_phrase(status_code)
        self.response = response
        super().__init__(
            f"Response status code does not indicate success: {status_code} ({self.reason}).",
            {"status_code": status_code, "reason": self.reason},
        )


def _reason_phrase(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return "Unknown"
