"""
Client-side retry orchestration for outbound network calls.

Wraps a caller-supplied operation (canonically an HTTP request) and
re-executes it when its outcome, a raised exception or a returned result
such as a 503 response, is judged transient.

Main Components:
    - RetryEngine: Attempt loop with sync and async entry points
    - RetryOptions: Attempt limit, backoff bounds, retryable status codes
    - policies: Pluggable retry decisions (built-in network policies included)
    - get_exponential_backoff: Jittered exponential backoff calculator

Usage:
    >>> from http_resilience import RetryEngine
    >>> engine = RetryEngine(max_retries=3)
    >>> response = await engine.invoke_async(lambda: client.get(url))
"""

from http_resilience.backoff import get_exponential_backoff, get_random_backoff
from http_resilience.engine import RetryEngine
from http_resilience.exceptions import (
    ConfigurationError,
    HttpResilienceError,
    HttpStatusError,
    OptionsReadOnlyError,
)
from http_resilience.log import LogLevel, Logger, set_logger
from http_resilience.options import EvaluationLoggingOptions, RetryOptions

__version__ = "0.1.0"

__all__ = [
    "RetryEngine",
    "RetryOptions",
    "EvaluationLoggingOptions",
    "get_exponential_backoff",
    "get_random_backoff",
    "HttpResilienceError",
    "ConfigurationError",
    "OptionsReadOnlyError",
    "HttpStatusError",
    "Logger",
    "LogLevel",
    "set_logger",
]
