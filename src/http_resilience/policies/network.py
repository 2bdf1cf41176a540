"""
Built-in policies for transient network failures.

These are registered by every new ``RetryEngine`` so that connection
refused/reset/timeout, DNS failures and dropped TLS connections are retried
without any configuration. Each one walks the exception cause chain, so a
transient error wrapped by a higher-level exception is still recognised.
"""

import errno
import socket
import ssl
import traceback
from typing import ClassVar

import httpx

from http_resilience.options import RetryOptions
from http_resilience.policies.base import ExceptionRetryPolicy, RetryPolicy
from http_resilience.policies.http import HttpResponseRetryPolicy
from http_resilience.policies.native import CurlErrorRetryPolicy

TRANSIENT_HTTPX_ERRORS: tuple[type[httpx.HTTPError], ...] = (
    httpx.ConnectError,
    httpx.ConnectTimeout,
    httpx.ReadTimeout,
    httpx.WriteTimeout,
    httpx.PoolTimeout,
    httpx.ReadError,
    httpx.WriteError,
    httpx.RemoteProtocolError,
)

TRANSIENT_ERRNOS: frozenset[int] = frozenset(
    getattr(errno, name)
    for name in (
        "EINTR",
        "ENETDOWN",
        "ENETUNREACH",
        "ENETRESET",
        "ECONNABORTED",
        "ECONNRESET",
        "ETIMEDOUT",
        "EHOSTDOWN",
        "EHOSTUNREACH",
        "EAGAIN",
    )
    if hasattr(errno, name)
)

# Frame names that mark an SSL error as raised during the TLS handshake
HANDSHAKE_FRAMES: frozenset[str] = frozenset({"do_handshake"})

CLOSED_CONNECTION_MESSAGES: tuple[str, ...] = (
    "connection was closed",
    "eof occurred in violation of protocol",
)


class HttpxErrorRetryPolicy(ExceptionRetryPolicy):
    """
    Retries httpx transport errors and retryable ``HTTPStatusError``s.

    A status error carries its response, which is judged by the options
    exactly like a returned response (status code plus filters).
    """

    exception_type: ClassVar[type[BaseException]] = httpx.HTTPError

    def __init__(self, options: RetryOptions):
        self.options = options

    def _should_retry_on_exception(self, exc: httpx.HTTPError) -> bool:
        if isinstance(exc, httpx.HTTPStatusError):
            return self.options.is_retryable(exc.response)
        return isinstance(exc, TRANSIENT_HTTPX_ERRORS)


class SocketErrorRetryPolicy(ExceptionRetryPolicy):
    """Retries socket-level errors whose errno indicates a transient condition."""

    exception_type: ClassVar[type[BaseException]] = OSError

    def _should_retry_on_exception(self, exc: OSError) -> bool:
        if isinstance(exc, ssl.SSLError):
            return False  # errno holds an SSL error code here
        if isinstance(exc, socket.gaierror):
            return exc.errno == getattr(socket, "EAI_AGAIN", None)
        if exc.errno is not None:
            return exc.errno in TRANSIENT_ERRNOS
        return isinstance(exc, (ConnectionResetError, ConnectionAbortedError, TimeoutError))


class IOErrorRetryPolicy(ExceptionRetryPolicy):
    """
    Retries I/O errors from a TLS connection that dropped mid-flight.

    Recognised signatures:
        - ``ssl.SSLEOFError`` and ``ssl.SSLZeroReturnError``
        - any ``ssl.SSLError`` raised from a ``do_handshake`` frame
        - an ``OSError`` whose message reports the connection was closed
    """

    exception_type: ClassVar[type[BaseException]] = OSError

    def _should_retry_on_exception(self, exc: OSError) -> bool:
        if isinstance(exc, (ssl.SSLEOFError, ssl.SSLZeroReturnError)):
            return True
        if isinstance(exc, ssl.SSLError) and _raised_in(exc, HANDSHAKE_FRAMES):
            return True
        message = str(exc).lower()
        return any(text in message for text in CLOSED_CONNECTION_MESSAGES)


def _raised_in(exc: BaseException, frame_names: frozenset[str]) -> bool:
    return any(frame.name in frame_names for frame in traceback.extract_tb(exc.__traceback__))


def builtin_policies(options: RetryOptions) -> list[RetryPolicy]:
    """Policies registered by every new engine, in evaluation order."""
    return [
        HttpResponseRetryPolicy(options),
        HttpxErrorRetryPolicy(options),
        SocketErrorRetryPolicy(),
        IOErrorRetryPolicy(),
        CurlErrorRetryPolicy(),
    ]


def is_transient_network_error(exc: BaseException, options: RetryOptions | None = None) -> bool:
    """
    Heuristic used to determine whether an exception is a transient network
    failure that should be retried.

    Applies the built-in exception policies to ``exc`` and its causes.

    Args:
        exc: Exception to classify
        options: Options used to judge responses attached to httpx status
            errors (defaults to ``RetryOptions.default()``)
    """
    if exc is None:
        return False
    options = options or RetryOptions.default()
    policies = [p for p in builtin_policies(options) if isinstance(p, ExceptionRetryPolicy)]
    return any(policy.should_retry(exc) for policy in policies)
