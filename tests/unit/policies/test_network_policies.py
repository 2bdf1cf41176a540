"""
Unit tests for the built-in network policies.

Covers httpx transport errors, socket errno values, TLS I/O signatures,
curl error name sniffing and the is_transient_network_error heuristic.
"""

import errno
import socket
import ssl

import httpx
import pytest

from http_resilience.options import HOST_OFFLINE_HEADER, RetryOptions
from http_resilience.policies.http import HttpResponseRetryPolicy
from http_resilience.policies.native import CurlCode, CurlErrorRetryPolicy, curl_error_code
from http_resilience.policies.network import (
    HttpxErrorRetryPolicy,
    IOErrorRetryPolicy,
    SocketErrorRetryPolicy,
    builtin_policies,
    is_transient_network_error,
)

REQUEST = httpx.Request("GET", "https://example.com")


def _status_error(status_code: int, headers: dict | None = None) -> httpx.HTTPStatusError:
    response = httpx.Response(status_code, headers=headers, request=REQUEST)
    return httpx.HTTPStatusError("status error", request=REQUEST, response=response)


def _wrap(outer: Exception, inner: Exception) -> Exception:
    try:
        try:
            raise inner
        except Exception as e:
            raise outer from e
    except Exception as e:
        return e


# ============================================================================
# HttpResponseRetryPolicy
# ============================================================================


def test_response_policy_uses_options():
    """Test responses are judged by status code and filters."""
    policy = HttpResponseRetryPolicy(RetryOptions())

    assert policy.should_retry(httpx.Response(503)) is True
    assert policy.should_retry(httpx.Response(500)) is False
    assert policy.should_retry(httpx.Response(503, headers={HOST_OFFLINE_HEADER: "1"})) is False


def test_response_policy_ignores_non_responses():
    """Test values without status_code/headers are not evaluated."""
    assert HttpResponseRetryPolicy(RetryOptions()).should_retry("503") is False


# ============================================================================
# HttpxErrorRetryPolicy
# ============================================================================


@pytest.mark.parametrize(
    "exc_type",
    [
        httpx.ConnectError,
        httpx.ConnectTimeout,
        httpx.ReadTimeout,
        httpx.WriteTimeout,
        httpx.PoolTimeout,
        httpx.ReadError,
        httpx.WriteError,
        httpx.RemoteProtocolError,
    ],
)
def test_httpx_transient_errors(exc_type):
    """Test httpx transport failures are retried."""
    policy = HttpxErrorRetryPolicy(RetryOptions())

    assert policy.should_retry(exc_type("boom", request=REQUEST)) is True


@pytest.mark.parametrize(
    "exc",
    [
        httpx.UnsupportedProtocol("ftp", request=REQUEST),
        httpx.LocalProtocolError("bad", request=REQUEST),
        httpx.TooManyRedirects("loop", request=REQUEST),
    ],
)
def test_httpx_permanent_errors(exc):
    """Test non-transient httpx errors are not retried."""
    assert HttpxErrorRetryPolicy(RetryOptions()).should_retry(exc) is False


def test_httpx_status_error_uses_response():
    """Test a status error is retried iff its response is retryable."""
    policy = HttpxErrorRetryPolicy(RetryOptions())

    assert policy.should_retry(_status_error(503)) is True
    assert policy.should_retry(_status_error(500)) is False
    assert policy.should_retry(_status_error(503, {HOST_OFFLINE_HEADER: "1"})) is False


def test_httpx_error_found_in_cause_chain():
    """Test a wrapped httpx error is recognised."""
    wrapped = _wrap(RuntimeError("client failed"), httpx.ConnectError("refused", request=REQUEST))

    assert HttpxErrorRetryPolicy(RetryOptions()).should_retry(wrapped) is True


# ============================================================================
# SocketErrorRetryPolicy
# ============================================================================


@pytest.mark.parametrize(
    "code",
    [
        errno.EINTR,
        errno.ENETDOWN,
        errno.ENETUNREACH,
        errno.ENETRESET,
        errno.ECONNABORTED,
        errno.ECONNRESET,
        errno.ETIMEDOUT,
        errno.EHOSTUNREACH,
        errno.EAGAIN,
    ],
)
def test_socket_transient_errno(code):
    """Test transient errno values are retried."""
    assert SocketErrorRetryPolicy().should_retry(OSError(code, "socket error")) is True


@pytest.mark.parametrize("code", [errno.ECONNREFUSED, errno.EACCES, errno.EADDRINUSE])
def test_socket_permanent_errno(code):
    """Test other errno values are not retried."""
    assert SocketErrorRetryPolicy().should_retry(OSError(code, "socket error")) is False


@pytest.mark.parametrize("exc", [ConnectionResetError(), ConnectionAbortedError(), TimeoutError(), socket.timeout()])
def test_socket_builtin_errors_without_errno(exc):
    """Test builtin connection errors without errno are retried."""
    assert SocketErrorRetryPolicy().should_retry(exc) is True


def test_socket_gaierror_try_again():
    """Test temporary DNS failure is retried, permanent is not."""
    policy = SocketErrorRetryPolicy()

    assert policy.should_retry(socket.gaierror(socket.EAI_AGAIN, "try again")) is True
    assert policy.should_retry(socket.gaierror(socket.EAI_NONAME, "unknown host")) is False


def test_socket_policy_ignores_ssl_errors():
    """Test SSL errors are left to the I/O policy."""
    assert SocketErrorRetryPolicy().should_retry(ssl.SSLError(4, "x509 lookup")) is False


def test_socket_error_in_cause_chain():
    """Test a reset connection wrapped in another error is retried."""
    wrapped = _wrap(ValueError("parse failed"), ConnectionResetError(errno.ECONNRESET, "reset"))

    assert SocketErrorRetryPolicy().should_retry(wrapped) is True


# ============================================================================
# IOErrorRetryPolicy
# ============================================================================


def do_handshake():
    raise ssl.SSLError(1, "handshake failure")


def test_io_ssl_eof_errors():
    """Test unexpected TLS EOF is retried."""
    policy = IOErrorRetryPolicy()

    assert policy.should_retry(ssl.SSLEOFError(8, "EOF")) is True
    assert policy.should_retry(ssl.SSLZeroReturnError(6, "closed")) is True


def test_io_ssl_error_raised_in_handshake():
    """Test an SSL error raised from a do_handshake frame is retried."""
    try:
        do_handshake()
    except ssl.SSLError as e:
        exc = e

    assert IOErrorRetryPolicy().should_retry(exc) is True


def test_io_ssl_error_outside_handshake():
    """Test other SSL errors are not retried."""
    try:
        raise ssl.SSLError(1, "certificate verify failed")
    except ssl.SSLError as e:
        exc = e

    assert IOErrorRetryPolicy().should_retry(exc) is False


@pytest.mark.parametrize(
    "message",
    [
        "Unable to read data from the transport connection: The connection was closed.",
        "EOF occurred in violation of protocol (_ssl.c:2426)",
    ],
)
def test_io_closed_connection_message(message):
    """Test closed-connection messages are retried."""
    assert IOErrorRetryPolicy().should_retry(OSError(message)) is True


def test_io_unrelated_oserror():
    """Test unrelated I/O errors are not retried."""
    assert IOErrorRetryPolicy().should_retry(FileNotFoundError(errno.ENOENT, "missing")) is False


# ============================================================================
# CurlErrorRetryPolicy
# ============================================================================


class CurlError(Exception):
    pass


class CurlException(Exception):
    def __init__(self, message, code):
        super().__init__(message)
        self.code = code


@pytest.mark.parametrize("code", list(CurlCode))
def test_curl_transient_codes(code):
    """Test every transient curl code is retried."""
    assert CurlErrorRetryPolicy().should_retry(CurlError(int(code), "curl failed")) is True


@pytest.mark.parametrize("code", [1, 3, 35, 60, 93])
def test_curl_permanent_codes(code):
    """Test other curl codes are not retried."""
    assert CurlErrorRetryPolicy().should_retry(CurlError(code, "curl failed")) is False


def test_curl_code_attribute():
    """Test the code can come from a 'code' attribute."""
    exc = CurlException("timed out", CurlCode.OPERATION_TIMEDOUT)

    assert curl_error_code(exc) == 28
    assert CurlErrorRetryPolicy().should_retry(exc) is True


@pytest.mark.parametrize("args", [(0,), (94,), ("6",), (True,), ()])
def test_curl_code_out_of_range(args):
    """Test codes outside 1..93 or non-integers are ignored."""
    assert curl_error_code(CurlError(*args)) is None


def test_curl_signature_requires_class_name():
    """Test other exception classes with curl codes are not retried."""
    assert CurlErrorRetryPolicy().should_retry(RuntimeError(7, "couldn't connect")) is False


def test_pycurl_signature_matches_module():
    """Test pycurl.error is recognised by module and class name."""
    pycurl_error = type("error", (Exception,), {"__module__": "pycurl"})
    other_error = type("error", (Exception,), {"__module__": "somewhere"})

    assert CurlErrorRetryPolicy().should_retry(pycurl_error(7, "couldn't connect")) is True
    assert CurlErrorRetryPolicy().should_retry(other_error(7, "couldn't connect")) is False


# ============================================================================
# Built-ins and heuristic
# ============================================================================


def test_builtin_policy_order():
    """Test built-in policies are created in evaluation order."""
    names = [policy.name for policy in builtin_policies(RetryOptions())]

    assert names == [
        "HttpResponseRetryPolicy",
        "HttpxErrorRetryPolicy",
        "SocketErrorRetryPolicy",
        "IOErrorRetryPolicy",
        "CurlErrorRetryPolicy",
    ]


@pytest.mark.parametrize(
    "exc,expected",
    [
        (ConnectionResetError(errno.ECONNRESET, "reset"), True),
        (httpx.ReadTimeout("slow", request=REQUEST), True),
        (ssl.SSLEOFError(8, "EOF"), True),
        (CurlError(6, "couldn't resolve host"), True),
        (ValueError("bad input"), False),
        (None, False),
    ],
)
def test_is_transient_network_error(exc, expected):
    """Test the heuristic combines all built-in exception checks."""
    assert is_transient_network_error(exc) is expected


def test_is_transient_network_error_uses_options():
    """Test status errors are judged with the given options."""
    options = RetryOptions().add_retryable_status_code(500)

    assert is_transient_network_error(_status_error(500)) is False
    assert is_transient_network_error(_status_error(500), options) is True
