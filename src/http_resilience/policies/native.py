"""
Native transport adapter.

Native HTTP libraries (libcurl through pycurl, or wrappers around it) raise
exception classes that cannot be imported without the library installed. This
module recognises them by name instead, from an explicit table of signatures,
and retries the curl error codes that indicate a transient network failure.
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import ClassVar

from http_resilience.policies.base import ExceptionRetryPolicy


class CurlCode(IntEnum):
    """libcurl error codes treated as transient."""

    COULDNT_RESOLVE_PROXY = 5
    COULDNT_RESOLVE_HOST = 6
    COULDNT_CONNECT = 7
    HTTP2 = 16
    PARTIAL_FILE = 18
    WRITE_ERROR = 23
    UPLOAD_FAILED = 25
    READ_ERROR = 26
    OPERATION_TIMEDOUT = 28
    INTERFACE_FAILED = 45
    GOT_NOTHING = 52
    SEND_ERROR = 55
    RECV_ERROR = 56


# libcurl codes are 1..93
MAX_CURL_CODE = 93


@dataclass(frozen=True)
class NativeErrorSignature:
    """
    Identifies a native exception class by module and class name.

    Attributes:
        class_name: ``type(exc).__name__`` to match
        module: Module prefix to match, or None for any module
    """

    class_name: str
    module: str | None = None

    def matches(self, exc: BaseException) -> bool:
        exc_type = type(exc)
        if exc_type.__name__ != self.class_name:
            return False
        return self.module is None or exc_type.__module__.split(".")[0] == self.module


CURL_SIGNATURES: tuple[NativeErrorSignature, ...] = (
    NativeErrorSignature("error", module="pycurl"),
    NativeErrorSignature("CurlError"),
    NativeErrorSignature("CurlException"),
)


def curl_error_code(exc: BaseException) -> int | None:
    """Extract a curl error code from ``exc.code`` or its first argument."""
    code = getattr(exc, "code", None)
    if not isinstance(code, int) and exc.args:
        code = exc.args[0]
    if isinstance(code, int) and not isinstance(code, bool) and 0 < code <= MAX_CURL_CODE:
        return code
    return None


class CurlErrorRetryPolicy(ExceptionRetryPolicy):
    """Retries curl errors carrying a transient ``CurlCode``."""

    exception_type: ClassVar[type[BaseException]] = Exception

    def __init__(self, signatures: tuple[NativeErrorSignature, ...] = CURL_SIGNATURES):
        self.signatures = signatures
        self.retry_codes = frozenset(CurlCode)

    def _should_retry_on_exception(self, exc: Exception) -> bool:
        if not any(signature.matches(exc) for signature in self.signatures):
            return False
        return curl_error_code(exc) in self.retry_codes
