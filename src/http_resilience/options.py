"""
Retry options.

``RetryOptions`` holds the attempt limit, backoff bounds, retryable status
codes and response filters used by the engine. It is mutable until
``freeze()`` is called; afterwards every setter raises
``OptionsReadOnlyError`` naming the property.

Usage:
    >>> options = RetryOptions()
    >>> options.max_retries = 3
    >>> options.add_retryable_status_code(429)
    >>> options.freeze()
"""

import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import timedelta
from typing import TYPE_CHECKING

from http_resilience.exceptions import ConfigurationError, OptionsReadOnlyError
from http_resilience.response import ResponseLike, iter_headers

if TYPE_CHECKING:
    from http_resilience.config import Settings


Headers = list[tuple[str, list[str]]]

# Returns True to veto a retry even though the status code is retryable.
ResponseFilter = Callable[[int, Headers], bool]

HOST_OFFLINE_HEADER = "X-VSS-HostOfflineError"

DEFAULT_MAX_RETRIES = 5
DEFAULT_MIN_BACKOFF = timedelta(seconds=1)
DEFAULT_MAX_BACKOFF = timedelta(seconds=10)
DEFAULT_BACKOFF_COEFFICIENT = timedelta(seconds=1)
DEFAULT_RETRYABLE_STATUS_CODES = frozenset({502, 503, 504})


def host_offline_filter(status_code: int, headers: Headers) -> bool:
    """Veto retries when the server says the host is permanently offline."""
    target = HOST_OFFLINE_HEADER.lower()
    return any(name.lower() == target for name, _ in headers)


@dataclass(frozen=True)
class EvaluationLoggingOptions:
    """
    Check marks used when logging policy evaluation.

    Attributes:
        enabled: Emit the per-policy evaluation message at all
        should_retry: Mark for a policy that returned True
        should_not_retry: Mark for a policy that returned False
        not_evaluated: Mark for a policy skipped after an earlier match
    """

    enabled: bool = True
    should_retry: str = "✓"
    should_not_retry: str = "✗"
    not_evaluated: str = "?"


class RetryOptions:
    """
    Configuration for the retry engine.

    Attributes:
        max_retries: Additional attempts after the first (0 = no retries)
        min_backoff: Lower bound of the delay between attempts
        max_backoff: Upper bound of the delay between attempts
        backoff_coefficient: Scale of the exponential growth (zero = constant)
        retryable_status_codes: Status codes that may be retried
        response_filters: Ordered veto predicates for retryable codes
        ensure_success_status_code: Convert non-2xx results into HttpStatusError
        logging: Check marks for policy evaluation diagnostics
    """

    _default: "RetryOptions | None" = None
    _default_lock = threading.Lock()

    def __init__(self, filters: Iterable[ResponseFilter] | None = None):
        self._read_only = False
        self._max_retries = DEFAULT_MAX_RETRIES
        self._min_backoff = DEFAULT_MIN_BACKOFF
        self._max_backoff = DEFAULT_MAX_BACKOFF
        self._backoff_coefficient = DEFAULT_BACKOFF_COEFFICIENT
        self._ensure_success_status_code = True
        self._retryable_status_codes: set[int] | frozenset[int] = set(DEFAULT_RETRYABLE_STATUS_CODES)
        self._logging = EvaluationLoggingOptions()

        # dict keys keep insertion order and drop duplicates
        initial = [host_offline_filter] if filters is None else filters
        self._response_filters: dict[ResponseFilter, None] | tuple[ResponseFilter, ...] = dict.fromkeys(initial)

    @classmethod
    def default(cls) -> "RetryOptions":
        """Shared frozen instance with default settings."""
        if cls._default is None:
            with cls._default_lock:
                if cls._default is None:
                    cls._default = RetryOptions().freeze()
        return cls._default

    @classmethod
    def from_settings(cls, settings: "Settings") -> "RetryOptions":
        """Build unfrozen options from environment-backed settings."""
        options = cls()
        options.max_retries = settings.MAX_RETRIES
        options.max_backoff = timedelta(seconds=settings.MAX_BACKOFF_SECONDS)
        options.min_backoff = timedelta(seconds=settings.MIN_BACKOFF_SECONDS)
        options.backoff_coefficient = timedelta(seconds=settings.BACKOFF_COEFFICIENT_SECONDS)
        options.ensure_success_status_code = settings.ENSURE_SUCCESS_STATUS_CODE
        options._retryable_status_codes = set(settings.RETRYABLE_STATUS_CODES)
        return options

    # === Properties ===

    @property
    def is_read_only(self) -> bool:
        return self._read_only

    @property
    def max_retries(self) -> int:
        return self._max_retries

    @max_retries.setter
    def max_retries(self, value: int) -> None:
        self._throw_if_read_only("max_retries")
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ConfigurationError(
                f"max_retries must be a non-negative integer, got {value!r}",
                {"property": "max_retries", "value": value},
            )
        self._max_retries = value

    @property
    def max_attempts(self) -> int:
        return self._max_retries + 1

    @property
    def min_backoff(self) -> timedelta:
        return self._min_backoff

    @min_backoff.setter
    def min_backoff(self, value: timedelta) -> None:
        self._throw_if_read_only("min_backoff")
        self._min_backoff = _validate_duration("min_backoff", value)

    @property
    def max_backoff(self) -> timedelta:
        return self._max_backoff

    @max_backoff.setter
    def max_backoff(self, value: timedelta) -> None:
        self._throw_if_read_only("max_backoff")
        self._max_backoff = _validate_duration("max_backoff", value)

    @property
    def backoff_coefficient(self) -> timedelta:
        return self._backoff_coefficient

    @backoff_coefficient.setter
    def backoff_coefficient(self, value: timedelta) -> None:
        self._throw_if_read_only("backoff_coefficient")
        self._backoff_coefficient = _validate_duration("backoff_coefficient", value)

    @property
    def ensure_success_status_code(self) -> bool:
        return self._ensure_success_status_code

    @ensure_success_status_code.setter
    def ensure_success_status_code(self, value: bool) -> None:
        self._throw_if_read_only("ensure_success_status_code")
        self._ensure_success_status_code = bool(value)

    @property
    def logging(self) -> EvaluationLoggingOptions:
        return self._logging

    @logging.setter
    def logging(self, value: EvaluationLoggingOptions | None) -> None:
        self._throw_if_read_only("logging")
        self._logging = value or EvaluationLoggingOptions()

    @property
    def retryable_status_codes(self) -> frozenset[int]:
        """Snapshot of the retryable codes; use add/remove to change them."""
        return frozenset(self._retryable_status_codes)

    @property
    def response_filters(self) -> tuple[ResponseFilter, ...]:
        return tuple(self._response_filters)

    # === Mutators ===

    def add_retryable_status_code(self, status_code: int) -> "RetryOptions":
        self._throw_if_read_only("retryable_status_codes")
        self._retryable_status_codes.add(int(status_code))
        return self

    def remove_retryable_status_code(self, status_code: int) -> "RetryOptions":
        self._throw_if_read_only("retryable_status_codes")
        self._retryable_status_codes.discard(int(status_code))
        return self

    def add_response_filter(self, response_filter: ResponseFilter) -> "RetryOptions":
        self._throw_if_read_only("response_filters")
        if response_filter is None:
            raise ConfigurationError("response_filter must not be None", {"argument": "response_filter"})
        self._response_filters[response_filter] = None
        return self

    def freeze(self) -> "RetryOptions":
        """
        Make the options read-only. Idempotent.

        Raises:
            ConfigurationError: If min_backoff is greater than max_backoff
        """
        if self._read_only:
            return self
        if self._min_backoff > self._max_backoff:
            raise ConfigurationError(
                "min_backoff must not be greater than max_backoff",
                {"min_backoff": self._min_backoff, "max_backoff": self._max_backoff},
            )
        self._retryable_status_codes = frozenset(self._retryable_status_codes)
        self._response_filters = tuple(self._response_filters)
        self._read_only = True
        return self

    # === Retry decision ===

    def is_retryable(self, response: ResponseLike) -> bool:
        return self.is_retryable_response(response.status_code, response.headers)

    def is_retryable_response(self, status_code: int, headers=None) -> bool:
        """
        Check whether a response with this status and headers may be retried.

        Returns True iff the status code is retryable and no response filter
        vetoes it. Filters run in registration order; a filter that raises
        counts as no veto.
        """
        if int(status_code) not in self._retryable_status_codes:
            return False
        return not self._is_retry_filtered(int(status_code), list(iter_headers(headers)))

    def _is_retry_filtered(self, status_code: int, headers: Headers) -> bool:
        for response_filter in self._response_filters:
            try:
                if response_filter(status_code, headers):
                    return True
            except Exception:
                continue
        return False

    def _throw_if_read_only(self, property_name: str) -> None:
        if self._read_only:
            raise OptionsReadOnlyError(property_name)

    def __repr__(self) -> str:
        return (
            f"RetryOptions(max_retries={self._max_retries}, min_backoff={self._min_backoff}, "
            f"max_backoff={self._max_backoff}, backoff_coefficient={self._backoff_coefficient}, "
            f"retryable_status_codes={sorted(self._retryable_status_codes)}, "
            f"ensure_success_status_code={self._ensure_success_status_code}, "
            f"read_only={self._read_only})"
        )


def _validate_duration(name: str, value: timedelta) -> timedelta:
    if not isinstance(value, timedelta) or value < timedelta(0):
        raise ConfigurationError(
            f"{name} must be a non-negative timedelta, got {value!r}",
            {"property": name, "value": value},
        )
    return value
