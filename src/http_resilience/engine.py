"""
Retry engine.

The engine wraps a caller-supplied operation and re-executes it while its
outcome is judged transient by the registered policies:

    ATTEMPTING -> SUCCESS
               -> RETRYABLE_FAILURE -> (backoff) -> ATTEMPTING
               -> TERMINAL_FAILURE

Per attempt:
    1. Call the operation.
    2. If it raised, retry when attempts remain and a policy matches either
       the last returned result or the new exception. Otherwise return the
       last response-like result (when success is not enforced) or re-raise
       the exception unchanged.
    3. If it returned a response-like result with a non-success status and
       ``ensure_success_status_code`` is set, treat it as an
       ``HttpStatusError`` raised by this attempt (step 2).
    4. Otherwise retry when attempts remain and a policy matches the result;
       else return it.

Attempt state is local to each call, so one engine can serve concurrent
``invoke``/``invoke_async`` calls. Policy registration must be finished
before that.

Usage:
    >>> engine = RetryEngine(max_retries=3)
    >>> response = engine.invoke(lambda: httpx.get("https://example.com"))
    >>> response = await engine.invoke_async(lambda: client.get("/items"))
"""

import asyncio
import inspect
import threading
import time
import uuid
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any, TypeVar

from http_resilience.backoff import get_exponential_backoff
from http_resilience.exceptions import ConfigurationError, HttpStatusError
from http_resilience.log import Logger, LogLevel, get_logger
from http_resilience.options import RetryOptions
from http_resilience.policies.base import (
    ExceptionRetryPolicyDelegate,
    ResultRetryPolicyDelegate,
    RetryOnExceptionPolicy,
    RetryPolicy,
)
from http_resilience.policies.http import HttpResponseRetryPolicyDelegate
from http_resilience.policies.network import builtin_policies
from http_resilience.policies.registry import RetryPolicyRegistry
from http_resilience.response import ResponseLike, is_success_status

T = TypeVar("T")


@dataclass
class AttemptState:
    """
    State of a single ``invoke`` call.

    Attributes:
        max_attempts: Total attempts allowed (max_retries + 1)
        current_attempt: 1-based number of the attempt in progress
        last_result: Last value returned by the operation, or None
    """

    max_attempts: int
    current_attempt: int = 1
    last_result: Any = None

    @property
    def remaining(self) -> int:
        return self.max_attempts - self.current_attempt


class RetryEngine:
    """
    Invokes operations and retries transient failures.

    A new engine registers the built-in policies (response status, httpx
    errors, socket errors, TLS I/O errors, curl errors). Custom behaviour is
    added with the ``retry_on_*`` methods or ``add_retry_policy``; each
    returns the engine for chaining.

    Attributes:
        options: Active retry options, frozen on the first invoke
        logger: Sink receiving progress messages
    """

    _default: "RetryEngine | None" = None
    _default_lock = threading.Lock()

    def __init__(
        self,
        options: RetryOptions | None = None,
        *,
        max_retries: int | None = None,
        logger: Logger | None = None,
    ):
        """
        Initialize retry engine.

        Args:
            options: Retry options (a fresh, unfrozen ``RetryOptions`` if omitted)
            max_retries: Shortcut for setting ``options.max_retries``
            logger: Logging sink (the process-wide sink if omitted)
        """
        self._options = options if options is not None else RetryOptions()
        if max_retries is not None:
            self._options.max_retries = max_retries

        self.logger = logger if logger is not None else get_logger()
        self.instance = uuid.uuid4().hex[:5].upper()
        self._retry_on_exception_registered = False

        self._registry = RetryPolicyRegistry(
            self.logger,
            self._options.logging,
            prefix=f"RetryEngine_{self.instance}|",
        )
        for policy in builtin_policies(self._options):
            self._registry.add(policy)

        self._log(
            LogLevel.DEBUG,
            f"Initialized with max_retries={self._options.max_retries}, "
            f"min_backoff={self._options.min_backoff}, max_backoff={self._options.max_backoff}",
        )

    @classmethod
    def default(cls) -> "RetryEngine":
        """Shared engine using ``RetryOptions.default()``."""
        if cls._default is None:
            with cls._default_lock:
                if cls._default is None:
                    cls._default = cls(RetryOptions.default())
        return cls._default

    @property
    def options(self) -> RetryOptions:
        return self._options

    @property
    def max_attempts(self) -> int:
        return self._options.max_attempts

    @property
    def policies(self) -> Mapping[type, tuple[RetryPolicy, ...]]:
        return self._registry.policies

    # === Configuration ===

    def retry_on_exception(self, handler: Callable[[Exception], bool] | None = None) -> "RetryEngine":
        """
        Set the untyped exception handler. Without a handler every exception
        is retried.

        Raises:
            ConfigurationError: If called more than once on this engine
        """
        if self._retry_on_exception_registered:
            raise ConfigurationError("retry_on_exception cannot be called more than once")
        self._registry.add(RetryOnExceptionPolicy(handler if handler is not None else _always))
        self._retry_on_exception_registered = True
        return self

    def retry_on_exception_type(
        self,
        exception_type: type[BaseException],
        handler: Callable[[Any], bool] | None = None,
    ) -> "RetryEngine":
        """Retry exceptions of ``exception_type`` for which ``handler`` returns True."""
        if not (isinstance(exception_type, type) and issubclass(exception_type, BaseException)):
            raise ConfigurationError(
                f"exception_type must be an exception class, got {exception_type!r}",
                {"argument": "exception_type"},
            )
        self._registry.add(ExceptionRetryPolicyDelegate(handler if handler is not None else _always, exception_type))
        return self

    def retry_on_result(self, result_type: type, handler: Callable[[Any], bool]) -> "RetryEngine":
        """Retry returned results of ``result_type`` for which ``handler`` returns True."""
        if result_type is None:
            raise ConfigurationError("result_type must not be None", {"argument": "result_type"})
        self._registry.add(ResultRetryPolicyDelegate(handler, result_type))
        return self

    def retry_on_http_response(self, handler: Callable[[ResponseLike], bool]) -> "RetryEngine":
        """Retry response-like results for which ``handler`` returns True."""
        self._registry.add(HttpResponseRetryPolicyDelegate(handler))
        return self

    def add_retry_policy(self, policy: RetryPolicy) -> "RetryEngine":
        """
        Register a custom policy.

        Raises:
            ConfigurationError: If a policy of the same class is already
                registered for the same outcome type
        """
        self._registry.add(policy)
        return self

    # === Invocation ===

    def invoke(self, operation: Callable[[], T], name: str = "invoke") -> T:
        """
        Call ``operation`` synchronously, retrying transient outcomes.

        Backoff delays block the calling thread.

        Returns:
            The operation's result (or the last response-like result when
            success is not enforced)

        Raises:
            The operation's last exception, unchanged, or ``HttpStatusError``
            ConfigurationError: If the operation returns an awaitable
        """
        state = self._start(operation)
        while True:
            self._log_attempt(name, state)
            try:
                result = operation()
            except Exception as e:
                if self._should_retry_exception(state, e):
                    time.sleep(self._next_backoff(name, state))
                    continue
                return self._give_up(name, state, e)

            self._reject_awaitable(name, result)
            should_retry, failure = self._evaluate_result(state, result)
            if should_retry:
                time.sleep(self._next_backoff(name, state))
                continue
            return self._finish(name, state, result, failure)

    async def invoke_async(self, operation: Callable[[], Awaitable[T]], name: str = "invoke_async") -> T:
        """
        Call ``operation`` and await its result, retrying transient outcomes.

        Backoff delays use ``asyncio.sleep`` and never block the event loop.
        Semantics are otherwise identical to ``invoke``.
        """
        state = self._start(operation)
        while True:
            self._log_attempt(name, state)
            try:
                result = operation()
                if inspect.isawaitable(result):
                    result = await result
            except Exception as e:
                if self._should_retry_exception(state, e):
                    await asyncio.sleep(self._next_backoff(name, state))
                    continue
                return self._give_up(name, state, e)

            should_retry, failure = self._evaluate_result(state, result)
            if should_retry:
                await asyncio.sleep(self._next_backoff(name, state))
                continue
            return self._finish(name, state, result, failure)

    # === Attempt loop helpers ===

    def _start(self, operation: Callable[[], Any]) -> AttemptState:
        if operation is None:
            raise ConfigurationError("operation must not be None", {"argument": "operation"})
        self._options.freeze()
        self._registry.logging_options = self._options.logging
        return AttemptState(max_attempts=self._options.max_attempts)

    def _reject_awaitable(self, name: str, result: Any) -> None:
        if not inspect.isawaitable(result):
            return
        if inspect.iscoroutine(result):
            result.close()
        raise ConfigurationError(
            f"{name} returned an awaitable ({type(result).__name__}); use invoke_async for async operations",
            {"operation_result": type(result).__name__},
        )

    def _should_retry_exception(self, state: AttemptState, exc: Exception) -> bool:
        # The previous result is re-evaluated too: a result policy may depend
        # on state carried over from an earlier attempt.
        return state.remaining > 0 and (
            self._registry.evaluate(state.last_result) or self._registry.evaluate(exc)
        )

    def _evaluate_result(self, state: AttemptState, result: Any) -> tuple[bool, HttpStatusError | None]:
        state.last_result = result
        failure = self._ensure_success(result)
        if failure is not None:
            return self._should_retry_exception(state, failure), failure
        return state.remaining > 0 and self._registry.evaluate(result), None

    def _ensure_success(self, result: Any) -> HttpStatusError | None:
        if not self._options.ensure_success_status_code or not isinstance(result, ResponseLike):
            return None
        if is_success_status(result.status_code):
            return None
        return HttpStatusError(result.status_code, getattr(result, "reason_phrase", None), response=result)

    def _next_backoff(self, name: str, state: AttemptState) -> float:
        backoff = get_exponential_backoff(
            state.current_attempt,
            self._options.min_backoff,
            self._options.max_backoff,
            self._options.backoff_coefficient,
        )
        self._log(
            LogLevel.INFO,
            f"{name} --> Retry in {backoff.total_seconds():.3f}s "
            f"(attempt {state.current_attempt} / {state.max_attempts} failed)",
        )
        state.current_attempt += 1
        return backoff.total_seconds()

    def _give_up(self, name: str, state: AttemptState, exc: Exception) -> Any:
        if isinstance(state.last_result, ResponseLike) and not self._options.ensure_success_status_code:
            self._log(
                LogLevel.INFO,
                f"{name} --> Returning last response ({state.last_result.status_code}) "
                f"after {type(exc).__name__}",
            )
            return state.last_result

        reason = "attempts exhausted" if state.remaining == 0 else "not retryable"
        self._log(
            LogLevel.ERROR,
            f"{name} --> {type(exc).__name__} after attempt {state.current_attempt} / "
            f"{state.max_attempts} ({reason}): {exc}",
        )
        raise exc

    def _finish(self, name: str, state: AttemptState, result: T, failure: HttpStatusError | None) -> T:
        if failure is not None:
            return self._give_up(name, state, failure)
        self._log(LogLevel.DEBUG, f"{name} --> Completed on attempt {state.current_attempt} / {state.max_attempts}")
        return result

    def _log_attempt(self, name: str, state: AttemptState) -> None:
        self._log(LogLevel.DEBUG, f"{name} (Attempt {state.current_attempt} / {state.max_attempts})")

    def _log(self, level: LogLevel, message: str) -> None:
        self.logger.log(level, f"RetryEngine_{self.instance}|{message}")


def _always(_: Any) -> bool:
    return True
