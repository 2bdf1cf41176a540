"""
Retry policy base classes.

A policy answers one question: should this outcome (an exception or a
returned result) be retried? Every policy declares the ``parameter_type`` it
understands; ``should_retry`` returns False without evaluating for anything
else.

Variants:
    - RetryPolicy: typed predicate, subclass and implement ``_should_retry``
    - ExceptionRetryPolicy: walks the exception cause chain and matches on
      any link of ``exception_type``
    - RetryPolicyDelegate: wraps a caller-supplied predicate function
"""

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterator
from typing import Any, ClassVar

from http_resilience.exceptions import ConfigurationError


class RetryPolicy(ABC):
    """
    Policy which checks outcomes of type ``parameter_type``.

    Subclasses set ``parameter_type`` and implement ``_should_retry``.
    """

    parameter_type: ClassVar[type] = object

    @property
    def name(self) -> str:
        return type(self).__name__

    def should_retry(self, parameter: object) -> bool:
        """Return True if ``parameter`` should trigger another attempt."""
        if isinstance(parameter, self.parameter_type):
            return self._should_retry(parameter)
        return False

    @abstractmethod
    def _should_retry(self, parameter: Any) -> bool:
        ...

    def __repr__(self) -> str:
        return f"{self.name}({_type_name(self.parameter_type)})"


def iter_exception_chain(exc: BaseException | None) -> Iterator[BaseException]:
    """
    Yield ``exc`` followed by its causes.

    Follows ``__cause__`` first, then ``__context__`` unless suppressed
    (``raise ... from None``). Stops at the first repeated exception.
    """
    seen: set[int] = set()
    while exc is not None and id(exc) not in seen:
        seen.add(id(exc))
        yield exc
        if exc.__cause__ is not None:
            exc = exc.__cause__
        elif not exc.__suppress_context__:
            exc = exc.__context__
        else:
            exc = None


class ExceptionRetryPolicy(RetryPolicy):
    """
    Policy which evaluates every link of an exception's cause chain.

    Registered against ``Exception`` so it sees every failure, but only links
    that are instances of ``exception_type`` reach
    ``_should_retry_on_exception``. The first matching link wins.
    """

    parameter_type: ClassVar[type] = Exception
    exception_type: ClassVar[type[BaseException]] = Exception

    def _should_retry(self, parameter: BaseException) -> bool:
        for exc in iter_exception_chain(parameter):
            if isinstance(exc, self.exception_type) and self._should_retry_on_exception(exc):
                return True
        return False

    @abstractmethod
    def _should_retry_on_exception(self, exc: Any) -> bool:
        ...


class RetryPolicyDelegate(RetryPolicy):
    """
    Policy which delegates the decision to a handler function.

    Delegates are independent of each other: any number of them may be
    registered for the same outcome type.
    """

    def __init__(self, handler: Callable[[Any], bool], parameter_type: type = object):
        if handler is None:
            raise ConfigurationError("handler must not be None", {"argument": "handler"})
        self.handler = handler
        self.parameter_type = parameter_type

    def _should_retry(self, parameter: Any) -> bool:
        return bool(self.handler(parameter))


class ExceptionRetryPolicyDelegate(RetryPolicyDelegate):
    """Delegate for exceptions of one type (``retry_on_exception_type``)."""

    def __init__(self, handler: Callable[[Any], bool], exception_type: type[BaseException] = Exception):
        super().__init__(handler, exception_type)


class RetryOnExceptionPolicy(RetryPolicyDelegate):
    """Delegate for the single untyped exception handler (``retry_on_exception``)."""

    def __init__(self, handler: Callable[[Exception], bool]):
        super().__init__(handler, Exception)


class ResultRetryPolicyDelegate(RetryPolicyDelegate):
    """Delegate for returned results of one type (``retry_on_result``)."""

    def __init__(self, handler: Callable[[Any], bool], result_type: type):
        super().__init__(handler, result_type)


def _type_name(tp: type) -> str:
    return getattr(tp, "__name__", repr(tp))
