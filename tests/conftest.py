"""Shared test fixtures and configuration for all tests.

This conftest.py provides common fixtures used across unit and integration tests.
"""

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any

import pytest

from http_resilience.log import LogLevel
from http_resilience.options import RetryOptions


@dataclass
class FakeResponse:
    """Minimal response-like result (status code + headers)."""

    status_code: int
    headers: dict[str, Any] = field(default_factory=dict)
    reason_phrase: str = ""


class RecordingLogger:
    """Logging sink that keeps every message for assertions."""

    def __init__(self):
        self.records: list[tuple[LogLevel, str]] = []

    def log(self, level: LogLevel, message: str) -> None:
        self.records.append((level, message))

    def messages(self, level: LogLevel | None = None) -> list[str]:
        return [message for lvl, message in self.records if level is None or lvl == level]


class CallCounter:
    """Operation that replays scripted outcomes and counts invocations.

    Exceptions in the script are raised, anything else is returned. The last
    outcome repeats once the script runs out.
    """

    def __init__(self, *outcomes: Any):
        self.outcomes = list(outcomes)
        self.calls = 0

    def __call__(self) -> Any:
        outcome = self.outcomes[min(self.calls, len(self.outcomes) - 1)]
        self.calls += 1
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


@pytest.fixture
def recording_logger() -> RecordingLogger:
    """Fresh RecordingLogger per test."""
    return RecordingLogger()


@pytest.fixture
def fast_options() -> RetryOptions:
    """Unfrozen default options with zero backoff so retries do not sleep.

    Override specific options in individual tests as needed:
        def test_something(fast_options):
            fast_options.max_retries = 3
    """
    options = RetryOptions()
    options.min_backoff = timedelta(0)
    options.max_backoff = timedelta(0)
    options.backoff_coefficient = timedelta(0)
    return options


@pytest.fixture
def fake_response():
    """Factory fixture to create FakeResponse objects.

    Usage:
        def test_something(fake_response):
            response = fake_response(503, {"Retry-After": "1"})
    """
    def _create(status_code: int = 200, headers: dict[str, Any] | None = None) -> FakeResponse:
        return FakeResponse(status_code=status_code, headers=headers or {})

    return _create


@pytest.fixture
def call_counter():
    """Factory fixture to create scripted operations.

    Usage:
        def test_something(call_counter):
            operation = call_counter(ConnectionResetError(), "ok")
    """
    return CallCounter
