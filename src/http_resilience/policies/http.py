"""Policies over response-like results."""

from collections.abc import Callable
from typing import ClassVar

from http_resilience.options import RetryOptions
from http_resilience.policies.base import RetryPolicy, RetryPolicyDelegate
from http_resilience.response import ResponseLike


class HttpResponseRetryPolicy(RetryPolicy):
    """Retries responses whose status code the options consider retryable."""

    parameter_type: ClassVar[type] = ResponseLike

    def __init__(self, options: RetryOptions):
        self.options = options

    def _should_retry(self, response: ResponseLike) -> bool:
        return self.options.is_retryable(response)


class HttpResponseRetryPolicyDelegate(RetryPolicyDelegate):
    """Delegate for response-like results (``retry_on_http_response``)."""

    def __init__(self, handler: Callable[[ResponseLike], bool]):
        super().__init__(handler, ResponseLike)
