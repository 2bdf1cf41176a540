"""
Retry policies.

A policy decides whether an outcome (raised exception or returned result)
warrants another attempt. The engine keeps them in a ``RetryPolicyRegistry``
and evaluates them in registration order.

Main Components:
    - RetryPolicy: Base class for typed policies
    - ExceptionRetryPolicy: Base class for policies over exception cause chains
    - RetryPolicyDelegate: Policy wrapping a caller-supplied predicate
    - RetryPolicyRegistry: Ordered, type-keyed policy store with evaluation
    - builtin_policies: Network policies every engine starts with
"""

from http_resilience.policies.base import (
    ExceptionRetryPolicy,
    ExceptionRetryPolicyDelegate,
    ResultRetryPolicyDelegate,
    RetryOnExceptionPolicy,
    RetryPolicy,
    RetryPolicyDelegate,
    iter_exception_chain,
)
from http_resilience.policies.http import HttpResponseRetryPolicy, HttpResponseRetryPolicyDelegate
from http_resilience.policies.native import CurlCode, CurlErrorRetryPolicy, NativeErrorSignature
from http_resilience.policies.network import (
    HttpxErrorRetryPolicy,
    IOErrorRetryPolicy,
    SocketErrorRetryPolicy,
    builtin_policies,
    is_transient_network_error,
)
from http_resilience.policies.registry import RetryPolicyRegistry

__all__ = [
    "RetryPolicy",
    "ExceptionRetryPolicy",
    "RetryPolicyDelegate",
    "ExceptionRetryPolicyDelegate",
    "RetryOnExceptionPolicy",
    "ResultRetryPolicyDelegate",
    "HttpResponseRetryPolicy",
    "HttpResponseRetryPolicyDelegate",
    "HttpxErrorRetryPolicy",
    "SocketErrorRetryPolicy",
    "IOErrorRetryPolicy",
    "CurlErrorRetryPolicy",
    "CurlCode",
    "NativeErrorSignature",
    "RetryPolicyRegistry",
    "builtin_policies",
    "is_transient_network_error",
    "iter_exception_chain",
]
