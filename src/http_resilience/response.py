"""
Helpers for response-like results.

The engine never parses bodies. It only needs a numeric status code and the
headers, so any object exposing ``status_code`` and ``headers`` qualifies
(``httpx.Response`` does).
"""

from collections.abc import Iterable, Iterator, Mapping
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class ResponseLike(Protocol):
    """Any result exposing a numeric status code and a header container."""

    status_code: int
    headers: Any


def is_success_status(status_code: int) -> bool:
    return 200 <= status_code <= 299


def iter_headers(headers: Any) -> Iterator[tuple[str, list[str]]]:
    """
    Normalise a header container into ``(name, [values...])`` pairs.

    Accepts ``None``, ``httpx.Headers`` (or anything with ``multi_items()``),
    a mapping whose values are strings or lists of strings, or an iterable of
    ``(name, value)`` pairs. Repeated names are merged in first-seen order.
    Bytes are decoded as latin-1 and other scalars (``{"Retry-After": 5}``)
    are converted with ``str()``.
    """
    if headers is None:
        return

    if hasattr(headers, "multi_items"):
        pairs: Iterable[tuple[str, Any]] = headers.multi_items()
    elif isinstance(headers, Mapping):
        pairs = headers.items()
    else:
        pairs = headers

    merged: dict[str, list[str]] = {}
    for name, value in pairs:
        values = merged.setdefault(name, [])
        if value is None:
            continue
        if isinstance(value, (str, bytes)) or not isinstance(value, Iterable):
            values.append(_header_text(value))
        else:
            values.extend(_header_text(v) for v in value if v is not None)

    yield from merged.items()


def _header_text(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode("latin-1")
    return value if isinstance(value, str) else str(value)
