"""
Backoff delay calculation.

Exponential backoff with jitter:

    jitter = delta_ms * (0.8 + r * 0.4)          r uniform in [0, 1)
    growth = (radix ** attempt - 1) * jitter     attempt >= 0
    growth = radix ** attempt * jitter           attempt < 0
    delay  = min(min_backoff + growth, max_backoff)

With a zero delta there is no randomness and the result is ``min_backoff``
clamped to ``max_backoff``.

Each thread draws from its own ``random.Random`` so concurrent retry loops
neither contend on a lock nor produce correlated jitter.
"""

import math
import random
import threading
from datetime import timedelta

DEFAULT_RADIX = 2.0

_local = threading.local()


def _rnd() -> random.Random:
    rnd = getattr(_local, "rnd", None)
    if rnd is None:
        rnd = _local.rnd = random.Random()
    return rnd


def get_exponential_backoff(
    attempt: int,
    min_backoff: timedelta,
    max_backoff: timedelta,
    delta_backoff: timedelta,
    radix: float = DEFAULT_RADIX,
) -> timedelta:
    """
    Compute the delay before the next attempt.

    Args:
        attempt: Number of attempts already made (1 before the 2nd try)
        min_backoff: Lower bound and starting point of the delay
        max_backoff: Upper bound of the delay
        delta_backoff: Scale of the exponential growth; zero disables growth
        radix: Base of the exponential growth

    Returns:
        Delay as a timedelta, never negative and never above max_backoff
    """
    min_ms = _total_ms(min_backoff)
    max_ms = _total_ms(max_backoff)
    if delta_backoff == timedelta(0):
        return timedelta(milliseconds=max(min(min_ms, max_ms), 0.0))

    jitter_ms = _total_ms(delta_backoff) * (0.8 + _rnd().random() * 0.4)
    try:
        power = float(radix) ** attempt
    except OverflowError:
        # Past the float range the delay is pinned at max_backoff
        power = math.inf

    if attempt < 0:
        growth_ms = power * jitter_ms
    else:
        growth_ms = (power - 1.0) * jitter_ms

    delay_ms = min(min_ms + growth_ms, max_ms)
    return timedelta(milliseconds=max(delay_ms, 0.0))


def get_random_backoff(
    min_backoff: timedelta,
    max_backoff: timedelta,
    previous_backoff: timedelta | None = None,
) -> timedelta:
    """
    Pick a uniformly random delay in ``[min_backoff, max_backoff)``.

    When ``previous_backoff`` is given its whole milliseconds seed the random
    source, so the same previous delay always yields the same next delay.
    """
    if previous_backoff is None:
        rnd = _rnd()
    else:
        rnd = random.Random(int(_total_ms(previous_backoff)))

    low = int(_total_ms(min_backoff))
    high = int(_total_ms(max_backoff))
    if high <= low:
        return timedelta(milliseconds=low)
    return timedelta(milliseconds=rnd.randrange(low, high))


def _total_ms(value: timedelta) -> float:
    return value.total_seconds() * 1000.0
