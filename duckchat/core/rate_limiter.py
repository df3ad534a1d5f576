"""Sliding-window admission control for outgoing chat requests.

Two windows of millisecond timestamps are kept per policy: the last minute
and the last hour. Both are pruned lazily on every admission check. Only the
minute window drives the back-off delay; hitting the hourly cap alone yields
a zero wait.
"""

import math
from dataclasses import dataclass, field

MINUTE_MS = 60_000
HOUR_MS = 3_600_000


@dataclass
class RateLimitPolicy:
    """Request caps plus the timestamps counted against them.

    Attributes:
        enabled: When False every request is admitted and nothing is recorded.
        max_per_minute: Cap on requests inside the trailing 60s.
        max_per_hour: Cap on requests inside the trailing hour.
        minute_window: Timestamps (ms) still inside the minute horizon.
        hour_window: Timestamps (ms) still inside the hour horizon.
    """
    enabled: bool = True
    max_per_minute: int = 10
    max_per_hour: int = 100
    minute_window: list[float] = field(default_factory=list)
    hour_window: list[float] = field(default_factory=list)


def _prune(policy: RateLimitPolicy, now: float) -> None:
    minute_floor = now - MINUTE_MS
    hour_floor = now - HOUR_MS
    policy.minute_window = [t for t in policy.minute_window if t > minute_floor]
    policy.hour_window = [t for t in policy.hour_window if t > hour_floor]


def can_admit(policy: RateLimitPolicy, now: float) -> bool:
    """Prune both windows, then check the counts against their caps."""
    if not policy.enabled:
        return True

    _prune(policy, now)
    return (
        len(policy.minute_window) < policy.max_per_minute
        and len(policy.hour_window) < policy.max_per_hour
    )


def record(policy: RateLimitPolicy, now: float) -> RateLimitPolicy:
    """Count one attempted send at `now`. Returns the same policy.

    Expired entries are pruned first, so a record made after waiting out
    `wait_ms` never leaves a window above its cap.
    """
    if policy.enabled:
        _prune(policy, now)
        policy.minute_window.append(now)
        policy.hour_window.append(now)
    return policy


def wait_ms(policy: RateLimitPolicy, now: float) -> int:
    """Milliseconds until the oldest in-minute entry leaves the window.

    Returns 0 when a request can be admitted right now.
    """
    if not policy.enabled or can_admit(policy, now):
        return 0

    if not policy.minute_window:
        return 0

    oldest = min(policy.minute_window)
    return max(0, math.ceil(oldest + MINUTE_MS - now))
