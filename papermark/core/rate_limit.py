"""Sliding-Window Rate Limiter — bounded request counts per key over a rolling window.

Invariants:
    - A key admits at most `limit` hits in any window of `window_seconds`
    - Rejected hits are not recorded (they do not extend the lockout)
    - Clock is injectable; the limiter never sleeps
    - Keys with no hit inside the window are dropped, swept at most once per window

Design Decisions:
    - Log-based window (deque of hit timestamps per key) over fixed buckets:
      no burst at bucket boundaries
    - Rates written as "10 per 1 m" / "1 per 30 s" so call sites read like
      the policy they enforce
"""

import re
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable

_UNITS = {"s": 1, "m": 60, "h": 3600, "d": 86400}
_RATE_RE = re.compile(r"^\s*(\d+)\s+per\s+(\d+)\s*([smhd])\s*$")


@dataclass(frozen=True)
class RateLimitResult:
    success: bool
    remaining: int
    reset_after_seconds: float


def parse_rate(rate: str) -> tuple[int, float]:
    """Parse "10 per 1 m" into (10, 60.0)."""
    match = _RATE_RE.match(rate)
    if not match:
        raise ValueError(f"Invalid rate: {rate!r}")
    limit, amount, unit = match.groups()
    if int(limit) < 1 or int(amount) < 1:
        raise ValueError(f"Rate must be positive: {rate!r}")
    return int(limit), float(int(amount) * _UNITS[unit])


class SlidingWindowRateLimiter:
    """In-process limiter; one instance per policy."""

    def __init__(
        self,
        limit: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._hits: dict[str, deque[float]] = {}
        self._last_sweep = clock()

    @classmethod
    def from_rate(cls, rate: str, clock: Callable[[], float] = time.monotonic):
        limit, window = parse_rate(rate)
        return cls(limit, window, clock)

    def _sweep(self, now: float) -> None:
        cutoff = now - self.window_seconds
        idle = [key for key, hits in self._hits.items() if not hits or hits[-1] <= cutoff]
        for key in idle:
            del self._hits[key]
        self._last_sweep = now

    def _prune(self, key: str, now: float) -> deque[float]:
        hits = self._hits.setdefault(key, deque())
        cutoff = now - self.window_seconds
        while hits and hits[0] <= cutoff:
            hits.popleft()
        return hits

    def limit_key(self, key: str) -> RateLimitResult:
        """Record a hit for key if allowed."""
        now = self._clock()
        if now - self._last_sweep >= self.window_seconds:
            self._sweep(now)
        hits = self._prune(key, now)
        if len(hits) >= self.limit:
            reset_after = hits[0] + self.window_seconds - now
            return RateLimitResult(False, 0, max(reset_after, 0.0))
        hits.append(now)
        reset_after = hits[0] + self.window_seconds - now
        return RateLimitResult(True, self.limit - len(hits), reset_after)

    @property
    def tracked_keys(self) -> int:
        return len(self._hits)

    def reset(self) -> None:
        self._hits.clear()


class RateLimiterRegistry:
    """One limiter per rate string, created lazily."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._limiters: dict[str, SlidingWindowRateLimiter] = {}

    def limiter(self, rate: str) -> SlidingWindowRateLimiter:
        if rate not in self._limiters:
            self._limiters[rate] = SlidingWindowRateLimiter.from_rate(
                rate, self._clock,
            )
        return self._limiters[rate]

    def hit(self, rate: str, key: str) -> RateLimitResult:
        return self.limiter(rate).limit_key(key)

    def reset(self) -> None:
        for limiter in self._limiters.values():
            limiter.reset()
