"""In-memory fixed-window rate limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: uses a lock around shared state.
- Windows of idle clients are dropped once they elapse.
"""

from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass
from typing import Callable

from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult


@dataclass
class _WindowState:
    window_start: int
    count: int


class InMemoryFixedWindowRateLimiter(AbstractRateLimiter):
    """Rate limiter using a fixed time window per key.

    Limits requests per key within a fixed window of time (e.g. 5 requests
    per 15 minutes). Each key gets its window lazily on first use.

    Important:
        This limiter is per-process only. If the API runs with multiple workers
        (e.g., multiple Uvicorn/Gunicorn workers), each worker will enforce its
        own independent limits.
    """

    def __init__(
        self,
        *,
        limit: int,
        window_seconds: int,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the in-memory rate limiter.

        Args:
            limit: Maximum number of allowed units per window.
            window_seconds: Size of the fixed window in seconds.
            clock: Time source function returning UNIX time in seconds.

        Raises:
            ValueError: If limit or window_seconds are invalid.
        """
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_seconds < 1:
            raise ValueError("window_seconds must be >= 1")

        self._limit = limit
        self._window_seconds = window_seconds
        self._clock = clock
        self._lock = threading.RLock()
        self._state_by_key: dict[str, _WindowState] = {}
        self._last_prune: int | None = None

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def window_seconds(self) -> int:
        return self._window_seconds

    def tracked_keys(self) -> int:
        """Number of keys currently holding window state."""
        with self._lock:
            return len(self._state_by_key)

    def _get_window_bounds(self, now: float) -> tuple[int, int]:
        window_start = int(now // self._window_seconds) * self._window_seconds
        return window_start, window_start + self._window_seconds

    def _prune_expired(self, window_start: int) -> None:
        # At most once per window; callers hold the lock.
        if self._last_prune == window_start:
            return
        self._state_by_key = {
            key: state
            for key, state in self._state_by_key.items()
            if state.window_start == window_start
        }
        self._last_prune = window_start

    def _get_or_reset_state(self, key: str, window_start: int) -> _WindowState:
        state = self._state_by_key.get(key)
        if state is None or state.window_start != window_start:
            state = _WindowState(window_start=window_start, count=0)
            self._state_by_key[key] = state
        return state

    def consume(self, key: str, *, cost: int = 1) -> RateLimitResult:
        """Consume rate limit budget for the provided key.

        Checks the current window usage and records the request when it is
        allowed. Blocked requests do not count against the window.

        Args:
            key: Unique identifier for rate limiting (a client IP).
            cost: Units to consume (default 1).

        Returns:
            RateLimitResult with allowance decision and metadata.

        Raises:
            ValueError: If key is empty or cost is invalid.
        """
        if cost < 1:
            raise ValueError("cost must be >= 1")
        if not key:
            raise ValueError("key must be a non-empty string")

        now = self._clock()
        window_start, reset_at = self._get_window_bounds(now)

        with self._lock:
            self._prune_expired(window_start)
            state = self._get_or_reset_state(key, window_start)

            if state.count + cost <= self._limit:
                state.count += cost
                return RateLimitResult(
                    allowed=True,
                    limit=self._limit,
                    remaining=self._limit - state.count,
                    reset_at=reset_at,
                    retry_after_seconds=None,
                )

            return RateLimitResult(
                allowed=False,
                limit=self._limit,
                remaining=max(0, self._limit - state.count),
                reset_at=reset_at,
                retry_after_seconds=max(0, int(math.ceil(reset_at - now))),
            )
