"""
Rate Limiting Module.

Per-caller, per-route sliding-window request counter that sits in front of
the job routes. It is a boundary concern and knows nothing about the store.

Usage:
    limiter = SlidingWindowLimiter(limit=30, window_seconds=60)

    if not limiter.hit(("10.0.0.1", "POST /api/jobs")):
        ...  # reject with 429
"""

import logging
import threading
import time
from collections import deque
from typing import Callable, Deque, Dict, Hashable, Optional

from fastapi import HTTPException, Request

logger = logging.getLogger(__name__)


class RateLimitExceededError(Exception):
    """Raised when a caller has used up its window."""

    def __init__(self, key: Hashable, current: int, limit: int, retry_after: float):
        self.key = key
        self.current = current
        self.limit = limit
        self.retry_after = retry_after
        super().__init__(
            f"Rate limit exceeded for {key}: {current}/{limit} (retry in {retry_after:.1f}s)"
        )


class SlidingWindowLimiter:
    """
    Thread-safe sliding window limiter keyed by an arbitrary hashable.

    Each key keeps a deque of request timestamps no older than the window.
    """

    def __init__(
        self,
        limit: int,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize rate limiter.

        Args:
            limit: Maximum requests per key per window
            window_seconds: Window length in seconds
            clock: Monotonic time source (overridable in tests)
        """
        if limit < 1:
            raise ValueError("limit must be at least 1")
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: Dict[Hashable, Deque[float]] = {}
        self._last_sweep = clock()
        self._lock = threading.Lock()

    @property
    def tracked_keys(self) -> int:
        """Number of keys currently tracked."""
        with self._lock:
            return len(self._windows)

    def _clean(self, window: Deque[float], now: float) -> None:
        """Remove entries older than the window."""
        cutoff = now - self.window_seconds
        while window and window[0] <= cutoff:
            window.popleft()

    def _sweep(self, now: float) -> None:
        """Drop keys whose window has emptied, at most once per window."""
        if now - self._last_sweep < self.window_seconds:
            return
        self._last_sweep = now
        for key in list(self._windows):
            window = self._windows[key]
            self._clean(window, now)
            if not window:
                del self._windows[key]

    def hit(self, key: Hashable) -> bool:
        """
        Record a request for key if allowed.

        Returns:
            True if the request is allowed, False if rate limited
        """
        try:
            self.acquire(key)
        except RateLimitExceededError:
            return False
        return True

    def acquire(self, key: Hashable) -> None:
        """
        Record a request for key or raise.

        Raises:
            RateLimitExceededError: key already made ``limit`` requests in the window
        """
        with self._lock:
            now = self._clock()
            self._sweep(now)
            window = self._windows.setdefault(key, deque())
            self._clean(window, now)

            if len(window) >= self.limit:
                retry_after = max(0.0, window[0] + self.window_seconds - now)
                raise RateLimitExceededError(key, len(window), self.limit, retry_after)

            window.append(now)

    def remaining(self, key: Hashable) -> int:
        """Requests left for key in the current window."""
        with self._lock:
            window = self._windows.get(key)
            if window is None:
                return self.limit
            self._clean(window, self._clock())
            if not window:
                del self._windows[key]
                return self.limit
            return max(0, self.limit - len(window))

    def reset(self) -> None:
        """Reset all rate limit tracking."""
        with self._lock:
            self._windows.clear()


def _caller_key(request: Request) -> str:
    return request.client.host if request.client else "unknown"


async def enforce_rate_limit(request: Request) -> None:
    """
    FastAPI dependency applying the app's limiter to the current route.

    No-op when the app was started without a limiter.
    """
    limiter: Optional[SlidingWindowLimiter] = getattr(request.app.state, "rate_limiter", None)
    if limiter is None:
        return

    key = (_caller_key(request), request.method, request.url.path)
    try:
        limiter.acquire(key)
    except RateLimitExceededError as e:
        logger.warning(str(e))
        raise HTTPException(
            status_code=429,
            detail="Too many requests, please try again later",
            headers={"Retry-After": str(int(e.retry_after) + 1)},
        )
