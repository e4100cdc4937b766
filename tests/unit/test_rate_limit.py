"""
Unit tests for tracker_service/rate_limit.py

Tests the sliding-window limiter:
- Per-key windows
- Window expiry with a controllable clock
- Error details for rejected requests
"""

import threading

import pytest

from tracker_service.rate_limit import RateLimitExceededError, SlidingWindowLimiter


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


class TestRateLimitExceededError:
    def test_error_message_formatting(self):
        error = RateLimitExceededError(("1.2.3.4", "GET", "/api/jobs"), 5, 5, 12.5)

        assert error.current == 5
        assert error.limit == 5
        assert error.retry_after == 12.5
        assert "5/5" in str(error)
        assert "/api/jobs" in str(error)


class TestSlidingWindowLimiter:
    def test_allows_up_to_limit(self, clock):
        limiter = SlidingWindowLimiter(limit=3, window_seconds=60, clock=clock)

        assert [limiter.hit("a") for _ in range(4)] == [True, True, True, False]

    def test_keys_are_independent(self, clock):
        limiter = SlidingWindowLimiter(limit=1, window_seconds=60, clock=clock)

        assert limiter.hit(("host", "GET /api/jobs")) is True
        assert limiter.hit(("host", "POST /api/jobs")) is True
        assert limiter.hit(("other", "GET /api/jobs")) is True
        assert limiter.hit(("host", "GET /api/jobs")) is False

    def test_window_slides(self, clock):
        limiter = SlidingWindowLimiter(limit=2, window_seconds=60, clock=clock)

        limiter.acquire("a")
        clock.advance(30)
        limiter.acquire("a")
        assert limiter.hit("a") is False

        # First request leaves the window
        clock.advance(30)
        assert limiter.hit("a") is True
        assert limiter.hit("a") is False

    def test_acquire_raises_with_retry_after(self, clock):
        limiter = SlidingWindowLimiter(limit=1, window_seconds=60, clock=clock)
        limiter.acquire("a")
        clock.advance(15)

        with pytest.raises(RateLimitExceededError) as exc_info:
            limiter.acquire("a")

        assert exc_info.value.retry_after == pytest.approx(45)

    def test_rejected_requests_do_not_extend_window(self, clock):
        limiter = SlidingWindowLimiter(limit=1, window_seconds=10, clock=clock)
        limiter.acquire("a")

        for _ in range(5):
            clock.advance(1)
            assert limiter.hit("a") is False

        clock.advance(5)
        assert limiter.hit("a") is True

    def test_remaining(self, clock):
        limiter = SlidingWindowLimiter(limit=3, window_seconds=60, clock=clock)
        assert limiter.remaining("a") == 3

        limiter.acquire("a")
        assert limiter.remaining("a") == 2

        clock.advance(61)
        assert limiter.remaining("a") == 3

    def test_expired_keys_are_evicted(self, clock):
        limiter = SlidingWindowLimiter(limit=1, window_seconds=60, clock=clock)
        limiter.acquire(("10.0.0.1", "GET", "/api/jobs"))
        assert limiter.tracked_keys == 1

        clock.advance(61)
        limiter.acquire(("10.0.0.2", "GET", "/api/jobs"))

        assert limiter.tracked_keys == 1

    def test_many_callers_do_not_accumulate(self, clock):
        limiter = SlidingWindowLimiter(limit=5, window_seconds=10, clock=clock)

        for i in range(100):
            limiter.acquire(f"caller-{i}")
            clock.advance(1)

        # Only callers seen within roughly the last two windows survive
        assert limiter.tracked_keys <= 20

    def test_remaining_drops_expired_key(self, clock):
        limiter = SlidingWindowLimiter(limit=3, window_seconds=60, clock=clock)
        limiter.acquire("a")

        clock.advance(61)
        assert limiter.remaining("a") == 3
        assert limiter.tracked_keys == 0

    def test_reset(self, clock):
        limiter = SlidingWindowLimiter(limit=1, window_seconds=60, clock=clock)
        limiter.acquire("a")
        limiter.reset()
        assert limiter.hit("a") is True

    def test_invalid_limit(self):
        with pytest.raises(ValueError):
            SlidingWindowLimiter(limit=0)

    def test_thread_safety(self):
        limiter = SlidingWindowLimiter(limit=50, window_seconds=60)
        results = []
        lock = threading.Lock()

        def worker():
            for _ in range(20):
                allowed = limiter.hit("shared")
                with lock:
                    results.append(allowed)

        threads = [threading.Thread(target=worker) for _ in range(5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.count(True) == 50
        assert results.count(False) == 50
