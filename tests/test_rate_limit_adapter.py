"""Unit tests for in-memory rate limiter adapter."""

import threading
from unittest.mock import Mock

import pytest

from app.adapters.rate_limit.in_memory import InMemorySlidingWindowRateLimiter


def test_first_request_from_new_identity_is_admitted() -> None:
    limiter = InMemorySlidingWindowRateLimiter(limit=1, window_seconds=60, clock=Mock(return_value=1000.0))

    result = limiter.consume("ip:1")

    assert result.allowed is True
    assert result.remaining == 0
    assert result.retry_after_seconds is None


def test_allows_up_to_limit_then_blocks() -> None:
    clock = Mock(return_value=1000.0)
    limiter = InMemorySlidingWindowRateLimiter(limit=3, window_seconds=60, clock=clock)

    assert [limiter.consume("k").allowed for _ in range(3)] == [True, True, True]

    blocked = limiter.consume("k")
    assert blocked.allowed is False
    assert blocked.remaining == 0
    assert blocked.retry_after_seconds == 60
    assert blocked.reset_at == 1060


def test_rejected_requests_are_not_recorded() -> None:
    clock = Mock(return_value=1000.0)
    limiter = InMemorySlidingWindowRateLimiter(limit=1, window_seconds=10, clock=clock)

    assert limiter.consume("k").allowed is True
    clock.return_value = 1005.0
    assert limiter.consume("k").allowed is False

    # Only the admitted request at t=1000 counts; it expires at t=1010.
    clock.return_value = 1010.0
    assert limiter.consume("k").allowed is True


def test_window_slides_per_request_instead_of_resetting() -> None:
    limiter = InMemorySlidingWindowRateLimiter(limit=2, window_seconds=60)

    assert limiter.try_admit("k", now=0.0)
    assert limiter.try_admit("k", now=30.0)
    assert not limiter.try_admit("k", now=59.9)

    # t=0 leaves the window at t=60 but t=30 is still counted.
    assert limiter.try_admit("k", now=60.0)
    assert not limiter.try_admit("k", now=61.0)


def test_admits_again_after_waiting_full_window() -> None:
    limiter = InMemorySlidingWindowRateLimiter(limit=3, window_seconds=60)

    for t in (0.0, 1.0, 2.0):
        assert limiter.try_admit("k", now=t)
    assert not limiter.try_admit("k", now=3.0)

    assert limiter.try_admit("k", now=62.0)


def test_isolated_by_key() -> None:
    limiter = InMemorySlidingWindowRateLimiter(limit=1, window_seconds=60, clock=Mock(return_value=1000.0))

    assert limiter.consume("k1").allowed is True
    assert limiter.consume("k1").allowed is False
    assert limiter.consume("k2").allowed is True


def test_evict_idle_drops_empty_windows() -> None:
    limiter = InMemorySlidingWindowRateLimiter(limit=5, window_seconds=10)
    limiter.consume("old", now=0.0)
    limiter.consume("fresh", now=8.0)

    assert limiter.evict_idle(now=12.0) == 1
    assert limiter.tracked_keys() == 1


def test_consume_releases_idle_keys_without_explicit_eviction() -> None:
    limiter = InMemorySlidingWindowRateLimiter(limit=5, window_seconds=60)
    for i in range(1000):
        limiter.consume(f"ip:10.0.{i // 256}.{i % 256}", now=0.0)
    assert limiter.tracked_keys() == 1000

    limiter.consume("ip:203.0.113.7", now=3600.0)

    assert limiter.tracked_keys() == 1


def test_idle_release_keeps_keys_still_inside_window() -> None:
    limiter = InMemorySlidingWindowRateLimiter(limit=1, window_seconds=60)
    limiter.consume("old", now=0.0)
    limiter.consume("recent", now=30.0)

    limiter.consume("new", now=61.0)

    assert limiter.tracked_keys() == 2
    assert not limiter.try_admit("recent", now=62.0)


def test_reset_clears_all_windows() -> None:
    limiter = InMemorySlidingWindowRateLimiter(limit=1, window_seconds=60)
    limiter.consume("k", now=0.0)

    limiter.reset()

    assert limiter.tracked_keys() == 0
    assert limiter.try_admit("k", now=1.0)


def test_concurrent_requests_never_exceed_limit() -> None:
    limiter = InMemorySlidingWindowRateLimiter(limit=10, window_seconds=60, clock=Mock(return_value=1000.0))
    results: list[bool] = []
    lock = threading.Lock()

    def _hit() -> None:
        allowed = limiter.try_admit("same")
        with lock:
            results.append(allowed)

    threads = [threading.Thread(target=_hit) for _ in range(50)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results.count(True) == 10


@pytest.mark.parametrize(
    "kwargs",
    [
        {"limit": 0, "window_seconds": 60},
        {"limit": 1, "window_seconds": 0},
    ],
)
def test_invalid_constructor_args(kwargs: dict) -> None:
    with pytest.raises(ValueError):
        InMemorySlidingWindowRateLimiter(**kwargs)


def test_invalid_consume_args() -> None:
    limiter = InMemorySlidingWindowRateLimiter(limit=1, window_seconds=60)

    with pytest.raises(ValueError):
        limiter.consume("")
