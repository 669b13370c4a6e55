"""Tests for the in-memory rate limiter."""

from uuid import uuid4

from kitchen_inventory.services.rate_limit import InMemoryRateLimiter


def test_limits_requests_per_user() -> None:
    limiter = InMemoryRateLimiter(max_requests=2, window_seconds=60)
    first, second = uuid4(), uuid4()

    assert limiter.try_acquire(first)
    assert limiter.try_acquire(first)
    assert not limiter.try_acquire(first)
    assert limiter.try_acquire(second)


def test_window_expiry_frees_capacity() -> None:
    limiter = InMemoryRateLimiter(max_requests=1, window_seconds=0)
    user_id = uuid4()

    assert limiter.try_acquire(user_id)
    assert limiter.try_acquire(user_id)
