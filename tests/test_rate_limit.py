"""Rate limiter tests with a controllable clock."""

import asyncio
from datetime import UTC, datetime

import pytest

from thumbcraft.services.exceptions import RateLimitExceeded
from thumbcraft.services.rate_limit import InMemoryRateLimitStore, RateLimiter


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.mark.asyncio
async def test_eleventh_request_is_rejected():
    clock = FakeClock()
    limiter = RateLimiter(InMemoryRateLimitStore(), limit=10, window_seconds=3600, clock=clock)

    for _ in range(10):
        await limiter.check("user-1")

    with pytest.raises(RateLimitExceeded) as exc_info:
        await limiter.check("user-1")

    reset_time = exc_info.value.reset_time
    assert reset_time > datetime.fromtimestamp(clock.now, tz=UTC)
    assert reset_time == datetime.fromtimestamp(clock.now + 3600, tz=UTC)


@pytest.mark.asyncio
async def test_window_expiry_resets_counter():
    clock = FakeClock()
    limiter = RateLimiter(InMemoryRateLimitStore(), limit=2, window_seconds=60, clock=clock)

    await limiter.check("user-1")
    await limiter.check("user-1")
    with pytest.raises(RateLimitExceeded):
        await limiter.check("user-1")

    clock.now += 60
    remaining = await limiter.check("user-1")

    # Fresh window: this request is the first one counted
    assert remaining == 1


@pytest.mark.asyncio
async def test_rejected_requests_are_not_counted():
    clock = FakeClock()
    store = InMemoryRateLimitStore()
    limiter = RateLimiter(store, limit=1, window_seconds=60, clock=clock)

    await limiter.check("user-1")
    for _ in range(5):
        with pytest.raises(RateLimitExceeded):
            await limiter.check("user-1")

    _, window = await store.acquire("user-1", 1, 60, clock.now)
    assert window.count == 1


@pytest.mark.asyncio
async def test_owners_are_independent():
    limiter = RateLimiter(InMemoryRateLimitStore(), limit=1, window_seconds=60, clock=FakeClock())

    await limiter.check("alice")
    await limiter.check("bob")

    with pytest.raises(RateLimitExceeded):
        await limiter.check("alice")


@pytest.mark.asyncio
async def test_concurrent_checks_never_exceed_limit():
    limiter = RateLimiter(InMemoryRateLimitStore(), limit=10, window_seconds=60, clock=FakeClock())

    results = await asyncio.gather(
        *(limiter.check("user-1") for _ in range(25)), return_exceptions=True
    )

    rejected = [r for r in results if isinstance(r, RateLimitExceeded)]
    assert len(results) - len(rejected) == 10
    assert len(rejected) == 15


@pytest.mark.asyncio
async def test_store_reset():
    store = InMemoryRateLimitStore()
    limiter = RateLimiter(store, limit=1, window_seconds=60, clock=FakeClock())

    await limiter.check("user-1")
    store.reset("user-1")

    await limiter.check("user-1")


@pytest.mark.asyncio
async def test_expired_windows_are_evicted():
    clock = FakeClock()
    store = InMemoryRateLimitStore()
    limiter = RateLimiter(store, limit=5, window_seconds=60, clock=clock)

    await limiter.check("alice")
    await limiter.check("bob")
    assert len(store) == 2

    clock.now += 60
    await limiter.check("carol")

    assert len(store) == 1

    # An evicted owner starts over with a full window
    assert await limiter.check("alice") == 4
