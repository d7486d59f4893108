"""Per-owner fixed-window rate limiting for generation requests.

A window opens at the owner's first counted request and lasts
`window_seconds`. The first request after it expires starts a fresh window.
Rejected requests are not counted.
"""

import asyncio
import time
from collections import defaultdict
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Callable, Optional, Protocol

import structlog

from thumbcraft.services.exceptions import RateLimitExceeded

logger = structlog.get_logger(__name__)


@dataclass
class RateLimitWindow:
    """Request count for one owner inside one window."""

    count: int
    reset_at: float  # epoch seconds


class RateLimitStore(Protocol):
    """Storage for rate limit windows.

    `acquire` must be atomic per key: read the window, decide, and write it
    back without interleaving with another caller for the same key.
    """

    async def acquire(
        self, key: str, limit: int, window_seconds: int, now: float
    ) -> tuple[bool, RateLimitWindow]: ...


class InMemoryRateLimitStore:
    """Process-local store guarded by one asyncio.Lock per key.

    Expired windows are swept at most once per window length.
    """

    def __init__(self):
        self._windows: dict[str, RateLimitWindow] = {}
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._next_sweep = 0.0

    def __len__(self) -> int:
        return len(self._windows)

    async def acquire(
        self, key: str, limit: int, window_seconds: int, now: float
    ) -> tuple[bool, RateLimitWindow]:
        if now >= self._next_sweep:
            self._evict_expired(now)
            self._next_sweep = now + window_seconds

        async with self._locks[key]:
            window = self._windows.get(key)
            if window is None or now >= window.reset_at:
                window = RateLimitWindow(count=0, reset_at=now + window_seconds)
                self._windows[key] = window

            if window.count >= limit:
                return False, window

            window.count += 1
            return True, window

    def _evict_expired(self, now: float) -> None:
        expired = [key for key, window in self._windows.items() if now >= window.reset_at]
        for key in expired:
            lock = self._locks.get(key)
            if lock is not None and lock.locked():
                continue
            del self._windows[key]
            self._locks.pop(key, None)
        if expired:
            logger.debug("rate_limit.windows_evicted", count=len(expired))

    def reset(self, key: Optional[str] = None) -> None:
        """Forget one owner's window, or all windows."""
        if key is None:
            self._windows.clear()
        else:
            self._windows.pop(key, None)


class RateLimiter:
    """Enforces at most `limit` generation requests per owner per window."""

    def __init__(
        self,
        store: RateLimitStore,
        limit: int = 10,
        window_seconds: int = 3600,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.limit = limit
        self.window_seconds = window_seconds
        self.clock = clock

    async def check(self, owner_id: str) -> int:
        """Count one request for the owner.

        Returns:
            Requests remaining in the current window

        Raises:
            RateLimitExceeded: If the owner already used the whole window
        """
        allowed, window = await self.store.acquire(
            owner_id, self.limit, self.window_seconds, self.clock()
        )
        reset_time = datetime.fromtimestamp(window.reset_at, tz=UTC)
        if not allowed:
            logger.warning(
                "rate_limit.exceeded",
                owner_id=owner_id,
                limit=self.limit,
                reset_time=reset_time.isoformat(),
            )
            raise RateLimitExceeded(owner_id, self.limit, reset_time)
        return self.limit - window.count
