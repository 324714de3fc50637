"""
Login Rate Limiting

Fixed-window attempt counter per client identifier. Counter state lives in
an injectable store so tests can supply a deterministic clock and isolated
storage, and multi-instance deployments can back it with a shared store.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Protocol

logger = logging.getLogger(__name__)

UNKNOWN_CLIENT = "unknown"


@dataclass
class RateLimitEntry:
    """Attempts recorded for one client within the current window."""

    count: int
    window_start: float


class CounterStore(Protocol):
    """Storage for per-client attempt counters."""

    async def get(self, key: str) -> Optional[RateLimitEntry]: ...

    async def increment(self, key: str) -> RateLimitEntry: ...

    async def reset(self, key: str, window_start: float) -> RateLimitEntry: ...

    async def delete_expired(self, window_started_before: float) -> int: ...


class InMemoryCounterStore:
    """
    Process-local counter store.

    State is lost on restart, which is acceptable for login throttling.
    """

    def __init__(self):
        self._entries: Dict[str, RateLimitEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    async def get(self, key: str) -> Optional[RateLimitEntry]:
        return self._entries.get(key)

    async def increment(self, key: str) -> RateLimitEntry:
        entry = self._entries[key]
        entry.count += 1
        return entry

    async def reset(self, key: str, window_start: float) -> RateLimitEntry:
        entry = RateLimitEntry(count=0, window_start=window_start)
        self._entries[key] = entry
        return entry

    async def delete_expired(self, window_started_before: float) -> int:
        expired = [
            key for key, entry in self._entries.items()
            if entry.window_start <= window_started_before
        ]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()


class RateLimiter:
    """
    Fixed-window rate limiter.

    The first call for a client opens a window. Calls inside the window are
    allowed while fewer than max_attempts have been recorded; once the window
    has elapsed the counter starts over. The read-check-increment sequence
    runs under one lock so concurrent requests cannot both observe
    "under limit". Entries whose window has elapsed are swept at most once
    per window length.

    Usage:
        limiter = RateLimiter()
        if not await limiter.check(client_ip, max_attempts=5, window_seconds=900):
            raise RateLimitExceededError(...)
    """

    def __init__(
        self,
        store: Optional[CounterStore] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.store = store or InMemoryCounterStore()
        self._clock = clock
        self._lock = asyncio.Lock()
        self._last_sweep: Optional[float] = None

    async def check(self, client_id: str, max_attempts: int, window_seconds: float) -> bool:
        """
        Record an attempt for client_id and report whether it is allowed.

        Args:
            client_id: Client identifier (usually the source address)
            max_attempts: Attempts permitted per window
            window_seconds: Window length in seconds

        Returns:
            True if the attempt is allowed, False once the limit is reached
        """
        if max_attempts <= 0:
            raise ValueError("max_attempts must be positive")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")

        key = client_id or UNKNOWN_CLIENT

        async with self._lock:
            now = self._clock()
            await self._sweep(now, window_seconds)

            entry = await self.store.get(key)
            if entry is None or now - entry.window_start >= window_seconds:
                entry = await self.store.reset(key, now)

            if entry.count >= max_attempts:
                logger.warning(
                    f"Rate limit exceeded for {key}: {entry.count}/{max_attempts}",
                    extra={"client_id": key}
                )
                return False

            await self.store.increment(key)
            return True

    async def _sweep(self, now: float, window_seconds: float) -> None:
        if self._last_sweep is not None and now - self._last_sweep < window_seconds:
            return
        self._last_sweep = now
        removed = await self.store.delete_expired(now - window_seconds)
        if removed:
            logger.debug(f"Pruned {removed} expired rate limit entries")

    async def retry_after(self, client_id: str, window_seconds: float) -> int:
        """Seconds until the current window for client_id rolls over."""
        entry = await self.store.get(client_id or UNKNOWN_CLIENT)
        if entry is None:
            return 0
        remaining = entry.window_start + window_seconds - self._clock()
        return max(0, int(remaining + 0.999))
