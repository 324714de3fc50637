"""
Tests for the login rate limiter.
"""

import asyncio

import pytest

from hvac_portal.core.auth import InMemoryCounterStore, RateLimiter


@pytest.fixture
def limiter(monotonic):
    return RateLimiter(InMemoryCounterStore(), clock=monotonic)


class TestFixedWindow:
    """Attempts counted within a fixed window."""

    @pytest.mark.asyncio
    async def test_first_attempts_allowed_then_denied(self, limiter):
        """The first max_attempts calls pass, the next one is refused."""
        results = [await limiter.check("10.0.0.1", 5, 900) for _ in range(6)]

        assert results == [True, True, True, True, True, False]

    @pytest.mark.asyncio
    async def test_denied_attempts_stay_denied_within_window(self, limiter, monotonic):
        """Once exhausted, further calls in the same window keep failing."""
        for _ in range(5):
            await limiter.check("10.0.0.1", 5, 900)

        monotonic.advance(899)
        assert await limiter.check("10.0.0.1", 5, 900) is False
        assert await limiter.check("10.0.0.1", 5, 900) is False

    @pytest.mark.asyncio
    async def test_window_resets_after_elapsed(self, limiter, monotonic):
        """After the window elapses the counter starts over."""
        for _ in range(6):
            await limiter.check("10.0.0.1", 5, 900)

        monotonic.advance(900)

        assert await limiter.check("10.0.0.1", 5, 900) is True

    @pytest.mark.asyncio
    async def test_clients_counted_separately(self, limiter):
        """Exhausting one client does not affect another."""
        for _ in range(5):
            await limiter.check("10.0.0.1", 5, 900)

        assert await limiter.check("10.0.0.1", 5, 900) is False
        assert await limiter.check("10.0.0.2", 5, 900) is True

    @pytest.mark.asyncio
    async def test_missing_client_id_shares_unknown_bucket(self, limiter):
        """Empty client ids all count against the same bucket."""
        assert await limiter.check("", 1, 900) is True
        assert await limiter.check(None, 1, 900) is False

    @pytest.mark.asyncio
    async def test_rejects_non_positive_limits(self, limiter):
        """max_attempts and window_seconds must be positive."""
        with pytest.raises(ValueError):
            await limiter.check("10.0.0.1", 0, 900)
        with pytest.raises(ValueError):
            await limiter.check("10.0.0.1", 5, 0)


class TestRetryAfter:
    """Seconds until the window rolls over."""

    @pytest.mark.asyncio
    async def test_retry_after_counts_down(self, limiter, monotonic):
        """retry_after reports the remaining window length."""
        await limiter.check("10.0.0.1", 5, 900)
        monotonic.advance(600)

        assert await limiter.retry_after("10.0.0.1", 900) == 300

    @pytest.mark.asyncio
    async def test_retry_after_unknown_client(self, limiter):
        """A client with no attempts can retry immediately."""
        assert await limiter.retry_after("10.0.0.9", 900) == 0


class TestConcurrency:
    """Concurrent attempts from one client."""

    @pytest.mark.asyncio
    async def test_concurrent_checks_never_exceed_limit(self, limiter):
        """Concurrent requests cannot both observe 'under limit'."""
        results = await asyncio.gather(
            *(limiter.check("10.0.0.1", 5, 900) for _ in range(20))
        )

        assert results.count(True) == 5
        assert results.count(False) == 15

    @pytest.mark.asyncio
    async def test_slow_store_still_serialized(self, monotonic):
        """Increments are serialized even when the store yields between calls."""

        class SlowStore(InMemoryCounterStore):
            async def get(self, key):
                await asyncio.sleep(0)
                return await super().get(key)

            async def increment(self, key):
                await asyncio.sleep(0)
                return await super().increment(key)

        limiter = RateLimiter(SlowStore(), clock=monotonic)
        results = await asyncio.gather(
            *(limiter.check("10.0.0.1", 3, 900) for _ in range(10))
        )

        assert results.count(True) == 3


class TestExpiredEntries:
    """Counters for clients whose window has elapsed are dropped."""

    @pytest.mark.asyncio
    async def test_expired_clients_pruned(self, monotonic):
        store = InMemoryCounterStore()
        limiter = RateLimiter(store, clock=monotonic)
        for i in range(500):
            await limiter.check(f"198.51.100.{i}", 5, 900)
        assert len(store) == 500

        monotonic.advance(10000)
        await limiter.check("10.0.0.1", 5, 900)

        assert len(store) == 1
        assert await store.get("198.51.100.1") is None

    @pytest.mark.asyncio
    async def test_live_windows_survive_sweep(self, monotonic):
        store = InMemoryCounterStore()
        limiter = RateLimiter(store, clock=monotonic)
        await limiter.check("10.0.0.1", 5, 900)
        monotonic.advance(600)
        for _ in range(5):
            await limiter.check("10.0.0.2", 5, 900)

        monotonic.advance(400)

        assert await limiter.check("10.0.0.2", 5, 900) is False
        assert await store.get("10.0.0.1") is None


class RecordingStore(InMemoryCounterStore):
    """Counter store that records every call it receives."""

    def __init__(self):
        super().__init__()
        self.calls = []

    async def get(self, key):
        self.calls.append(("get", key))
        await asyncio.sleep(0)
        return await super().get(key)

    async def increment(self, key):
        self.calls.append(("increment", key))
        await asyncio.sleep(0)
        return await super().increment(key)

    async def reset(self, key, window_start):
        self.calls.append(("reset", key))
        return await super().reset(key, window_start)

    async def delete_expired(self, window_started_before):
        self.calls.append(("delete_expired", window_started_before))
        return await super().delete_expired(window_started_before)


class TestCustomCounterStore:
    """Limiter driven through an injected counter store."""

    @pytest.mark.asyncio
    async def test_call_sequence(self, monotonic):
        store = RecordingStore()
        limiter = RateLimiter(store, clock=monotonic)

        assert await limiter.check("10.0.0.1", 2, 900) is True
        assert await limiter.check("10.0.0.1", 2, 900) is True
        assert await limiter.check("10.0.0.1", 2, 900) is False

        assert store.calls == [
            ("delete_expired", 100.0),
            ("get", "10.0.0.1"),
            ("reset", "10.0.0.1"),
            ("increment", "10.0.0.1"),
            ("get", "10.0.0.1"),
            ("increment", "10.0.0.1"),
            ("get", "10.0.0.1"),
        ]

    @pytest.mark.asyncio
    async def test_window_rollover_resets_through_store(self, monotonic):
        store = RecordingStore()
        limiter = RateLimiter(store, clock=monotonic)
        await limiter.check("10.0.0.1", 1, 900)
        monotonic.advance(900)
        store.calls.clear()

        assert await limiter.check("10.0.0.1", 1, 900) is True
        assert ("reset", "10.0.0.1") in store.calls

    @pytest.mark.asyncio
    async def test_concurrent_checks_serialized(self, monotonic):
        store = RecordingStore()
        limiter = RateLimiter(store, clock=monotonic)

        results = await asyncio.gather(
            *(limiter.check("10.0.0.1", 5, 900) for _ in range(12))
        )

        assert results.count(True) == 5
        assert (await store.get("10.0.0.1")).count == 5
        gets = [i for i, call in enumerate(store.calls) if call[0] == "get"]
        for current, following in zip(gets, gets[1:]):
            between = [call[0] for call in store.calls[current + 1:following]]
            assert between in ([], ["increment"], ["reset", "increment"])

    @pytest.mark.asyncio
    async def test_retry_after_reads_store(self, monotonic):
        store = RecordingStore()
        await store.reset("10.0.0.1", monotonic() - 300)
        limiter = RateLimiter(store, clock=monotonic)

        assert await limiter.retry_after("10.0.0.1", 900) == 600
        assert await limiter.retry_after(None, 900) == 0
