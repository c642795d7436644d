"""Tests for cooldown stores and gates."""

import pytest

from api.errors import RateLimitError
from api.rate_limit import (
    InMemoryCooldownStore,
    RateLimiter,
    client_ip,
    describe_window,
)
from fakes import ManualClock


class TestInMemoryCooldownStore:
    """Tests for the keyed store."""

    @pytest.mark.asyncio
    async def test_first_set_succeeds(self):
        """Unknown key is recorded."""
        store = InMemoryCooldownStore()

        assert await store.set_if_absent_or_expired("+14155551234", 100.0, 60) is True
        assert await store.get("+14155551234") == 100.0

    @pytest.mark.asyncio
    async def test_set_within_window_refused(self):
        """Key still cooling down keeps its original timestamp."""
        store = InMemoryCooldownStore()
        await store.set_if_absent_or_expired("k", 100.0, 60)

        assert await store.set_if_absent_or_expired("k", 159.0, 60) is False
        assert await store.get("k") == 100.0

    @pytest.mark.asyncio
    async def test_set_after_window_moves_forward(self):
        """Expired key is overwritten with the newer timestamp."""
        store = InMemoryCooldownStore()
        await store.set_if_absent_or_expired("k", 100.0, 60)

        assert await store.set_if_absent_or_expired("k", 160.0, 60) is True
        assert await store.get("k") == 160.0

    @pytest.mark.asyncio
    async def test_clock_going_backwards_does_not_rewind(self):
        """Earlier timestamp never replaces a later one."""
        store = InMemoryCooldownStore()
        await store.set_if_absent_or_expired("k", 100.0, 60)

        assert await store.set_if_absent_or_expired("k", 10.0, 60) is False
        assert await store.get("k") == 100.0

    @pytest.mark.asyncio
    async def test_keys_are_independent(self):
        """Cooldown for one key does not affect another."""
        store = InMemoryCooldownStore()
        await store.set_if_absent_or_expired("a", 100.0, 60)

        assert await store.set_if_absent_or_expired("b", 100.0, 60) is True
        assert len(store) == 2


class TestRateLimiter:
    """Tests for the IP and phone gates."""

    @pytest.mark.asyncio
    async def test_ip_gate_blocks_within_minute(self):
        """Second check for the same IP raises with the IP gate."""
        clock = ManualClock()
        limiter = RateLimiter(clock=clock)
        await limiter.check_ip("1.2.3.4")
        clock.advance(30)

        with pytest.raises(RateLimitError) as exc_info:
            await limiter.check_ip("1.2.3.4")

        assert exc_info.value.gate == "ip"
        assert exc_info.value.retry_after_seconds == 30
        assert exc_info.value.message == "Rate limit exceeded. Try again in 1 minute."

    @pytest.mark.asyncio
    async def test_phone_gate_blocks_within_hour(self):
        """Phone gate holds for the full hour."""
        clock = ManualClock()
        limiter = RateLimiter(clock=clock)
        await limiter.check_phone("+14155551234")
        clock.advance(3599)

        with pytest.raises(RateLimitError) as exc_info:
            await limiter.check_phone("+14155551234")

        assert exc_info.value.gate == "phone"
        assert exc_info.value.retry_after_seconds == 1

    @pytest.mark.asyncio
    async def test_phone_gate_reopens_after_hour(self):
        """Phone can be called again once the hour is over."""
        clock = ManualClock()
        limiter = RateLimiter(clock=clock)
        await limiter.check_phone("+14155551234")
        clock.advance(3600)

        await limiter.check_phone("+14155551234")

    @pytest.mark.asyncio
    async def test_gates_use_separate_stores(self):
        """An IP string and a phone string never share a bucket."""
        limiter = RateLimiter(clock=ManualClock())

        await limiter.check_ip("shared-key")
        await limiter.check_phone("shared-key")

    @pytest.mark.asyncio
    async def test_injected_store_is_used(self):
        """Callers can supply their own store."""
        store = InMemoryCooldownStore()
        limiter = RateLimiter(ip_store=store, clock=ManualClock())

        await limiter.check_ip("1.2.3.4")

        assert await store.get("1.2.3.4") is not None

    @pytest.mark.asyncio
    async def test_custom_windows(self):
        """Windows come from the constructor."""
        clock = ManualClock()
        limiter = RateLimiter(ip_window_seconds=5, clock=clock)
        await limiter.check_ip("1.2.3.4")
        clock.advance(5)

        await limiter.check_ip("1.2.3.4")


class TestClientIp:
    """Tests for client IP extraction."""

    def test_forwarded_for_first_hop(self):
        """First X-Forwarded-For entry is the client."""
        headers = {"x-forwarded-for": "203.0.113.7, 10.0.0.1"}
        assert client_ip(headers) == "203.0.113.7"

    def test_real_ip_fallback(self):
        """X-Real-IP is used without X-Forwarded-For."""
        assert client_ip({"x-real-ip": "198.51.100.9"}) == "198.51.100.9"

    def test_forwarded_for_wins_over_real_ip(self):
        """X-Forwarded-For takes precedence."""
        headers = {"x-forwarded-for": "203.0.113.7", "x-real-ip": "198.51.100.9"}
        assert client_ip(headers) == "203.0.113.7"

    def test_unknown_when_no_headers(self):
        """Unidentifiable clients share the "unknown" bucket."""
        assert client_ip({}) == "unknown"

    def test_blank_header_falls_through(self):
        """Empty X-Forwarded-For is ignored."""
        assert client_ip({"x-forwarded-for": " ", "x-real-ip": "10.0.0.1"}) == "10.0.0.1"


class TestDescribeWindow:
    """Tests for window descriptions in rate-limit messages."""

    @pytest.mark.parametrize(
        ("seconds", "expected"),
        [
            (60, "1 minute"),
            (120, "2 minutes"),
            (3600, "1 hour"),
            (7200, "2 hours"),
            (90, "90 seconds"),
        ],
    )
    def test_describe_window(self, seconds, expected):
        assert describe_window(seconds) == expected
