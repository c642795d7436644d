"""Cooldown-based rate limiting.

Two independent gates guard the call endpoint:
- IP gate: one call request per client IP per minute
- Phone gate: one call per phone number per hour

A gate records the timestamp as soon as it lets a request through, so a
request that later fails downstream still uses up its slot. State lives in
memory only and is never swept; it resets when the process restarts.
"""

import asyncio
import logging
import math
import time
from collections.abc import Callable, Mapping
from typing import Protocol

from api.errors import RateLimitError

logger = logging.getLogger("call-gateway-rate-limit")

Clock = Callable[[], float]

# Cooldown windows
IP_COOLDOWN_SECONDS = 60
PHONE_COOLDOWN_SECONDS = 3600

# Bucket shared by every client we cannot identify
UNKNOWN_CLIENT = "unknown"


# =============================================================================
# Keyed Stores
# =============================================================================


class CooldownStore(Protocol):
    """Keyed store of last-accepted timestamps."""

    async def get(self, key: str) -> float | None: ...

    async def set_if_absent_or_expired(
        self, key: str, now: float, window_seconds: float
    ) -> bool: ...


class InMemoryCooldownStore:
    """Process-local cooldown store.

    Check-and-set is serialized with an asyncio.Lock, which makes it atomic
    within one event loop. There is no cross-process guarantee.
    """

    def __init__(self):
        self._last_seen: dict[str, float] = {}
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> float | None:
        """Last accepted timestamp for key, or None if never seen."""
        async with self._lock:
            return self._last_seen.get(key)

    async def set_if_absent_or_expired(
        self, key: str, now: float, window_seconds: float
    ) -> bool:
        """Record `now` for key unless the previous entry is still cooling down.

        Returns True if the timestamp was recorded (gate open).
        """
        async with self._lock:
            last = self._last_seen.get(key)
            if last is not None and now - last < window_seconds:
                return False
            self._last_seen[key] = now
            return True

    def __len__(self) -> int:
        return len(self._last_seen)


# =============================================================================
# Gates
# =============================================================================


def describe_window(seconds: float) -> str:
    """Human-readable cooldown length ("1 minute", "1 hour", "90 seconds")."""
    if seconds >= 3600 and seconds % 3600 == 0:
        hours = int(seconds // 3600)
        return f"{hours} hour" if hours == 1 else f"{hours} hours"
    if seconds >= 60 and seconds % 60 == 0:
        minutes = int(seconds // 60)
        return f"{minutes} minute" if minutes == 1 else f"{minutes} minutes"
    return f"{seconds:g} seconds"


class CooldownGate:
    """One test-and-set cooldown check against a keyed store."""

    def __init__(
        self,
        name: str,
        window_seconds: float,
        store: CooldownStore,
        message: str,
    ):
        self.name = name
        self.window_seconds = window_seconds
        self.store = store
        self.message = message

    async def check(self, key: str, now: float) -> None:
        """Let the request through or raise RateLimitError."""
        if await self.store.set_if_absent_or_expired(key, now, self.window_seconds):
            return

        last = await self.store.get(key)
        remaining = self.window_seconds - (now - last) if last is not None else 0
        retry_after = max(1, math.ceil(remaining))

        logger.warning(f"{self.name} gate closed for {key}: retry in {retry_after}s")
        raise RateLimitError(
            self.message,
            gate=self.name,
            window_seconds=self.window_seconds,
            retry_after_seconds=retry_after,
        )


class RateLimiter:
    """IP and phone cooldown gates sharing one clock."""

    def __init__(
        self,
        ip_window_seconds: float = IP_COOLDOWN_SECONDS,
        phone_window_seconds: float = PHONE_COOLDOWN_SECONDS,
        ip_store: CooldownStore | None = None,
        phone_store: CooldownStore | None = None,
        clock: Clock = time.time,
    ):
        self.clock = clock
        self.ip_gate = CooldownGate(
            "ip",
            ip_window_seconds,
            ip_store if ip_store is not None else InMemoryCooldownStore(),
            f"Rate limit exceeded. Try again in {describe_window(ip_window_seconds)}.",
        )
        self.phone_gate = CooldownGate(
            "phone",
            phone_window_seconds,
            phone_store if phone_store is not None else InMemoryCooldownStore(),
            f"Phone already called within {describe_window(phone_window_seconds)}.",
        )

    async def check_ip(self, ip: str) -> None:
        await self.ip_gate.check(ip, self.clock())

    async def check_phone(self, phone: str) -> None:
        await self.phone_gate.check(phone, self.clock())


def client_ip(headers: Mapping[str, str]) -> str:
    """Caller IP: first X-Forwarded-For hop, then X-Real-IP, then "unknown"."""
    forwarded = headers.get("x-forwarded-for", "")
    first_hop = forwarded.split(",")[0].strip()
    if first_hop:
        return first_hop

    real_ip = headers.get("x-real-ip", "").strip()
    if real_ip:
        return real_ip

    return UNKNOWN_CLIENT
