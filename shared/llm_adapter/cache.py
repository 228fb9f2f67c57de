"""
LLM response caching layer.

Completion results are stored as JSON strings under a fingerprint of
(topic, prompt). Two backends:
- In-memory dict with lazy eviction and a periodic sweep task (default)
- Redis (shared across service instances and restarts)

The cache is advisory: backends signal trouble with CacheUnavailable and
the completion client treats that as a miss.
"""

from __future__ import annotations

import asyncio
import contextlib
import hashlib
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from shared.llm_adapter.errors import CacheUnavailable
from shared.llm_adapter.retry import Clock, SystemClock

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 3600
DEFAULT_SWEEP_INTERVAL_SECONDS = 60.0


def make_fingerprint(topic_id: str, prompt: str) -> str:
    """Cache key for a prompt on a topic. History is not part of the key."""
    raw = json.dumps({"topic": topic_id, "prompt": prompt}, sort_keys=True)
    return f"llm_cache:{hashlib.sha256(raw.encode()).hexdigest()}"


@dataclass
class CacheEntry:
    value: str
    expires_at: float


class ResponseCache(ABC):

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the stored value, or None if absent or expired."""

    @abstractmethod
    async def set(self, key: str, value: str, ttl_seconds: int = DEFAULT_TTL_SECONDS) -> None:
        """Store a value, overwriting any previous entry."""

    async def start(self) -> None:
        pass

    async def stop(self) -> None:
        pass


class InMemoryResponseCache(ResponseCache):
    """Process-local cache. Not shared between workers."""

    def __init__(
        self,
        clock: Clock | None = None,
        sweep_interval_seconds: float = DEFAULT_SWEEP_INTERVAL_SECONDS,
    ) -> None:
        self._clock = clock or SystemClock()
        self._sweep_interval = sweep_interval_seconds
        self._entries: dict[str, CacheEntry] = {}
        self._sweeper: asyncio.Task | None = None

    def __len__(self) -> int:
        return len(self._entries)

    async def get(self, key: str) -> str | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires_at < self._clock.now():
            self._entries.pop(key, None)
            return None
        return entry.value

    async def set(self, key: str, value: str, ttl_seconds: int = DEFAULT_TTL_SECONDS) -> None:
        self._entries[key] = CacheEntry(
            value=value, expires_at=self._clock.now() + ttl_seconds
        )

    def sweep(self) -> int:
        """Drop every expired entry. Returns how many were removed."""
        now = self._clock.now()
        expired = [k for k, e in self._entries.items() if e.expires_at < now]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug("Swept %d expired cache entries", len(expired))
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()

    async def start(self) -> None:
        if self._sweeper is None or self._sweeper.done():
            self._sweeper = asyncio.create_task(self._sweep_forever())

    async def stop(self) -> None:
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._sweeper
        self._sweeper = None

    @property
    def running(self) -> bool:
        return self._sweeper is not None and not self._sweeper.done()

    async def _sweep_forever(self) -> None:
        while True:
            await asyncio.sleep(self._sweep_interval)
            self.sweep()


class RedisResponseCache(ResponseCache):
    """Redis-backed cache; expiry is enforced server-side via EX."""

    def __init__(self, redis_url: str) -> None:
        self._redis = aioredis.from_url(redis_url, decode_responses=True)

    async def get(self, key: str) -> str | None:
        try:
            return await self._redis.get(key)
        except RedisError as exc:
            raise CacheUnavailable(f"redis GET failed: {exc}") from exc

    async def set(self, key: str, value: str, ttl_seconds: int = DEFAULT_TTL_SECONDS) -> None:
        try:
            await self._redis.set(key, value, ex=ttl_seconds)
        except RedisError as exc:
            raise CacheUnavailable(f"redis SET failed: {exc}") from exc

    async def stop(self) -> None:
        await self._redis.aclose()
