"""Retry policy and the clock used for backoff sleeps and cache expiry."""

from __future__ import annotations

import asyncio
import random
import time
from dataclasses import dataclass
from typing import Protocol


class Clock(Protocol):
    def now(self) -> float:
        """Current time in seconds."""

    async def sleep(self, seconds: float) -> None:
        """Suspend the calling task only."""


class SystemClock:
    def now(self) -> float:
        return time.monotonic()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 4
    base_delay_ms: int = 500
    max_delay_ms: int = 30_000
    jitter_ms: int = 300
    retry_after_margin_ms: int = 200

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    def backoff_ms(self, attempt: int, rng: random.Random) -> float:
        """Exponential backoff for a 1-based attempt, capped, plus jitter."""
        base = min(self.max_delay_ms, self.base_delay_ms * (2 ** attempt))
        return base + rng.uniform(0, self.jitter_ms)

    def retry_after_ms(self, seconds: int) -> float:
        return seconds * 1000 + self.retry_after_margin_ms
