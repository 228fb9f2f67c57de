"""Shared test fixtures."""

from __future__ import annotations

import random
from typing import Any

import pytest

from fakes import FakeClock
from shared.llm_adapter import (
    InMemoryResponseCache,
    LLMProvider,
    ResilientCompletionClient,
    RetryPolicy,
)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> InMemoryResponseCache:
    return InMemoryResponseCache(clock=clock)


@pytest.fixture
def make_client(clock: FakeClock, cache: InMemoryResponseCache):
    def _make(provider: LLMProvider, **kwargs: Any) -> ResilientCompletionClient:
        kwargs.setdefault("policy", RetryPolicy())
        kwargs.setdefault("rng", random.Random(7))
        kwargs.setdefault("cache", cache)
        return ResilientCompletionClient(provider=provider, clock=clock, **kwargs)

    return _make
