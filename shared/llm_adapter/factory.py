"""
Provider factory -- single entry point for building the completion client.

Reads LLM_PROVIDER from env (default: 'mock') and returns a
ResilientCompletionClient wrapping the chosen backend.

Supported providers:

  mock        Built-in deterministic mock, no API key needed (default)
  openai      OpenAI API  -- needs LLM_API_KEY (or OPENAI_API_KEY)
  groq        Groq API    -- free tier, needs LLM_API_KEY
  gemini      Google AI   -- OpenAI-compatible endpoint, needs LLM_API_KEY
                            (or GEMINI_API_KEY). Default model: gemini-2.5-flash
  openrouter  OpenRouter  -- free models available, needs LLM_API_KEY
  local       Any OpenAI-compatible local server
                            e.g. Ollama / LM Studio (no key required)

The response cache is Redis when a URL is given, in-memory otherwise.
Nothing here is a module-level singleton: the caller owns the client and
must call start()/stop() around its lifetime.
"""

from __future__ import annotations

import logging
import os

from shared.llm_adapter.base import LLMProvider
from shared.llm_adapter.cache import (
    DEFAULT_SWEEP_INTERVAL_SECONDS,
    DEFAULT_TTL_SECONDS,
    InMemoryResponseCache,
    RedisResponseCache,
    ResponseCache,
)
from shared.llm_adapter.client import (
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    ResilientCompletionClient,
)
from shared.llm_adapter.mock_provider import MockProvider
from shared.llm_adapter.retry import RetryPolicy, SystemClock

logger = logging.getLogger(__name__)

_OPENAI_COMPATIBLE = {"openai", "groq", "gemini", "openrouter", "local"}


def get_llm_provider(provider_name: str | None = None) -> LLMProvider:
    name = (provider_name or os.environ.get("LLM_PROVIDER", "mock")).lower()

    if name == "mock":
        return MockProvider()

    if name in _OPENAI_COMPATIBLE:
        from shared.llm_adapter.openai_provider import OpenAIProvider

        return OpenAIProvider(provider_name=name)

    raise ValueError(
        f"Unknown LLM provider '{name}'. "
        f"Available: mock, openai, groq, gemini, openrouter, local"
    )


def build_completion_client(
    provider_name: str | None = None,
    redis_url: str | None = None,
    cache_ttl_seconds: int = DEFAULT_TTL_SECONDS,
    sweep_interval_seconds: float = DEFAULT_SWEEP_INTERVAL_SECONDS,
    max_attempts: int = 4,
    request_timeout_seconds: float = DEFAULT_REQUEST_TIMEOUT_SECONDS,
    coalesce_inflight: bool = False,
) -> ResilientCompletionClient:
    """Build a ResilientCompletionClient for the configured backend."""
    provider = get_llm_provider(provider_name)
    clock = SystemClock()

    cache: ResponseCache
    if redis_url:
        cache = RedisResponseCache(redis_url)
    else:
        cache = InMemoryResponseCache(
            clock=clock, sweep_interval_seconds=sweep_interval_seconds
        )

    client = ResilientCompletionClient(
        provider=provider,
        cache=cache,
        policy=RetryPolicy(max_attempts=max_attempts),
        clock=clock,
        cache_ttl_seconds=cache_ttl_seconds,
        request_timeout_seconds=request_timeout_seconds,
        coalesce_inflight=coalesce_inflight,
    )
    logger.info(
        "Completion client initialized: %s (model=%s, cache=%s, max_attempts=%d)",
        type(provider).__name__,
        provider.model,
        "redis" if redis_url else "memory",
        max_attempts,
    )
    return client
