"""
Resilient completion client.

Wraps an LLMProvider with:
- a response cache keyed by (topic, prompt) fingerprint
- a bounded retry loop that honours backend retry-after advisories and
  otherwise backs off exponentially with jitter
- a per-call timeout on each backend invocation

Only the terminal outcome leaves ``complete``: a CompletionResult, or a
RateLimited / BackendUnavailable error.
"""

from __future__ import annotations

import asyncio
import logging
import random

from pydantic import ValidationError

from shared.llm_adapter.base import LLMProvider
from shared.llm_adapter.cache import DEFAULT_TTL_SECONDS, ResponseCache, make_fingerprint
from shared.llm_adapter.classify import FailureKind, classify_failure
from shared.llm_adapter.errors import BackendUnavailable, CacheUnavailable, RateLimited
from shared.llm_adapter.models import ChatMessage, CompletionRequest, CompletionResult
from shared.llm_adapter.retry import Clock, RetryPolicy, SystemClock
from shared.observability.metrics import (
    llm_backoff_seconds,
    llm_cache_lookups,
    llm_requests,
    llm_retries,
)

logger = logging.getLogger(__name__)

DEFAULT_REQUEST_TIMEOUT_SECONDS = 30.0


def _short(key: str) -> str:
    return key.rsplit(":", 1)[-1][:16]


class ResilientCompletionClient:

    def __init__(
        self,
        provider: LLMProvider,
        cache: ResponseCache | None = None,
        policy: RetryPolicy | None = None,
        clock: Clock | None = None,
        rng: random.Random | None = None,
        cache_ttl_seconds: int = DEFAULT_TTL_SECONDS,
        request_timeout_seconds: float | None = DEFAULT_REQUEST_TIMEOUT_SECONDS,
        coalesce_inflight: bool = False,
    ) -> None:
        self._provider = provider
        self._cache = cache
        self._policy = policy or RetryPolicy()
        self._clock = clock or SystemClock()
        self._rng = rng or random.Random()
        self._cache_ttl = cache_ttl_seconds
        self._timeout = request_timeout_seconds
        self._coalesce = coalesce_inflight
        self._inflight: dict[str, asyncio.Task] = {}

    @property
    def cache(self) -> ResponseCache | None:
        return self._cache

    async def start(self) -> None:
        if self._cache:
            await self._cache.start()

    async def stop(self) -> None:
        if self._cache:
            await self._cache.stop()

    async def complete(self, request: CompletionRequest) -> CompletionResult:
        """Return a completion for ``request``, from cache when possible."""
        key = make_fingerprint(request.topic_id, request.prompt)

        cached = await self._cache_get(key)
        if cached is not None:
            llm_requests.labels(outcome="cached").inc()
            return cached

        if not self._coalesce:
            return await self._fetch_and_store(key, request)

        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._fetch_and_store(key, request))
            self._inflight[key] = task
            task.add_done_callback(lambda t: self._release_inflight(key, t))
        else:
            logger.debug("Joining in-flight completion for key %s", _short(key))
        return await asyncio.shield(task)

    def _release_inflight(self, key: str, task: asyncio.Task) -> None:
        self._inflight.pop(key, None)
        # Every waiter may have been cancelled; mark the failure as retrieved.
        if not task.cancelled():
            task.exception()

    async def _fetch_and_store(
        self, key: str, request: CompletionRequest
    ) -> CompletionResult:
        try:
            result = await self._call_with_retry(
                request.to_messages(), request.system_instruction
            )
        except RateLimited:
            llm_requests.labels(outcome="rate_limited").inc()
            raise
        except BackendUnavailable:
            llm_requests.labels(outcome="unavailable").inc()
            raise

        result = result.model_copy(update={"cached": False, "fingerprint": key})
        await self._cache_set(key, result)
        llm_requests.labels(outcome="success").inc()
        return result

    async def _call_with_retry(
        self,
        messages: list[ChatMessage],
        system_instruction: str | None,
    ) -> CompletionResult:
        max_attempts = self._policy.max_attempts
        attempt = 0

        while True:
            attempt += 1
            try:
                return await asyncio.wait_for(
                    self._provider.generate(
                        messages, system_instruction=system_instruction
                    ),
                    timeout=self._timeout,
                )
            except Exception as exc:
                failure = classify_failure(exc)
                last_attempt = attempt >= max_attempts

                if failure.kind is FailureKind.FATAL:
                    logger.error(
                        "Backend call failed on attempt %d (status=%s): %s",
                        attempt, failure.status, exc,
                    )
                    raise BackendUnavailable(exc) from exc

                if failure.kind is FailureKind.RETRY_AFTER:
                    if last_attempt:
                        logger.error(
                            "Rate limited after %d attempts; backend asks for %ds",
                            attempt, failure.retry_after_seconds,
                            extra={"retry_after_seconds": failure.retry_after_seconds},
                        )
                        raise RateLimited(failure.retry_after_seconds) from exc
                    delay_ms = self._policy.retry_after_ms(failure.retry_after_seconds)
                else:
                    if last_attempt:
                        logger.error("Rate limited after %d attempts", attempt)
                        raise RateLimited(None) from exc
                    delay_ms = self._policy.backoff_ms(attempt, self._rng)

            llm_retries.labels(reason=failure.kind.value).inc()
            llm_backoff_seconds.observe(delay_ms / 1000)
            logger.warning(
                "Backend %s on attempt %d/%d, retrying in %.0fms",
                failure.kind.value, attempt, max_attempts, delay_ms,
                extra={
                    "attempt": attempt,
                    "max_attempts": max_attempts,
                    "delay_ms": round(delay_ms),
                    "status": failure.status,
                },
            )
            await self._clock.sleep(delay_ms / 1000)

    async def _cache_get(self, key: str) -> CompletionResult | None:
        if self._cache is None:
            return None
        try:
            raw = await self._cache.get(key)
        except CacheUnavailable:
            logger.warning("Cache read failed for key %s; treating as miss", _short(key), exc_info=True)
            llm_cache_lookups.labels(result="error").inc()
            return None

        if raw is None:
            llm_cache_lookups.labels(result="miss").inc()
            return None

        try:
            result = CompletionResult.model_validate_json(raw)
        except ValidationError:
            logger.warning("Discarding undecodable cache entry %s", _short(key))
            llm_cache_lookups.labels(result="error").inc()
            return None

        logger.debug("LLM cache HIT for key %s", _short(key), extra={"cache_key": _short(key)})
        llm_cache_lookups.labels(result="hit").inc()
        return result.model_copy(update={"cached": True, "fingerprint": key})

    async def _cache_set(self, key: str, result: CompletionResult) -> None:
        if self._cache is None:
            return
        try:
            await self._cache.set(key, result.model_dump_json(), self._cache_ttl)
        except CacheUnavailable:
            logger.warning("Cache write failed for key %s", _short(key), exc_info=True)
