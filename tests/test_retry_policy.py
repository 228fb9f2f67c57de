"""Tests for backoff arithmetic."""

import random

import pytest

from shared.llm_adapter.retry import RetryPolicy


@pytest.mark.parametrize("attempt", [1, 2, 3, 4, 5])
def test_backoff_within_jitter_window(attempt: int) -> None:
    policy = RetryPolicy()
    rng = random.Random(attempt)
    base = 500 * 2 ** attempt
    for _ in range(50):
        delay = policy.backoff_ms(attempt, rng)
        assert base <= delay <= base + 300


def test_first_attempt_backs_off_about_one_second() -> None:
    delay = RetryPolicy().backoff_ms(1, random.Random(0))
    assert 1000 <= delay <= 1300


def test_backoff_is_capped() -> None:
    policy = RetryPolicy()
    rng = random.Random(1)
    for attempt in (6, 10, 30):
        delay = policy.backoff_ms(attempt, rng)
        assert 30_000 <= delay <= 30_300


def test_retry_after_adds_safety_margin() -> None:
    assert RetryPolicy().retry_after_ms(58) == 58_200
    assert RetryPolicy().retry_after_ms(0) == 200


def test_max_attempts_must_be_positive() -> None:
    with pytest.raises(ValueError):
        RetryPolicy(max_attempts=0)
