"""Tests for provider selection."""

import pytest

from shared.llm_adapter.factory import build_completion_client, get_llm_provider
from shared.llm_adapter.mock_provider import MockProvider


def test_mock_is_the_default(monkeypatch) -> None:
    monkeypatch.delenv("LLM_PROVIDER", raising=False)
    provider = get_llm_provider()
    assert isinstance(provider, MockProvider)
    assert provider.model == "mock-deterministic"


def test_unknown_provider_is_rejected() -> None:
    with pytest.raises(ValueError):
        get_llm_provider("carrier-pigeon")


def test_openai_compatible_provider_reports_its_default_model(monkeypatch) -> None:
    monkeypatch.setenv("LLM_API_KEY", "test-key")
    monkeypatch.delenv("LLM_MODEL", raising=False)
    assert get_llm_provider("gemini").model == "gemini-2.5-flash"


async def test_mock_client_completes_end_to_end() -> None:
    from shared.llm_adapter import CompletionRequest

    client = build_completion_client(provider_name="mock")
    result = await client.complete(CompletionRequest(topic_id="t", prompt="hello"))

    assert result.model == "mock-deterministic"
    assert result.content.startswith("[MOCK] ")
