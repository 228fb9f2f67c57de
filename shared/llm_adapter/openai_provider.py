"""
OpenAI-compatible LLM provider.

Works with any API that speaks the OpenAI Chat Completions protocol:
  - OpenAI      (base_url=https://api.openai.com/v1)
  - Groq        (base_url=https://api.groq.com/openai/v1)         -- free tier
  - Google      (base_url=https://generativelanguage.googleapis.com/v1beta/openai)  -- free tier
  - OpenRouter  (base_url=https://openrouter.ai/api/v1)           -- free models

The SDK's own retries are disabled; ResilientCompletionClient owns retry
policy so that rate-limit advisories are honoured exactly once.
"""

from __future__ import annotations

import os
from typing import Any

from openai import AsyncOpenAI

from shared.llm_adapter.base import LLMProvider
from shared.llm_adapter.models import ChatMessage, CompletionResult

_BASE_URLS: dict[str, str] = {
    "openai":     "https://api.openai.com/v1",
    "groq":       "https://api.groq.com/openai/v1",
    "gemini":     "https://generativelanguage.googleapis.com/v1beta/openai/",
    "openrouter": "https://openrouter.ai/api/v1",
}

_DEFAULT_MODELS: dict[str, str] = {
    "openai":     "gpt-4o-mini",
    "groq":       "llama-3.3-70b-versatile",
    "gemini":     "gemini-2.5-flash",
    "openrouter": "meta-llama/llama-3.3-70b-instruct:free",
}


class OpenAIProvider(LLMProvider):
    """
    OpenAI Chat Completions adapter.

    Reads from env:
      LLM_API_KEY          -- API key (also checked as OPENAI_API_KEY / GEMINI_API_KEY)
      LLM_BASE_URL         -- override the provider's base URL
      LLM_MODEL            -- override the default model for the provider
      LLM_REQUEST_TIMEOUT  -- SDK-level HTTP timeout in seconds
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        model: str | None = None,
        provider_name: str = "gemini",
        temperature: float = 0.4,
    ) -> None:
        self._provider_name = provider_name
        self._temperature = temperature

        self._api_key = (
            api_key
            or os.environ.get("LLM_API_KEY", "")
            or os.environ.get("OPENAI_API_KEY", "")
            or os.environ.get("GEMINI_API_KEY", "")
        )
        # Local servers (Ollama / LM Studio) usually accept any key.
        if not self._api_key and provider_name == "local":
            self._api_key = "local-placeholder-key"
        elif not self._api_key:
            raise ValueError(
                f"An API key is required for provider '{provider_name}'. "
                "Set LLM_API_KEY in your environment."
            )

        self._base_url = (
            base_url
            or os.environ.get("LLM_BASE_URL", "")
            or _BASE_URLS.get(provider_name, _BASE_URLS["openai"])
        )

        self._model = (
            model
            or os.environ.get("LLM_MODEL", "")
            or _DEFAULT_MODELS.get(provider_name, "gpt-4o-mini")
        )

        timeout = float(os.environ.get("LLM_REQUEST_TIMEOUT", "30"))
        self._client = AsyncOpenAI(
            api_key=self._api_key,
            base_url=self._base_url,
            timeout=timeout,
            max_retries=0,
        )

    @property
    def model(self) -> str:
        return self._model

    @staticmethod
    def build_messages(
        messages: list[ChatMessage],
        system_instruction: str | None = None,
    ) -> list[dict[str, Any]]:
        payload: list[dict[str, Any]] = []
        if system_instruction:
            payload.append({"role": "system", "content": system_instruction})
        payload.extend(
            {"role": m.role.value, "content": m.text} for m in messages
        )
        return payload

    async def generate(
        self,
        messages: list[ChatMessage],
        system_instruction: str | None = None,
    ) -> CompletionResult:
        response = await self._client.chat.completions.create(
            model=self._model,
            temperature=self._temperature,
            messages=self.build_messages(messages, system_instruction),
        )

        choice = response.choices[0]
        usage = response.usage

        return CompletionResult(
            content=choice.message.content or "",
            model=response.model,
            prompt_tokens=usage.prompt_tokens if usage else 0,
            completion_tokens=usage.completion_tokens if usage else 0,
            total_tokens=usage.total_tokens if usage else 0,
        )
