"""
Deterministic mock LLM provider for local development.

Always returns the same output for the same final prompt, so the mentor
UI can be exercised end to end without an API key or network calls.
"""

from __future__ import annotations

import hashlib

from shared.llm_adapter.base import LLMProvider
from shared.llm_adapter.models import ChatMessage, CompletionResult

_MOCK_PREFIX = "[MOCK] "
_MOCK_MODEL = "mock-deterministic"


class MockProvider(LLMProvider):

    @property
    def model(self) -> str:
        return _MOCK_MODEL

    async def generate(
        self,
        messages: list[ChatMessage],
        system_instruction: str | None = None,
    ) -> CompletionResult:
        prompt = messages[-1].text if messages else ""
        prompt_hash = hashlib.sha256(prompt.encode()).hexdigest()

        content = (
            f"{_MOCK_PREFIX}Hint for prompt {prompt_hash[:12]}: re-read the issue "
            f"and look closely at the code it mentions ({len(messages) - 1} earlier turns)."
        )

        fake_prompt_tokens = sum(len(m.text.split()) for m in messages)
        if system_instruction:
            fake_prompt_tokens += len(system_instruction.split())
        fake_completion_tokens = len(content.split())

        return CompletionResult(
            content=content,
            model=_MOCK_MODEL,
            prompt_tokens=fake_prompt_tokens,
            completion_tokens=fake_completion_tokens,
            total_tokens=fake_prompt_tokens + fake_completion_tokens,
        )
