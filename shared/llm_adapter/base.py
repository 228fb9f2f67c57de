"""Abstract base class that all LLM providers must implement."""

from __future__ import annotations

from abc import ABC, abstractmethod

from shared.llm_adapter.models import ChatMessage, CompletionResult


class LLMProvider(ABC):
    """
    Contract for chat-completion backends.

    Every implementation MUST:
    - Send ``messages`` in order, preceded by ``system_instruction`` if given
    - Return a fully populated CompletionResult including token counts
    - Let the SDK's own exceptions propagate; classification happens in
      the completion client, not here
    """

    @abstractmethod
    async def generate(
        self,
        messages: list[ChatMessage],
        system_instruction: str | None = None,
    ) -> CompletionResult:
        """Send the conversation and return the model's reply."""

    @property
    def model(self) -> str:
        """Model name requests are sent to."""
        return type(self).__name__
