"""Data models for the LLM adapter layer."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ChatRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class ConversationTurn(BaseModel):
    """A single persisted chat turn. Turns are ordered by created_at."""

    model_config = ConfigDict(frozen=True)

    role: ChatRole
    content: str
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )


class ChatMessage(BaseModel):
    role: ChatRole
    text: str


class CompletionRequest(BaseModel):
    """
    A chat completion to run against the backend.

    ``history`` is oldest-first; ``prompt`` is sent after it as the final
    user message.
    """

    topic_id: str
    prompt: str
    history: list[ConversationTurn] = Field(default_factory=list)
    system_instruction: str | None = None

    @field_validator("prompt")
    @classmethod
    def _prompt_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("prompt must not be empty")
        return value

    def to_messages(self) -> list[ChatMessage]:
        messages = [
            ChatMessage(role=turn.role, text=turn.content) for turn in self.history
        ]
        messages.append(ChatMessage(role=ChatRole.USER, text=self.prompt))
        return messages


class CompletionResult(BaseModel):
    content: str
    model: str
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    cached: bool = False
    fingerprint: str = ""
