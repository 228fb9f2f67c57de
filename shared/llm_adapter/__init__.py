from shared.llm_adapter.base import LLMProvider
from shared.llm_adapter.cache import (
    InMemoryResponseCache,
    RedisResponseCache,
    ResponseCache,
    make_fingerprint,
)
from shared.llm_adapter.client import ResilientCompletionClient
from shared.llm_adapter.errors import (
    BackendUnavailable,
    CacheUnavailable,
    CompletionError,
    RateLimited,
)
from shared.llm_adapter.factory import build_completion_client, get_llm_provider
from shared.llm_adapter.models import (
    ChatMessage,
    ChatRole,
    CompletionRequest,
    CompletionResult,
    ConversationTurn,
)
from shared.llm_adapter.mock_provider import MockProvider
from shared.llm_adapter.retry import Clock, RetryPolicy, SystemClock

__all__ = [
    "LLMProvider",
    "ResponseCache",
    "InMemoryResponseCache",
    "RedisResponseCache",
    "make_fingerprint",
    "ResilientCompletionClient",
    "CompletionError",
    "RateLimited",
    "BackendUnavailable",
    "CacheUnavailable",
    "build_completion_client",
    "get_llm_provider",
    "ChatMessage",
    "ChatRole",
    "CompletionRequest",
    "CompletionResult",
    "ConversationTurn",
    "MockProvider",
    "Clock",
    "RetryPolicy",
    "SystemClock",
]
