"""
Mentor orchestration on top of the completion client.

Three flows share the resilient client:
- chat: history-aware conversation per (session, issue), persisted
- one-shot mentor hint for the code currently in the editor
- file finder: guess which repository file an issue is about

Persistence order for chat is user turn first, then the backend call, then
the assistant turn. A crash after the backend answers but before the
second write loses only the reply.
"""

from __future__ import annotations

import logging

from services.github_service.client import GitHubClient, GitHubError
from services.mentor_service.prompts import (
    MENTOR_SYSTEM_PROMPT,
    build_chat_instruction,
    build_file_finder_prompt,
    build_mentor_question,
    clean_predicted_path,
)
from shared.conversation.store import ConversationStore
from shared.llm_adapter import (
    ChatRole,
    CompletionRequest,
    ConversationTurn,
    ResilientCompletionClient,
)
from shared.observability.metrics import llm_tokens

logger = logging.getLogger(__name__)

SERVICE_NAME = "mentor_service"


def _record_tokens(result) -> None:
    if result.cached:
        return
    if result.prompt_tokens or result.completion_tokens:
        llm_tokens.labels(service=SERVICE_NAME, direction="prompt").inc(
            result.prompt_tokens
        )
        llm_tokens.labels(service=SERVICE_NAME, direction="completion").inc(
            result.completion_tokens
        )


class MentorChat:

    def __init__(
        self,
        store: ConversationStore,
        completions: ResilientCompletionClient,
        github: GitHubClient,
        history_window: int | None = 50,
    ) -> None:
        self._store = store
        self._completions = completions
        self._github = github
        self._history_window = history_window

    async def history(self, session_id: str, topic_id: str) -> list[ConversationTurn]:
        return await self._store.list(session_id, topic_id)

    async def send(
        self,
        session_id: str,
        topic_id: str,
        prompt: str,
        issue: str = "",
        code: str = "",
    ) -> ConversationTurn:
        """Persist the prompt, ask the backend, persist and return the reply."""
        history = await self._store.list(
            session_id, topic_id, limit=self._history_window
        )
        request = CompletionRequest(
            topic_id=topic_id,
            prompt=prompt,
            history=history,
            system_instruction=build_chat_instruction(issue, code),
        )

        await self._store.append(
            session_id, topic_id, ConversationTurn(role=ChatRole.USER, content=prompt)
        )

        result = await self._completions.complete(request)
        _record_tokens(result)

        reply = ConversationTurn(role=ChatRole.ASSISTANT, content=result.content)
        await self._store.append(session_id, topic_id, reply)
        logger.info(
            "Chat reply for topic %s (%d history turns, cached=%s)",
            topic_id, len(history), result.cached,
            extra={"topic_id": topic_id, "session_id": session_id},
        )
        return reply

    async def hint(self, topic_id: str, issue: str, code: str, question: str) -> str:
        request = CompletionRequest(
            topic_id=topic_id,
            prompt=build_mentor_question(issue, code, question),
            system_instruction=MENTOR_SYSTEM_PROMPT,
        )
        result = await self._completions.complete(request)
        _record_tokens(result)
        return result.content

    async def find_relevant_file(
        self, owner: str, repo: str, issue_title: str, issue_body: str
    ) -> str:
        files: list[str] | None
        try:
            files = await self._github.list_repository_files(owner, repo)
        except GitHubError:
            logger.warning(
                "Failed to fetch tree for %s/%s; asking for a conventional guess",
                owner, repo, exc_info=True,
            )
            files = None

        request = CompletionRequest(
            topic_id=f"{owner}/{repo}",
            prompt=build_file_finder_prompt(owner, repo, issue_title, issue_body, files),
        )
        result = await self._completions.complete(request)
        _record_tokens(result)

        path = clean_predicted_path(result.content)
        logger.info("AI predicted %s for %s/%s", path, owner, repo)
        return path
