"""
Conversation store -- ordered chat turns per (session, topic).

A topic is whatever the conversation is about, typically one GitHub issue.
Turns are returned oldest first; that order is the chat history sent to
the language backend.
"""

from __future__ import annotations

import logging
from datetime import timezone

from sqlalchemy import select

from shared.conversation.database import ChatMessageRow, get_session
from shared.llm_adapter.models import ChatRole, ConversationTurn

logger = logging.getLogger(__name__)


class ConversationStore:

    async def append(
        self, session_id: str, topic_id: str, turn: ConversationTurn
    ) -> ConversationTurn:
        async with get_session() as session:
            row = ChatMessageRow(
                session_id=session_id,
                topic_id=topic_id,
                role=turn.role.value,
                content=turn.content,
                created_at=turn.created_at,
            )
            session.add(row)
            await session.commit()
        logger.debug(
            "Stored %s turn for topic %s (%d chars)",
            turn.role.value, topic_id, len(turn.content),
        )
        return turn

    async def list(
        self, session_id: str, topic_id: str, limit: int | None = None
    ) -> list[ConversationTurn]:
        """Return the conversation oldest first; ``limit`` keeps the newest turns."""
        async with get_session() as session:
            stmt = select(ChatMessageRow).where(
                ChatMessageRow.session_id == session_id,
                ChatMessageRow.topic_id == topic_id,
            )
            if limit is not None:
                stmt = stmt.order_by(
                    ChatMessageRow.created_at.desc(), ChatMessageRow.id.desc()
                ).limit(limit)
            else:
                stmt = stmt.order_by(
                    ChatMessageRow.created_at.asc(), ChatMessageRow.id.asc()
                )
            result = await session.execute(stmt)
            rows = list(result.scalars().all())

        if limit is not None:
            rows.reverse()
        return [_to_turn(r) for r in rows]


def _to_turn(row: ChatMessageRow) -> ConversationTurn:
    created_at = row.created_at
    # SQLite drops tzinfo on the way back out.
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    return ConversationTurn(
        role=ChatRole(row.role),
        content=row.content,
        created_at=created_at,
    )
