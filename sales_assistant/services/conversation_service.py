"""Service layer for conversation persistence with ownership checks."""

import re
import uuid
from datetime import UTC, datetime
from typing import Any

import structlog

from sales_assistant.core.exceptions import AuthorizationError, ConversationNotFoundError
from sales_assistant.repositories.conversation_repo import ConversationRepository
from sales_assistant.schemas.conversation_schema import (
    DEFAULT_TITLE,
    ChatMessage,
    ConversationDetail,
    ConversationListResponse,
)

logger = structlog.get_logger()

AUTO_TITLE_MAX_LENGTH = 80
FIRST_EXCHANGE_MAX_MESSAGES = 3


def export_filename(title: str) -> str:
    """Turn a conversation title into a safe ``.md`` filename."""
    slug = re.sub(r"[^a-zA-Z0-9\s-]", "", title)
    slug = re.sub(r"\s+", "-", slug).lower()[:60]
    return f"{slug or 'conversation'}.md"


class ConversationService:
    """Conversation operations scoped to the authenticated user."""

    def __init__(self, repo: ConversationRepository, user_email: str) -> None:
        self._repo = repo
        self._user_email = user_email

    async def create(self, title: str | None = None) -> str:
        return await self._repo.create_conversation(self._user_email, title)

    async def list_conversations(self, limit: int = 50) -> ConversationListResponse:
        conversations = await self._repo.get_conversations(self._user_email, limit)
        return ConversationListResponse(conversations=conversations)

    async def get(self, conversation_id: str) -> ConversationDetail:
        """Return a conversation owned by the current user."""
        detail = await self._repo.get_conversation(conversation_id)
        if detail is None:
            raise ConversationNotFoundError()
        if detail.meta.user_email != self._user_email:
            raise AuthorizationError(message="Not authorized to access this conversation")
        return detail

    async def append(self, conversation_id: str, messages: list[ChatMessage]) -> int:
        await self.get(conversation_id)
        await self._repo.append_messages(conversation_id, messages)
        return len(messages)

    async def rename(self, conversation_id: str, title: str) -> None:
        await self.get(conversation_id)
        await self._repo.update_conversation_title(conversation_id, title)

    async def delete(self, conversation_id: str) -> None:
        await self.get(conversation_id)
        await self._repo.delete_conversation(self._user_email, conversation_id)

    async def export(self, conversation_id: str) -> tuple[str, str]:
        """Return ``(filename, markdown)`` for a conversation."""
        detail = await self.get(conversation_id)
        markdown = await self._repo.export_conversation(conversation_id)
        return export_filename(detail.meta.title), markdown

    async def save_turn(
        self,
        conversation_id: str,
        user_message: str,
        assistant_message: str,
        tool_invocations: list[dict[str, Any]],
        first_user_message: str,
    ) -> None:
        """Persist a finished chat turn and auto-title the first exchange.

        The title is derived from the first user message only while the
        conversation still carries the default title.
        """
        detail = await self.get(conversation_id)
        now = datetime.now(UTC)
        turn = [
            ChatMessage(
                id=uuid.uuid4().hex,
                role="user",
                content=user_message,
                created_at=now,
            ),
            ChatMessage(
                id=uuid.uuid4().hex,
                role="assistant",
                content=assistant_message,
                tool_invocations=tool_invocations or None,
                created_at=now,
            ),
        ]
        count = await self._repo.append_messages(conversation_id, turn)

        title = first_user_message.strip()[:AUTO_TITLE_MAX_LENGTH]
        if (
            count <= FIRST_EXCHANGE_MAX_MESSAGES
            and detail.meta.title == DEFAULT_TITLE
            and title
        ):
            await self._repo.update_conversation_title(conversation_id, title)
            logger.info(
                "Conversation auto-titled",
                conversation_id=conversation_id,
                title=title,
            )
