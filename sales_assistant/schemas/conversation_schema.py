"""Conversation persistence API schemas."""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_TITLE = "New conversation"


class ChatMessage(BaseModel):
    """A persisted chat message.

    ``tool_invocations`` holds opaque records (tool name, call id, args,
    state, result) captured while the assistant produced the message.
    """

    id: str = Field(..., min_length=1)
    role: Literal["user", "assistant"]
    content: str
    tool_invocations: list[dict[str, Any]] | None = None
    created_at: datetime


class ConversationMeta(BaseModel):
    """Conversation metadata; ``message_count`` is read from the message list."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    user_email: str
    created_at: datetime
    updated_at: datetime
    message_count: int = 0


class ConversationDetail(BaseModel):
    """Conversation metadata with its full message history."""

    model_config = ConfigDict(frozen=True)

    meta: ConversationMeta
    messages: list[ChatMessage]


class CreateConversationRequest(BaseModel):
    """Request to create a conversation."""

    title: str | None = Field(default=None, max_length=200)


class CreateConversationResponse(BaseModel):
    """Identifier of the created conversation."""

    model_config = ConfigDict(frozen=True)

    id: str


class ConversationListResponse(BaseModel):
    """Conversations ordered by most recent activity."""

    model_config = ConfigDict(frozen=True)

    conversations: list[ConversationMeta]


class AppendMessagesRequest(BaseModel):
    """Request to append messages to a conversation."""

    messages: list[ChatMessage] = Field(..., min_length=1)


class AppendMessagesResponse(BaseModel):
    """Number of messages appended."""

    model_config = ConfigDict(frozen=True)

    appended: int


class UpdateTitleRequest(BaseModel):
    """Request to rename a conversation."""

    title: str = Field(..., min_length=1, max_length=200)

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("Title is required and must be a non-empty string")
        return stripped
