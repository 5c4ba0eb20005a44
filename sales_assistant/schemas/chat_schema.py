"""Chat request and streaming schemas."""

from typing import Literal

from pydantic import BaseModel, Field


class ChatTurn(BaseModel):
    """A prior message supplied by the client."""

    role: Literal["user", "assistant"]
    content: str = Field(..., max_length=20000)


class ChatRequest(BaseModel):
    """Chat API request schema.

    When ``conversation_id`` is set, the finished turn is saved to that
    conversation in the background.
    """

    messages: list[ChatTurn] = Field(..., min_length=1, max_length=200)
    conversation_id: str | None = None


class StreamEvent(BaseModel):
    """Server-Sent Event for streaming responses."""

    event: Literal["token", "tool_call", "tool_result", "done", "error"]
    data: str
