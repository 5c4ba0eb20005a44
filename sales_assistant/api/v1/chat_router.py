"""Chat API router for the sales assistant agent."""

import json
from collections.abc import AsyncGenerator, Callable
from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from fastapi.responses import StreamingResponse

from sales_assistant.core.config import settings
from sales_assistant.core.rate_limit import limiter
from sales_assistant.dependencies import (
    get_agent_service,
    get_conversation_repository,
    get_current_user_email,
    get_redis,
)
from sales_assistant.repositories.conversation_repo import ConversationRepository
from sales_assistant.schemas.chat_schema import ChatRequest
from sales_assistant.schemas.response_schema import ERROR_RESPONSES
from sales_assistant.services.agent_service import AgentService, TurnTranscript
from sales_assistant.services.chat_autosave_task import save_chat_turn

router = APIRouter(
    prefix="/api/v1/chat",
    tags=["chat"],
    responses={401: ERROR_RESPONSES[401]},
)

AgentServiceDep = Annotated[AgentService, Depends(get_agent_service)]
UserEmailDep = Annotated[str, Depends(get_current_user_email)]


def _latest_user_message(chat_request: ChatRequest) -> str:
    for turn in reversed(chat_request.messages):
        if turn.role == "user":
            return turn.content
    return ""


def _conversation_repository() -> ConversationRepository:
    # Resolved lazily so chats without a conversation never touch Redis.
    return get_conversation_repository(get_redis())


def _first_user_message(chat_request: ChatRequest) -> str:
    for turn in chat_request.messages:
        if turn.role == "user":
            return turn.content
    return ""


async def event_generator(
    agent_service: AgentService,
    chat_request: ChatRequest,
    background_tasks: BackgroundTasks,
    repo_factory: Callable[[], ConversationRepository],
    user_email: str,
) -> AsyncGenerator[str, None]:
    """Generate Server-Sent Events from the agent stream.

    A finished turn is queued for saving when the request names a
    conversation.
    """
    transcript = TurnTranscript()
    async for event in agent_service.stream_chat(chat_request, transcript):
        if event.event == "done" and chat_request.conversation_id:
            background_tasks.add_task(
                save_chat_turn,
                repo_factory=repo_factory,
                user_email=user_email,
                conversation_id=chat_request.conversation_id,
                user_message=_latest_user_message(chat_request),
                assistant_message=transcript.text,
                tool_invocations=transcript.tool_invocations,
                first_user_message=_first_user_message(chat_request),
            )
        yield f"data: {json.dumps(event.model_dump())}\n\n"


@router.post("")
@limiter.limit(settings.chat.rate_limit)
async def chat(
    request: Request,
    chat_request: ChatRequest,
    agent_service: AgentServiceDep,
    user_email: UserEmailDep,
    background_tasks: BackgroundTasks,
) -> StreamingResponse:
    """Stream the assistant's reply as Server-Sent Events."""
    return StreamingResponse(
        event_generator(
            agent_service,
            chat_request,
            background_tasks,
            _conversation_repository,
            user_email,
        ),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )
