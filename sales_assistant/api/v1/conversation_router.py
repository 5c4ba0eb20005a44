"""Conversation persistence API router."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from sales_assistant.dependencies import get_conversation_service
from sales_assistant.schemas.conversation_schema import (
    AppendMessagesRequest,
    AppendMessagesResponse,
    ConversationDetail,
    ConversationListResponse,
    CreateConversationRequest,
    CreateConversationResponse,
    UpdateTitleRequest,
)
from sales_assistant.schemas.response_schema import (
    ERROR_RESPONSES,
    ApiResponse,
    success_response,
)
from sales_assistant.services.conversation_service import ConversationService

router = APIRouter(
    prefix="/api/v1/conversations",
    tags=["conversations"],
    responses=ERROR_RESPONSES,
)

ConversationServiceDep = Annotated[
    ConversationService, Depends(get_conversation_service)
]

MIN_LIST_LIMIT = 1
MAX_LIST_LIMIT = 200


@router.post(
    "",
    status_code=201,
    response_model=ApiResponse[CreateConversationResponse],
)
async def create_conversation(
    service: ConversationServiceDep,
    request: CreateConversationRequest | None = None,
) -> dict:
    """Create an empty conversation."""
    conversation_id = await service.create(request.title if request else None)
    return success_response(
        CreateConversationResponse(id=conversation_id),
        status=201,
        message="Conversation created",
    )


@router.get("", response_model=ApiResponse[ConversationListResponse])
async def list_conversations(
    service: ConversationServiceDep,
    limit: int = Query(default=50),
) -> dict:
    """List the current user's conversations, most recent first."""
    limit = max(MIN_LIST_LIMIT, min(limit, MAX_LIST_LIMIT))
    result = await service.list_conversations(limit=limit)
    return success_response(result)


@router.get("/{conversation_id}", response_model=ApiResponse[ConversationDetail])
async def get_conversation(
    conversation_id: str,
    service: ConversationServiceDep,
) -> dict:
    """Get a conversation with all of its messages."""
    return success_response(await service.get(conversation_id))


@router.post(
    "/{conversation_id}/messages",
    response_model=ApiResponse[AppendMessagesResponse],
)
async def append_messages(
    conversation_id: str,
    request: AppendMessagesRequest,
    service: ConversationServiceDep,
) -> dict:
    """Append messages to a conversation."""
    appended = await service.append(conversation_id, request.messages)
    return success_response(AppendMessagesResponse(appended=appended))


@router.patch("/{conversation_id}", response_model=ApiResponse[None])
async def update_conversation_title(
    conversation_id: str,
    request: UpdateTitleRequest,
    service: ConversationServiceDep,
) -> dict:
    """Rename a conversation."""
    await service.rename(conversation_id, request.title)
    return success_response(None, message="Title updated")


@router.delete("/{conversation_id}", response_model=ApiResponse[None])
async def delete_conversation(
    conversation_id: str,
    service: ConversationServiceDep,
) -> dict:
    """Delete a conversation and its messages."""
    await service.delete(conversation_id)
    return success_response(None, message="Conversation deleted")


@router.get(
    "/{conversation_id}/export",
    response_class=Response,
    responses={200: {"content": {"text/markdown": {}}}},
)
async def export_conversation(
    conversation_id: str,
    service: ConversationServiceDep,
) -> Response:
    """Download a conversation as Markdown."""
    filename, markdown = await service.export(conversation_id)
    return Response(
        content=markdown,
        media_type="text/markdown; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
