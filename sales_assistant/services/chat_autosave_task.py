"""Background task for saving finished chat turns."""

from collections.abc import Callable
from typing import Any

import structlog

from sales_assistant.repositories.conversation_repo import ConversationRepository
from sales_assistant.services.conversation_service import ConversationService

logger = structlog.get_logger()


async def save_chat_turn(
    repo_factory: Callable[[], ConversationRepository],
    user_email: str,
    conversation_id: str,
    user_message: str,
    assistant_message: str,
    tool_invocations: list[dict[str, Any]],
    first_user_message: str,
) -> None:
    """Append a chat turn to its conversation.

    Designed to run as a FastAPI BackgroundTask after the stream closes.
    Failures are logged and never reach the user.
    """
    try:
        service = ConversationService(repo_factory(), user_email)
        await service.save_turn(
            conversation_id,
            user_message=user_message,
            assistant_message=assistant_message,
            tool_invocations=tool_invocations,
            first_user_message=first_user_message,
        )
        logger.info(
            "Chat turn saved",
            conversation_id=conversation_id,
            tool_calls=len(tool_invocations),
        )
    except Exception:
        logger.exception(
            "Failed to save chat turn",
            conversation_id=conversation_id,
        )
