"""Global dependencies for the application."""

from functools import lru_cache
from zoneinfo import ZoneInfo

import redis.asyncio as redis
from fastapi import Depends, Request
from langchain_anthropic import ChatAnthropic
from langchain_core.language_models import BaseChatModel
from langchain_openai import ChatOpenAI

from sales_assistant.clients.aircall import AircallClient
from sales_assistant.clients.salesforce import SalesforceClient
from sales_assistant.core.config import settings
from sales_assistant.core.exceptions import AuthenticationError
from sales_assistant.core.redis import get_redis_client
from sales_assistant.repositories.conversation_repo import ConversationRepository
from sales_assistant.services.agent_service import AgentService
from sales_assistant.services.conversation_service import ConversationService
from sales_assistant.services.sales_data_service import SalesDataService
from sales_assistant.tools.context import ToolContext
from sales_assistant.tools.registry import build_tools

# --- Providers ---


@lru_cache
def get_llm() -> BaseChatModel:
    """Get the LLM instance based on the configured provider."""
    llm_config = settings.llm
    match llm_config.provider:
        case "openai":
            return ChatOpenAI(
                model=llm_config.openai_model,
                api_key=llm_config.openai_api_key,
                streaming=True,
            )
        case "anthropic":
            return ChatAnthropic(  # type: ignore[call-arg]
                model_name=llm_config.anthropic_model,
                api_key=llm_config.anthropic_api_key,
                streaming=True,
            )
        case _:
            raise ValueError(f"Unsupported LLM provider: {llm_config.provider}")


@lru_cache
def get_business_timezone() -> ZoneInfo:
    return ZoneInfo(settings.chat.timezone)


@lru_cache
def get_salesforce_client() -> SalesforceClient:
    """Process-wide Salesforce client so the access token is shared."""
    return SalesforceClient(settings.salesforce)


@lru_cache
def get_aircall_client() -> AircallClient:
    """Process-wide Aircall client so rate-limit headers are shared."""
    return AircallClient(settings.aircall)


def get_redis() -> redis.Redis:  # type: ignore[type-arg]
    return get_redis_client()


# --- Session dependencies ---


def get_current_user_email(request: Request) -> str:
    """Extract the session email populated by SessionMiddleware."""
    state = getattr(request, "state", None)
    email = getattr(state, "user_email", None) if state else None
    if not email:
        raise AuthenticationError()
    return email


def get_conversation_repository(
    redis_client: redis.Redis = Depends(get_redis),  # type: ignore[type-arg]
) -> ConversationRepository:
    """Get ConversationRepository bound to the active Redis client."""
    return ConversationRepository(redis_client, timezone=get_business_timezone())


def get_conversation_service(
    repo: ConversationRepository = Depends(get_conversation_repository),
    user_email: str = Depends(get_current_user_email),
) -> ConversationService:
    """Get ConversationService for the session user."""
    return ConversationService(repo, user_email)


# --- Agent dependencies ---


def get_tool_context(
    salesforce: SalesforceClient = Depends(get_salesforce_client),
    aircall: AircallClient = Depends(get_aircall_client),
) -> ToolContext:
    """Get the context tools run against."""
    timezone = get_business_timezone()
    return ToolContext(
        sales=SalesDataService(
            salesforce, settings.salesforce.closed_stages_list, timezone
        ),
        aircall=aircall,
        timezone=timezone,
    )


def get_agent_service(
    tool_context: ToolContext = Depends(get_tool_context),
    _user_email: str = Depends(get_current_user_email),
) -> AgentService:
    """Get AgentService with every registered tool bound to this request."""
    return AgentService(
        llm=get_llm(),
        tools=build_tools(tool_context),
        chat_config=settings.chat,
        timezone=get_business_timezone(),
    )
