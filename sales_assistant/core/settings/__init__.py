"""Domain-specific configuration models."""

from sales_assistant.core.settings.aircall_config import AircallConfig
from sales_assistant.core.settings.app_config import AppConfig
from sales_assistant.core.settings.chat_config import ChatConfig
from sales_assistant.core.settings.llm_config import LLMConfig
from sales_assistant.core.settings.redis_config import RedisConfig
from sales_assistant.core.settings.salesforce_config import SalesforceConfig
from sales_assistant.core.settings.server_config import ServerConfig

__all__ = [
    "AircallConfig",
    "AppConfig",
    "ChatConfig",
    "LLMConfig",
    "RedisConfig",
    "SalesforceConfig",
    "ServerConfig",
]
