"""Application configuration using Pydantic Settings V2."""

from functools import cached_property
from typing import Literal

from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from sales_assistant.core.settings import (
    AircallConfig,
    AppConfig,
    ChatConfig,
    LLMConfig,
    RedisConfig,
    SalesforceConfig,
    ServerConfig,
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Flat fields are loaded directly from environment variables.
    Domain properties provide grouped access (e.g. settings.llm.provider).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # LLM Provider
    llm_provider: Literal["anthropic", "openai"] = Field(
        default="anthropic",
        description="LLM provider to use",
    )

    # Anthropic
    anthropic_api_key: SecretStr = Field(
        default=SecretStr(""),
        description="Anthropic API key",
    )
    anthropic_model: str = Field(
        default="claude-sonnet-4-20250514",
        description="Anthropic model name",
    )

    # OpenAI
    openai_api_key: SecretStr = Field(
        default=SecretStr(""),
        description="OpenAI API key",
    )
    openai_model: str = Field(
        default="gpt-4o-mini",
        description="OpenAI model name",
    )

    # App
    app_name: str = Field(
        default="sales-assistant",
        description="Application name",
    )
    app_env: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Application environment",
    )
    debug: bool = Field(
        default=True,
        description="Debug mode",
    )
    cors_origins: str = Field(
        default="",
        description="Comma-separated browser origins allowed outside development",
    )

    # Server
    host: str = Field(
        default="0.0.0.0",
        description="Server host",
    )
    port: int = Field(
        default=8004,
        ge=1,
        le=65535,
        description="Server port",
    )

    # Redis (two naming conventions are accepted for the same pair)
    redis_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices("UPSTASH_REDIS_URL", "KV_URL"),
        description="Redis connection URL",
    )
    redis_token: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("UPSTASH_REDIS_TOKEN", "KV_REST_API_TOKEN"),
        description="Redis password, optional when the URL embeds one",
    )

    # Salesforce
    salesforce_client_id: str = Field(
        default="",
        description="Salesforce connected app client ID",
    )
    salesforce_client_secret: SecretStr = Field(
        default=SecretStr(""),
        description="Salesforce connected app client secret",
    )
    salesforce_login_url: str = Field(
        default="https://login.salesforce.com",
        description="Salesforce login URL",
    )
    salesforce_api_version: str = Field(
        default="v59.0",
        description="Salesforce REST API version",
    )
    salesforce_closed_stages: str = Field(
        default="Agreement Signed,Closed Won",
        description="Comma-separated list of stages counted as closed deals",
    )

    # Aircall
    aircall_api_id: str = Field(
        default="",
        description="Aircall API ID",
    )
    aircall_api_token: SecretStr = Field(
        default=SecretStr(""),
        description="Aircall API token",
    )
    aircall_base_url: str = Field(
        default="https://api.aircall.io/v1",
        description="Aircall API base URL",
    )

    # Chat
    chat_max_steps: int = Field(
        default=5,
        ge=1,
        le=20,
        description="Maximum model steps (model-to-tool round trips) per request",
    )
    chat_max_duration_seconds: int = Field(
        default=60,
        ge=5,
        le=900,
        description="Maximum duration of a single chat stream",
    )
    chat_rate_limit: str = Field(
        default="20/minute",
        description="Chat endpoint rate limit",
    )
    session_cookie_name: str = Field(
        default="beyond_ai_session",
        description="Name of the session cookie carrying the user identity",
    )
    business_timezone: str = Field(
        default="Europe/London",
        description="Timezone used for the date shown to the model",
    )

    # --- Domain properties ---

    @cached_property
    def llm(self) -> LLMConfig:
        """LLM provider configuration."""
        return LLMConfig(
            provider=self.llm_provider,
            anthropic_api_key=self.anthropic_api_key,
            anthropic_model=self.anthropic_model,
            openai_api_key=self.openai_api_key,
            openai_model=self.openai_model,
        )

    @cached_property
    def app(self) -> AppConfig:
        """Application environment configuration."""
        return AppConfig(
            name=self.app_name,
            env=self.app_env,
            debug=self.debug,
            cors_origins=self.cors_origins,
        )

    @cached_property
    def server(self) -> ServerConfig:
        """Server configuration."""
        return ServerConfig(
            host=self.host,
            port=self.port,
            reload=self.app.is_development,
        )

    @cached_property
    def redis(self) -> RedisConfig:
        """Redis connection configuration."""
        return RedisConfig(url=self.redis_url, token=self.redis_token)

    @cached_property
    def salesforce(self) -> SalesforceConfig:
        """Salesforce API configuration."""
        return SalesforceConfig(
            client_id=self.salesforce_client_id,
            client_secret=self.salesforce_client_secret,
            login_url=self.salesforce_login_url,
            api_version=self.salesforce_api_version,
            closed_stages=self.salesforce_closed_stages,
        )

    @cached_property
    def aircall(self) -> AircallConfig:
        """Aircall API configuration."""
        return AircallConfig(
            api_id=self.aircall_api_id,
            api_token=self.aircall_api_token,
            base_url=self.aircall_base_url,
        )

    @cached_property
    def chat(self) -> ChatConfig:
        """Chat orchestration limits."""
        return ChatConfig(
            max_steps=self.chat_max_steps,
            max_duration_seconds=self.chat_max_duration_seconds,
            rate_limit=self.chat_rate_limit,
            session_cookie_name=self.session_cookie_name,
            timezone=self.business_timezone,
        )

    # --- Convenience properties (delegate to domain configs) ---

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.app.is_development


# Global settings instance
settings = Settings()
