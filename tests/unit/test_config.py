"""Tests for settings loading and domain configuration."""

import pytest
from pydantic import SecretStr, ValidationError

from sales_assistant.core.config import Settings
from sales_assistant.core.settings import (
    AppConfig,
    ChatConfig,
    RedisConfig,
    SalesforceConfig,
)


class TestRedisConfig:
    def test_frozen_immutability(self) -> None:
        config = RedisConfig(url="redis://localhost", token=SecretStr("t"))
        with pytest.raises(ValidationError):
            config.url = "redis://other"  # type: ignore[misc]

    @pytest.mark.parametrize(
        ("url", "token", "expected"),
        [
            ("redis://localhost", "token", True),
            (None, "token", False),
            ("redis://localhost", None, False),
            ("redis://localhost", "", False),
            ("rediss://default:pw@kv:6379", None, True),
            ("rediss://default@kv:6379", None, False),
        ],
    )
    def test_is_configured(self, url: str | None, token: str | None, expected: bool) -> None:
        config = RedisConfig(url=url, token=SecretStr(token) if token is not None else None)
        assert config.is_configured is expected


class TestSalesforceConfig:
    def test_closed_stages_list_strips_and_skips_blanks(self) -> None:
        config = SalesforceConfig(
            client_id="id",
            client_secret=SecretStr("secret"),
            login_url="https://login.salesforce.com",
            api_version="v59.0",
            closed_stages=" Agreement Signed, ,Closed Won ",
        )
        assert config.closed_stages_list == ["Agreement Signed", "Closed Won"]


class TestSettings:
    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for name in (
            "UPSTASH_REDIS_URL",
            "KV_URL",
            "UPSTASH_REDIS_TOKEN",
            "KV_REST_API_TOKEN",
            "LLM_PROVIDER",
            "CHAT_MAX_STEPS",
        ):
            monkeypatch.delenv(name, raising=False)

        s = Settings(_env_file=None)  # type: ignore[call-arg]

        assert s.llm.provider == "anthropic"
        assert s.llm.anthropic_model == "claude-sonnet-4-20250514"
        assert s.redis.is_configured is False
        assert isinstance(s.chat, ChatConfig)
        assert s.chat.max_steps == 5
        assert s.chat.session_cookie_name == "beyond_ai_session"
        assert s.salesforce.closed_stages_list == ["Agreement Signed", "Closed Won"]

    def test_upstash_env_names(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("UPSTASH_REDIS_URL", "rediss://upstash:6379")
        monkeypatch.setenv("UPSTASH_REDIS_TOKEN", "up-token")

        s = Settings(_env_file=None)  # type: ignore[call-arg]

        assert s.redis.url == "rediss://upstash:6379"
        assert s.redis.token is not None
        assert s.redis.token.get_secret_value() == "up-token"

    def test_kv_env_names(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("UPSTASH_REDIS_URL", raising=False)
        monkeypatch.delenv("UPSTASH_REDIS_TOKEN", raising=False)
        monkeypatch.setenv("KV_URL", "rediss://kv:6379")
        monkeypatch.setenv("KV_REST_API_TOKEN", "kv-token")

        s = Settings(_env_file=None)  # type: ignore[call-arg]

        assert s.redis.url == "rediss://kv:6379"
        assert s.redis.is_configured is True

    def test_kv_url_with_embedded_password(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for name in ("UPSTASH_REDIS_URL", "UPSTASH_REDIS_TOKEN", "KV_REST_API_TOKEN"):
            monkeypatch.delenv(name, raising=False)
        monkeypatch.setenv("KV_URL", "rediss://default:kv-pass@kv:6379")

        s = Settings(_env_file=None)  # type: ignore[call-arg]

        assert s.redis.token is None
        assert s.redis.password is None
        assert s.redis.is_configured is True

    def test_chat_limits_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CHAT_MAX_STEPS", "3")
        monkeypatch.setenv("CHAT_RATE_LIMIT", "5/minute")

        s = Settings(_env_file=None)  # type: ignore[call-arg]

        assert s.chat.max_steps == 3
        assert s.chat.rate_limit == "5/minute"

    def test_domain_configs_are_cached(self) -> None:
        s = Settings(_env_file=None)  # type: ignore[call-arg]
        assert s.chat is s.chat
        assert s.salesforce is s.salesforce


class TestAppConfig:
    def test_development_allows_any_origin(self) -> None:
        config = AppConfig(name="x", env="development", debug=True, cors_origins="")
        assert config.allowed_origins == ["*"]

    def test_production_uses_configured_origins(self) -> None:
        config = AppConfig(
            name="x",
            env="production",
            debug=False,
            cors_origins="https://crm.example.com, ,https://app.example.com",
        )
        assert config.allowed_origins == [
            "https://crm.example.com",
            "https://app.example.com",
        ]
