"""Pytest configuration and fixtures."""

from collections.abc import AsyncGenerator, Callable, Iterator
from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock

import fakeredis.aioredis
import pytest
from httpx import ASGITransport, AsyncClient

from sales_assistant.core.rate_limit import limiter
from sales_assistant.core.security import encode_session_cookie
from sales_assistant.repositories.conversation_repo import ConversationRepository

TEST_EMAIL = "rep@test.com"
SESSION_COOKIE = "beyond_ai_session"

# --- Test Redis (fakeredis) ---


@pytest.fixture
def fake_redis() -> fakeredis.aioredis.FakeRedis:
    """Create a fresh fake Redis client."""
    return fakeredis.aioredis.FakeRedis(decode_responses=True)


@pytest.fixture(autouse=True)
def patch_redis(
    fake_redis: fakeredis.aioredis.FakeRedis, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Patch the process-wide redis_client used by get_redis()."""
    monkeypatch.setattr("sales_assistant.core.redis.redis_client", fake_redis)


@pytest.fixture(autouse=True)
def reset_rate_limits() -> None:
    limiter.reset()


# --- Clock ---


class StepClock:
    """Deterministic clock advancing one second per call."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 3, 2, 9, 30, tzinfo=UTC)

    def __call__(self) -> datetime:
        current = self.now
        self.now = current + timedelta(seconds=1)
        return current


@pytest.fixture
def clock() -> StepClock:
    return StepClock()


@pytest.fixture
def repo(
    fake_redis: fakeredis.aioredis.FakeRedis, clock: StepClock
) -> ConversationRepository:
    """ConversationRepository backed by fake Redis and a stepping clock."""
    return ConversationRepository(fake_redis, clock=clock)


# --- Session helpers ---


def make_session_cookie(email: str = TEST_EMAIL) -> dict[str, str]:
    """Build a cookie jar entry for a valid session."""
    return {SESSION_COOKIE: encode_session_cookie(email, name="Test Rep")}


# --- App override & client fixtures ---


def _get_app():  # type: ignore[no-untyped-def]
    """Import app lazily."""
    from sales_assistant.main import app

    return app


@pytest.fixture
def override_dependency() -> Iterator[Callable[[Callable, Callable], None]]:
    """Register dependency overrides, cleared after the test."""
    application = _get_app()

    def _override(original: Callable, replacement: Callable) -> None:
        application.dependency_overrides[original] = replacement

    yield _override
    application.dependency_overrides.clear()


@pytest.fixture
async def async_client() -> AsyncGenerator[AsyncClient, None]:
    """Create an async test client without a session."""
    transport = ASGITransport(app=_get_app())
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def authed_client() -> AsyncGenerator[AsyncClient, None]:
    """Create an async test client carrying a valid session cookie."""
    transport = ASGITransport(app=_get_app())
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        cookies=make_session_cookie(),
    ) as ac:
        yield ac


# --- Mock LLM ---


@pytest.fixture
def mock_llm() -> MagicMock:
    """Create a mock LLM for testing."""
    mock = MagicMock()
    mock.bind_tools = MagicMock(return_value=mock)
    return mock
