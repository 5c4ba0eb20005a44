"""Redis client lifecycle management."""

import asyncio

import redis.asyncio as redis
import structlog

from sales_assistant.core.config import settings
from sales_assistant.core.exceptions import StoreConfigurationError
from sales_assistant.core.settings import RedisConfig

logger = structlog.get_logger()

redis_client: redis.Redis | None = None  # type: ignore[type-arg]


def create_redis_client(config: RedisConfig) -> redis.Redis:  # type: ignore[type-arg]
    """Build a Redis client from a URL/token pair."""
    try:
        asyncio.get_running_loop()
    except RuntimeError as exc:
        raise StoreConfigurationError(
            "Redis operations can only be performed server-side"
        ) from exc

    if not config.url or not config.is_configured:
        raise StoreConfigurationError(
            "Redis configuration is incomplete. Check environment variables."
        )

    options: dict[str, str] = {}
    if config.password is not None:
        options["password"] = config.password
    return redis.from_url(config.url, decode_responses=True, **options)


def get_redis_client() -> redis.Redis:  # type: ignore[type-arg]
    """Return the process-wide Redis client, creating it on first use."""
    global redis_client  # noqa: PLW0603
    if redis_client is None:
        redis_client = create_redis_client(settings.redis)
        logger.info("Redis client created")
    return redis_client


async def close_redis() -> None:
    """Close the Redis connection."""
    global redis_client  # noqa: PLW0603
    if redis_client:
        await redis_client.aclose()
        redis_client = None
