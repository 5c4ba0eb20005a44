"""Conversation repository backed by Redis.

Key layout:

- ``chat:{email}:conversations``: sorted set of conversation ids scored by
  last activity (epoch milliseconds)
- ``chat:conversation:{id}``: hash with the conversation metadata
- ``chat:conversation:{id}:messages``: list of JSON-encoded messages

Every mutation refreshes the same TTL on all three keys. The message count
is never stored; it is read from the list. A list that holds the wrong type
or an unreadable element reads as empty everywhere and is replaced by the
next append.
"""

import functools
import json
import uuid
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime, tzinfo
from typing import Any, ParamSpec, TypeVar

import redis.asyncio as redis
import structlog
from pydantic import ValidationError
from redis.asyncio.client import Pipeline
from redis.exceptions import RedisError, ResponseError

from sales_assistant.core.exceptions import (
    ConversationNotFoundError,
    StoreUnavailableError,
)
from sales_assistant.schemas.conversation_schema import (
    DEFAULT_TITLE,
    ChatMessage,
    ConversationDetail,
    ConversationMeta,
)

logger = structlog.get_logger()

TTL_SECONDS = 90 * 24 * 60 * 60

P = ParamSpec("P")
R = TypeVar("R")


def user_conversations_key(user_email: str) -> str:
    return f"chat:{user_email}:conversations"


def conversation_meta_key(conversation_id: str) -> str:
    return f"chat:conversation:{conversation_id}"


def conversation_messages_key(conversation_id: str) -> str:
    return f"chat:conversation:{conversation_id}:messages"


def _score(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def _store_errors(
    func: Callable[P, Awaitable[R]],
) -> Callable[P, Awaitable[R]]:
    """Translate Redis failures into StoreUnavailableError."""

    @functools.wraps(func)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        try:
            return await func(*args, **kwargs)
        except RedisError as exc:
            logger.exception(
                "Conversation store operation failed",
                operation=func.__name__,
            )
            raise StoreUnavailableError() from exc

    return wrapper


class ConversationRepository:
    """Encapsulates conversation metadata and message persistence."""

    def __init__(
        self,
        redis_client: redis.Redis,  # type: ignore[type-arg]
        ttl_seconds: int = TTL_SECONDS,
        clock: Callable[[], datetime] | None = None,
        timezone: tzinfo = UTC,
    ) -> None:
        self._redis = redis_client
        self._ttl = ttl_seconds
        self._clock = clock or (lambda: datetime.now(UTC))
        self._timezone = timezone

    @_store_errors
    async def create_conversation(
        self, user_email: str, title: str | None = None
    ) -> str:
        """Create an empty conversation and return its id."""
        conversation_id = str(uuid.uuid4())
        now = self._clock()
        meta = {
            "id": conversation_id,
            "title": title or DEFAULT_TITLE,
            "user_email": user_email,
            "created_at": now.isoformat(),
            "updated_at": now.isoformat(),
        }

        meta_key = conversation_meta_key(conversation_id)
        index_key = user_conversations_key(user_email)
        async with self._redis.pipeline(transaction=True) as pipe:
            pipe.hset(meta_key, mapping=meta)
            pipe.zadd(index_key, {conversation_id: _score(now)})
            pipe.expire(meta_key, self._ttl)
            pipe.expire(index_key, self._ttl)
            await pipe.execute()

        logger.info(
            "Conversation created",
            conversation_id=conversation_id,
            user_email=user_email,
        )
        return conversation_id

    @_store_errors
    async def get_conversations(
        self, user_email: str, limit: int = 50
    ) -> list[ConversationMeta]:
        """List a user's conversations, most recent activity first.

        Ids whose metadata has expired are skipped and pruned from the index.
        """
        index_key = user_conversations_key(user_email)
        ids: list[str] = await self._redis.zrevrange(index_key, 0, limit - 1)
        if not ids:
            return []

        async with self._redis.pipeline(transaction=False) as pipe:
            for conversation_id in ids:
                pipe.hgetall(conversation_meta_key(conversation_id))
                pipe.lrange(conversation_messages_key(conversation_id), 0, -1)
            results = await pipe.execute(raise_on_error=False)

        conversations: list[ConversationMeta] = []
        stale: list[str] = []
        for i, conversation_id in enumerate(ids):
            raw_meta, raw_items = results[2 * i], results[2 * i + 1]
            if isinstance(raw_meta, Exception):
                raise raw_meta
            if isinstance(raw_items, ResponseError):
                count = 0
            elif isinstance(raw_items, Exception):
                raise raw_items
            else:
                decoded = self._decode_messages(conversation_id, raw_items)
                count = len(decoded) if decoded is not None else 0
            meta = self._parse_meta(raw_meta, count) if raw_meta else None
            if meta is None or meta.user_email != user_email:
                stale.append(conversation_id)
                continue
            conversations.append(meta)

        if stale:
            await self._redis.zrem(index_key, *stale)
            logger.info(
                "Pruned stale conversation ids",
                user_email=user_email,
                count=len(stale),
            )
        return conversations

    @_store_errors
    async def get_conversation(self, conversation_id: str) -> ConversationDetail | None:
        """Get a conversation with its messages, or None if it is gone."""
        raw_meta = await self._redis.hgetall(conversation_meta_key(conversation_id))
        if not raw_meta:
            return None

        messages = await self._read_messages(conversation_id)
        meta = self._parse_meta(raw_meta, len(messages))
        if meta is None:
            return None
        return ConversationDetail(meta=meta, messages=messages)

    @_store_errors
    async def append_messages(
        self, conversation_id: str, messages: list[ChatMessage]
    ) -> int:
        """Append messages atomically and return the new message count.

        Also bumps ``updated_at`` and moves the conversation to the top of
        the owner's recency index. A corrupted message list is dropped in
        the same transaction, so the append starts a fresh list.
        """
        if not messages:
            return len(await self._read_messages(conversation_id))

        meta_key = conversation_meta_key(conversation_id)
        messages_key = conversation_messages_key(conversation_id)
        raw_meta = await self._redis.hgetall(meta_key)
        if not raw_meta:
            raise ConversationNotFoundError()

        now = self._clock()
        updated_at = self._next_updated_at(raw_meta, now)
        index_key = user_conversations_key(raw_meta["user_email"])
        payloads = [message.model_dump_json() for message in messages]

        corrupted = False

        async def _append(pipe: Pipeline) -> None:  # type: ignore[type-arg]
            nonlocal corrupted
            # Watched: reads run immediately until multi().
            corrupted = await self._is_corrupted(pipe, conversation_id)
            pipe.multi()
            if corrupted:
                pipe.delete(messages_key)
            pipe.rpush(messages_key, *payloads)
            pipe.hset(meta_key, "updated_at", updated_at.isoformat())
            pipe.zadd(index_key, {conversation_id: _score(now)})
            for key in (meta_key, messages_key, index_key):
                pipe.expire(key, self._ttl)

        results = await self._redis.transaction(_append, messages_key)

        if corrupted:
            logger.warning(
                "Replaced unreadable message list",
                conversation_id=conversation_id,
            )
        count = int(results[1 if corrupted else 0])
        logger.debug(
            "Messages appended",
            conversation_id=conversation_id,
            appended=len(messages),
            message_count=count,
        )
        return count

    @_store_errors
    async def update_conversation_title(self, conversation_id: str, title: str) -> None:
        """Rename a conversation (last writer wins)."""
        meta_key = conversation_meta_key(conversation_id)
        messages_key = conversation_messages_key(conversation_id)
        raw_meta = await self._redis.hgetall(meta_key)
        if not raw_meta:
            raise ConversationNotFoundError()

        now = self._clock()
        updated_at = self._next_updated_at(raw_meta, now)
        index_key = user_conversations_key(raw_meta["user_email"])

        async with self._redis.pipeline(transaction=True) as pipe:
            pipe.hset(
                meta_key,
                mapping={"title": title, "updated_at": updated_at.isoformat()},
            )
            pipe.zadd(index_key, {conversation_id: _score(now)})
            for key in (meta_key, messages_key, index_key):
                pipe.expire(key, self._ttl)
            await pipe.execute()

    @_store_errors
    async def delete_conversation(self, user_email: str, conversation_id: str) -> None:
        """Delete a conversation and its index entry. Idempotent."""
        async with self._redis.pipeline(transaction=True) as pipe:
            pipe.zrem(user_conversations_key(user_email), conversation_id)
            pipe.delete(
                conversation_meta_key(conversation_id),
                conversation_messages_key(conversation_id),
            )
            await pipe.execute()

    async def export_conversation(self, conversation_id: str) -> str:
        """Render a conversation as a Markdown transcript."""
        detail = await self.get_conversation(conversation_id)
        if detail is None:
            raise ConversationNotFoundError()

        meta = detail.meta
        created = meta.created_at.astimezone(self._timezone)
        lines = [
            f"# {meta.title}",
            "",
            f"**Date:** {created:%A} {created.day} {created:%B %Y}",
            f"**Messages:** {meta.message_count}",
            "",
            "---",
            "",
        ]
        for message in detail.messages:
            role = "You" if message.role == "user" else "Assistant"
            timestamp = message.created_at.astimezone(self._timezone)
            lines.append(f"### {role} — {timestamp:%H:%M}")
            lines.append("")
            lines.append(message.content)
            lines.append("")

        return "\n".join(lines)

    async def _read_messages(self, conversation_id: str) -> list[ChatMessage]:
        """Load the message list, reading any corrupted payload as empty."""
        try:
            raw_items: list[str] = await self._redis.lrange(
                conversation_messages_key(conversation_id), 0, -1
            )
        except ResponseError:
            logger.warning(
                "Message list has an unexpected type",
                conversation_id=conversation_id,
            )
            return []
        return self._decode_messages(conversation_id, raw_items) or []

    async def _is_corrupted(
        self,
        pipe: Pipeline,  # type: ignore[type-arg]
        conversation_id: str,
    ) -> bool:
        """True when the stored list would not read back as written."""
        messages_key = conversation_messages_key(conversation_id)
        key_type = await pipe.type(messages_key)
        if key_type == "none":
            return False
        if key_type != "list":
            return True
        raw_items = await pipe.lrange(messages_key, 0, -1)
        return self._decode_messages(conversation_id, raw_items) is None

    @staticmethod
    def _decode_messages(
        conversation_id: str, raw_items: list[str]
    ) -> list[ChatMessage] | None:
        """Decode stored messages; None when any element is unreadable."""
        messages: list[ChatMessage] = []
        for raw in raw_items:
            try:
                parsed: Any = json.loads(raw)
                if not isinstance(parsed, dict):
                    raise ValueError("message is not an object")
                messages.append(ChatMessage.model_validate(parsed))
            except (ValueError, ValidationError):
                logger.warning(
                    "Discarding unreadable message list",
                    conversation_id=conversation_id,
                )
                return None
        return messages

    @staticmethod
    def _next_updated_at(raw_meta: dict[str, str], now: datetime) -> datetime:
        """Keep ``updated_at`` from moving backwards."""
        try:
            previous = datetime.fromisoformat(raw_meta["updated_at"])
        except (KeyError, ValueError):
            return now
        return max(previous, now)

    @staticmethod
    def _parse_meta(raw_meta: dict[str, str], message_count: int) -> ConversationMeta | None:
        try:
            return ConversationMeta.model_validate(
                {**raw_meta, "message_count": message_count}
            )
        except ValidationError:
            logger.warning("Unreadable conversation metadata", meta=raw_meta)
            return None
