"""Unit tests for ConversationRepository on fake Redis."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import fakeredis.aioredis
import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from sales_assistant.core.exceptions import (
    ConversationNotFoundError,
    StoreUnavailableError,
)
from sales_assistant.repositories.conversation_repo import (
    TTL_SECONDS,
    ConversationRepository,
    conversation_messages_key,
    conversation_meta_key,
    user_conversations_key,
)
from sales_assistant.schemas.conversation_schema import DEFAULT_TITLE, ChatMessage

ALICE = "alice@test.com"
BOB = "bob@test.com"


def _message(
    content: str,
    role: str = "user",
    created_at: datetime | None = None,
    tool_invocations: list[dict] | None = None,
) -> ChatMessage:
    return ChatMessage(
        id=f"msg-{content[:10]}",
        role=role,  # type: ignore[arg-type]
        content=content,
        tool_invocations=tool_invocations,
        created_at=created_at or datetime(2026, 3, 2, 9, 31, tzinfo=UTC),
    )


class TestCreateConversation:
    async def test_creates_empty_conversation_with_default_title(
        self, repo: ConversationRepository
    ) -> None:
        conversation_id = await repo.create_conversation(ALICE)

        detail = await repo.get_conversation(conversation_id)
        assert detail is not None
        assert detail.meta.title == DEFAULT_TITLE
        assert detail.meta.user_email == ALICE
        assert detail.meta.message_count == 0
        assert detail.messages == []

    async def test_uses_given_title(self, repo: ConversationRepository) -> None:
        conversation_id = await repo.create_conversation(ALICE, "Q1 review")

        detail = await repo.get_conversation(conversation_id)
        assert detail is not None
        assert detail.meta.title == "Q1 review"

    async def test_sets_ttl_on_metadata_and_index(
        self,
        repo: ConversationRepository,
        fake_redis: fakeredis.aioredis.FakeRedis,
    ) -> None:
        conversation_id = await repo.create_conversation(ALICE)

        meta_ttl = await fake_redis.ttl(conversation_meta_key(conversation_id))
        index_ttl = await fake_redis.ttl(user_conversations_key(ALICE))
        assert 0 < meta_ttl <= TTL_SECONDS
        assert 0 < index_ttl <= TTL_SECONDS


class TestGetConversations:
    async def test_isolated_per_user(self, repo: ConversationRepository) -> None:
        alice_id = await repo.create_conversation(ALICE)
        bob_id = await repo.create_conversation(BOB)

        alice_ids = [c.id for c in await repo.get_conversations(ALICE)]
        bob_ids = [c.id for c in await repo.get_conversations(BOB)]

        assert alice_ids == [alice_id]
        assert bob_ids == [bob_id]

    async def test_append_moves_conversation_to_top(
        self, repo: ConversationRepository
    ) -> None:
        first = await repo.create_conversation(ALICE)
        second = await repo.create_conversation(ALICE)
        assert [c.id for c in await repo.get_conversations(ALICE)] == [second, first]

        await repo.append_messages(first, [_message("hello")])

        assert [c.id for c in await repo.get_conversations(ALICE)] == [first, second]

    async def test_respects_limit(self, repo: ConversationRepository) -> None:
        for _ in range(3):
            await repo.create_conversation(ALICE)

        assert len(await repo.get_conversations(ALICE, limit=2)) == 2

    async def test_drops_and_prunes_expired_ids(
        self,
        repo: ConversationRepository,
        fake_redis: fakeredis.aioredis.FakeRedis,
    ) -> None:
        kept = await repo.create_conversation(ALICE)
        expired = await repo.create_conversation(ALICE)
        await fake_redis.delete(conversation_meta_key(expired))

        conversations = await repo.get_conversations(ALICE)

        assert [c.id for c in conversations] == [kept]
        remaining = await fake_redis.zrange(user_conversations_key(ALICE), 0, -1)
        assert remaining == [kept]

    async def test_reports_message_count(self, repo: ConversationRepository) -> None:
        conversation_id = await repo.create_conversation(ALICE)
        await repo.append_messages(conversation_id, [_message("a"), _message("b")])

        [meta] = await repo.get_conversations(ALICE)
        assert meta.message_count == 2


class TestAppendMessages:
    async def test_count_matches_stored_list(
        self,
        repo: ConversationRepository,
        fake_redis: fakeredis.aioredis.FakeRedis,
    ) -> None:
        conversation_id = await repo.create_conversation(ALICE)

        for batch in (1, 3, 2):
            await repo.append_messages(
                conversation_id, [_message(f"m{i}") for i in range(batch)]
            )
            detail = await repo.get_conversation(conversation_id)
            assert detail is not None
            stored = await fake_redis.llen(conversation_messages_key(conversation_id))
            assert detail.meta.message_count == len(detail.messages) == stored

    async def test_returns_new_count(self, repo: ConversationRepository) -> None:
        conversation_id = await repo.create_conversation(ALICE)

        assert await repo.append_messages(conversation_id, [_message("a")]) == 1
        assert await repo.append_messages(conversation_id, [_message("b")]) == 2

    async def test_empty_input_is_noop(self, repo: ConversationRepository) -> None:
        conversation_id = await repo.create_conversation(ALICE)
        before = await repo.get_conversation(conversation_id)

        assert await repo.append_messages(conversation_id, []) == 0

        after = await repo.get_conversation(conversation_id)
        assert before == after

    async def test_preserves_order_and_tool_invocations(
        self, repo: ConversationRepository
    ) -> None:
        conversation_id = await repo.create_conversation(ALICE)
        invocation = {"tool_name": "get_pipeline", "state": "result", "result": {}}
        await repo.append_messages(
            conversation_id,
            [
                _message("question"),
                _message("answer", role="assistant", tool_invocations=[invocation]),
            ],
        )

        detail = await repo.get_conversation(conversation_id)
        assert detail is not None
        assert [m.content for m in detail.messages] == ["question", "answer"]
        assert detail.messages[1].tool_invocations == [invocation]

    async def test_updated_at_never_decreases(
        self, fake_redis: fakeredis.aioredis.FakeRedis
    ) -> None:
        times = iter(
            [
                datetime(2026, 3, 2, 10, 0, tzinfo=UTC),
                datetime(2026, 3, 2, 9, 0, tzinfo=UTC),
            ]
        )
        repo = ConversationRepository(fake_redis, clock=lambda: next(times))
        conversation_id = await repo.create_conversation(ALICE)

        await repo.append_messages(conversation_id, [_message("late clock")])

        detail = await repo.get_conversation(conversation_id)
        assert detail is not None
        assert detail.meta.updated_at == datetime(2026, 3, 2, 10, 0, tzinfo=UTC)

    async def test_refreshes_ttl_on_all_keys(
        self,
        repo: ConversationRepository,
        fake_redis: fakeredis.aioredis.FakeRedis,
    ) -> None:
        conversation_id = await repo.create_conversation(ALICE)
        await fake_redis.expire(conversation_meta_key(conversation_id), 60)

        await repo.append_messages(conversation_id, [_message("hi")])

        for key in (
            conversation_meta_key(conversation_id),
            conversation_messages_key(conversation_id),
            user_conversations_key(ALICE),
        ):
            assert await fake_redis.ttl(key) > 60

    async def test_missing_conversation_raises(
        self, repo: ConversationRepository
    ) -> None:
        with pytest.raises(ConversationNotFoundError):
            await repo.append_messages("missing", [_message("hi")])


class TestUpdateConversationTitle:
    async def test_renames_and_bumps_updated_at(
        self, repo: ConversationRepository
    ) -> None:
        conversation_id = await repo.create_conversation(ALICE)
        before = await repo.get_conversation(conversation_id)
        assert before is not None

        await repo.update_conversation_title(conversation_id, "Renamed")

        after = await repo.get_conversation(conversation_id)
        assert after is not None
        assert after.meta.title == "Renamed"
        assert after.meta.updated_at > before.meta.updated_at

    async def test_missing_conversation_raises(
        self, repo: ConversationRepository
    ) -> None:
        with pytest.raises(ConversationNotFoundError):
            await repo.update_conversation_title("missing", "Title")


class TestDeleteConversation:
    async def test_delete_is_idempotent(
        self,
        repo: ConversationRepository,
        fake_redis: fakeredis.aioredis.FakeRedis,
    ) -> None:
        conversation_id = await repo.create_conversation(ALICE)
        await repo.append_messages(conversation_id, [_message("hi")])

        await repo.delete_conversation(ALICE, conversation_id)
        assert await repo.get_conversation(conversation_id) is None

        await repo.delete_conversation(ALICE, conversation_id)
        assert await repo.get_conversation(conversation_id) is None
        assert await fake_redis.exists(
            conversation_meta_key(conversation_id),
            conversation_messages_key(conversation_id),
        ) == 0
        assert await repo.get_conversations(ALICE) == []


class TestCorruptedMessages:
    async def test_wrong_type_reads_as_empty(
        self,
        repo: ConversationRepository,
        fake_redis: fakeredis.aioredis.FakeRedis,
    ) -> None:
        conversation_id = await repo.create_conversation(ALICE)
        await fake_redis.set(conversation_messages_key(conversation_id), "not a list")

        detail = await repo.get_conversation(conversation_id)

        assert detail is not None
        assert detail.messages == []
        assert detail.meta.message_count == 0

    async def test_unparseable_items_read_as_empty(
        self,
        repo: ConversationRepository,
        fake_redis: fakeredis.aioredis.FakeRedis,
    ) -> None:
        conversation_id = await repo.create_conversation(ALICE)
        await fake_redis.rpush(
            conversation_messages_key(conversation_id), "{broken", '"a string"'
        )

        detail = await repo.get_conversation(conversation_id)

        assert detail is not None
        assert detail.messages == []
        [listed] = await repo.get_conversations(ALICE)
        assert listed.message_count == 0

    async def test_append_replaces_wrong_type(
        self,
        repo: ConversationRepository,
        fake_redis: fakeredis.aioredis.FakeRedis,
    ) -> None:
        conversation_id = await repo.create_conversation(ALICE)
        messages_key = conversation_messages_key(conversation_id)
        await fake_redis.set(messages_key, "not a list")

        count = await repo.append_messages(
            conversation_id, [_message("first"), _message("second", role="assistant")]
        )

        assert count == 2
        detail = await repo.get_conversation(conversation_id)
        assert detail is not None
        assert [m.content for m in detail.messages] == ["first", "second"]
        assert await fake_redis.type(messages_key) == "list"
        assert await repo.append_messages(conversation_id, [_message("third")]) == 3

    async def test_append_replaces_unparseable_list(
        self,
        repo: ConversationRepository,
        fake_redis: fakeredis.aioredis.FakeRedis,
    ) -> None:
        conversation_id = await repo.create_conversation(ALICE)
        messages_key = conversation_messages_key(conversation_id)
        await fake_redis.rpush(messages_key, "{broken")

        count = await repo.append_messages(
            conversation_id, [_message("first"), _message("second", role="assistant")]
        )

        detail = await repo.get_conversation(conversation_id)
        [listed] = await repo.get_conversations(ALICE)
        assert detail is not None
        assert count == 2
        assert detail.meta.message_count == listed.message_count == 2
        assert await fake_redis.llen(messages_key) == 2

    async def test_empty_append_on_corrupted_list_counts_zero(
        self,
        repo: ConversationRepository,
        fake_redis: fakeredis.aioredis.FakeRedis,
    ) -> None:
        conversation_id = await repo.create_conversation(ALICE)
        await fake_redis.rpush(conversation_messages_key(conversation_id), "{broken")

        assert await repo.append_messages(conversation_id, []) == 0


class TestExportConversation:
    async def test_one_heading_per_message_in_order(
        self, repo: ConversationRepository
    ) -> None:
        conversation_id = await repo.create_conversation(ALICE, "Export me")
        base = datetime(2026, 3, 2, 9, 5, tzinfo=UTC)
        await repo.append_messages(
            conversation_id,
            [
                _message("first", created_at=base),
                _message("second", role="assistant", created_at=base + timedelta(minutes=1)),
                _message("third", created_at=base + timedelta(minutes=2)),
            ],
        )

        markdown = await repo.export_conversation(conversation_id)

        headings = [line for line in markdown.splitlines() if line.startswith("### ")]
        assert headings == [
            "### You — 09:05",
            "### Assistant — 09:06",
            "### You — 09:07",
        ]
        assert markdown.startswith("# Export me\n")
        assert "**Date:** Monday 2 March 2026" in markdown
        assert "**Messages:** 3" in markdown

    async def test_missing_conversation_raises(
        self, repo: ConversationRepository
    ) -> None:
        with pytest.raises(ConversationNotFoundError):
            await repo.export_conversation("missing")


class TestStoreFailures:
    async def test_redis_errors_become_store_unavailable(self) -> None:
        broken = AsyncMock()
        broken.hgetall.side_effect = RedisConnectionError("connection refused")
        repo = ConversationRepository(broken)

        with pytest.raises(StoreUnavailableError):
            await repo.get_conversation("any")


class TestPipelineScenario:
    async def test_full_lifecycle(self, repo: ConversationRepository) -> None:
        conversation_id = await repo.create_conversation(ALICE)

        await repo.append_messages(
            conversation_id, [_message("Show me this week's pipeline")]
        )
        detail = await repo.get_conversation(conversation_id)
        assert detail is not None
        assert detail.meta.message_count == 1
        assert detail.meta.title == DEFAULT_TITLE
        first_updated = detail.meta.updated_at

        await repo.append_messages(
            conversation_id,
            [
                _message(
                    "Here is the pipeline.",
                    role="assistant",
                    tool_invocations=[{"tool_name": "get_pipeline", "state": "result"}],
                )
            ],
        )
        detail = await repo.get_conversation(conversation_id)
        assert detail is not None
        assert detail.meta.message_count == 2
        assert detail.meta.updated_at > first_updated

        await repo.update_conversation_title(conversation_id, "Pipeline check-in")
        detail = await repo.get_conversation(conversation_id)
        assert detail is not None
        assert detail.meta.title == "Pipeline check-in"
        assert detail.meta.message_count == 2

        markdown = await repo.export_conversation(conversation_id)
        assert "### You —" in markdown
        assert "### Assistant —" in markdown
        assert "Show me this week's pipeline" in markdown
