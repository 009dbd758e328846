"""Unit tests for ConversationManager."""
import sys
sys.path.insert(0, 'backend')

import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from services.conversation_manager import ConversationManager, ConversationNotFoundError
from models.conversation import Conversation, Turn, TurnMetadata, USER, BOT


def run(coro):
    return asyncio.run(coro)


def make_conversation(conversation_id, owner_id="user_1", updated_at=None, turns=None):
    updated_at = updated_at or datetime(2024, 5, 1, tzinfo=timezone.utc)
    return Conversation(
        conversation_id=conversation_id,
        owner_id=owner_id,
        turns=turns or [],
        created_at=updated_at,
        updated_at=updated_at,
    )


class TestConversationManager:
    """Test suite for ConversationManager."""

    @pytest.fixture
    def manager(self, store):
        """Create a ConversationManager over the in-memory store."""
        return ConversationManager(store)

    def test_first_message_creates_conversation(self, manager, store):
        """Test appending without an id creates a new conversation."""
        conversation = run(manager.append_turns(None, "user_1", "Hi", "Hello!"))

        assert ConversationManager.is_valid_conversation_id(conversation.conversation_id)
        assert conversation.title == "New Conversation"
        assert conversation.owner_id == "user_1"
        assert conversation.active is True
        assert len(conversation.turns) == 2
        assert conversation.conversation_id in store.conversations

    def test_turns_are_user_then_bot(self, manager):
        conversation = run(manager.append_turns(None, "user_1", "Hi", "Hello!"))

        user_turn, bot_turn = conversation.turns
        assert user_turn.speaker == USER
        assert user_turn.message == "Hi"
        assert bot_turn.speaker == BOT
        assert bot_turn.message == "Hello!"
        assert user_turn.timestamp == bot_turn.timestamp
        assert conversation.updated_at == bot_turn.timestamp
        assert conversation.last_message == "Hello!"

    def test_append_is_a_single_write(self, manager, store):
        run(manager.append_turns(None, "user_1", "Hi", "Hello!"))

        assert store.save_count == 1

    def test_bot_turn_carries_metadata(self, manager):
        metadata = TurnMetadata(intent="order_status", related_order_ids=["ORD-001"])

        conversation = run(manager.append_turns(None, "user_1", "status ORD-001", "Order...", metadata=metadata))

        assert conversation.turns[0].metadata is None
        assert conversation.turns[1].metadata.intent == "order_status"
        assert conversation.turns[1].metadata.related_order_ids == ["ORD-001"]

    def test_no_id_reuses_latest_conversation(self, manager, store):
        store.conversations["conv_aaaaaaaaaaaa"] = make_conversation(
            "conv_aaaaaaaaaaaa", updated_at=datetime(2024, 1, 1, tzinfo=timezone.utc))
        store.conversations["conv_bbbbbbbbbbbb"] = make_conversation(
            "conv_bbbbbbbbbbbb", updated_at=datetime(2024, 6, 1, tzinfo=timezone.utc))

        conversation = run(manager.append_turns(None, "user_1", "Hi", "Hello!"))

        assert conversation.conversation_id == "conv_bbbbbbbbbbbb"
        assert len(store.conversations) == 2

    def test_turn_order_preserved_across_appends(self, manager):
        first = run(manager.append_turns(None, "user_1", "one", "reply one"))
        second = run(manager.append_turns(first.conversation_id, "user_1", "two", "reply two"))

        assert [t.message for t in second.turns] == ["one", "reply one", "two", "reply two"]
        assert second.turns[0].timestamp <= second.turns[2].timestamp

    def test_concurrent_appends_are_not_lost(self, manager, store):
        """Concurrent appends to one conversation keep every turn pair."""
        created = run(manager.append_turns(None, "user_1", "start", "ok"))

        async def burst():
            await asyncio.gather(*(
                manager.append_turns(created.conversation_id, "user_1", f"q{i}", f"a{i}")
                for i in range(10)
            ))

        run(burst())

        stored = store.conversations[created.conversation_id]
        assert len(stored.turns) == 22
        for i in range(10):
            index = [t.message for t in stored.turns].index(f"q{i}")
            assert stored.turns[index + 1].message == f"a{i}"

    def test_append_to_foreign_conversation_raises(self, manager, store):
        store.conversations["conv_cccccccccccc"] = make_conversation("conv_cccccccccccc", owner_id="user_2")

        with pytest.raises(ConversationNotFoundError):
            run(manager.append_turns("conv_cccccccccccc", "user_1", "Hi", "Hello!"))

        assert store.conversations["conv_cccccccccccc"].turns == []

    def test_get_conversation_malformed_id(self, manager):
        with pytest.raises(ConversationNotFoundError):
            run(manager.get_conversation("not-an-id", "user_1"))

    def test_resolve_without_id_and_no_history(self, manager):
        assert run(manager.resolve_conversation(None, "user_1")) is None

    def test_list_conversations_most_recent_first(self, manager, store):
        base = datetime(2024, 1, 1, tzinfo=timezone.utc)
        for i, suffix in enumerate(("111111111111", "222222222222", "333333333333")):
            store.conversations[f"conv_{suffix}"] = make_conversation(
                f"conv_{suffix}", updated_at=base + timedelta(days=i))
        store.conversations["conv_444444444444"] = make_conversation("conv_444444444444", owner_id="user_2")

        conversations = run(manager.list_conversations("user_1"))

        assert [c.conversation_id for c in conversations] == [
            "conv_333333333333", "conv_222222222222", "conv_111111111111"
        ]

    def test_delete_conversation(self, manager, store):
        store.conversations["conv_dddddddddddd"] = make_conversation("conv_dddddddddddd")

        run(manager.delete_conversation("conv_dddddddddddd", "user_1"))

        assert "conv_dddddddddddd" not in store.conversations

    def test_delete_missing_conversation_raises(self, manager):
        with pytest.raises(ConversationNotFoundError):
            run(manager.delete_conversation("conv_eeeeeeeeeeee", "user_1"))

    def test_record_feedback(self, manager, store):
        store.conversations["conv_ffffffffffff"] = make_conversation("conv_ffffffffffff")

        conversation = run(manager.record_feedback("conv_ffffffffffff", "user_1", 4, "Quick answers"))

        assert conversation.feedback.rating == 4
        assert store.conversations["conv_ffffffffffff"].feedback.comment == "Quick answers"

    def test_record_feedback_rejects_bad_rating(self, manager):
        with pytest.raises(ValueError):
            run(manager.record_feedback("conv_ffffffffffff", "user_1", 6))

    def test_end_conversation(self, manager, store):
        store.conversations["conv_0123456789ab"] = make_conversation("conv_0123456789ab")

        conversation = run(manager.end_conversation("conv_0123456789ab", "user_1"))

        assert conversation.active is False
        assert conversation.ended_at is not None
        assert store.conversations["conv_0123456789ab"].active is False

    def test_get_history_limits_turns(self):
        now = datetime.now(timezone.utc)
        turns = [Turn(speaker=USER if i % 2 == 0 else BOT, message=str(i), timestamp=now) for i in range(14)]
        conversation = make_conversation("conv_0123456789ab", turns=turns)

        history = ConversationManager.get_history(conversation, max_turns=10)

        assert [t.message for t in history] == [str(i) for i in range(4, 14)]
        assert ConversationManager.get_history(None) == []
        assert ConversationManager.get_history(conversation, max_turns=0) == []

    def test_conversation_id_uniqueness(self, manager):
        """Test that generated conversation ids are unique."""
        ids = {manager._generate_conversation_id() for _ in range(100)}

        assert len(ids) == 100

    @pytest.mark.parametrize("conversation_id,valid", [
        ("conv_0123456789ab", True),
        ("conv_0123456789AB", False),
        ("conv_0123", False),
        ("0123456789ab", False),
        ("", False),
        (None, False),
        (123, False),
        (["conv_0123456789ab"], False),
    ])
    def test_is_valid_conversation_id(self, conversation_id, valid):
        assert ConversationManager.is_valid_conversation_id(conversation_id) is valid
