"""Conversation manager: persistence of chat turns and conversation lifecycle."""
import asyncio
import logging
import re
import uuid
import weakref
from datetime import datetime, timezone
from typing import List, Optional

from config import HISTORY_MAX_TURNS
from models.conversation import Conversation, Turn, TurnMetadata, Feedback, USER, BOT
from services.data_store import DataStore

logger = logging.getLogger(__name__)

CONVERSATION_ID_PATTERN = re.compile(r"^conv_[0-9a-f]{12}$")


class ConversationNotFoundError(Exception):
    """Raised when a conversation does not exist or is not owned by the caller."""

    def __init__(self, conversation_id: str):
        self.conversation_id = conversation_id
        super().__init__(f"Conversation {conversation_id} not found")


class ConversationManager:
    """Manages conversation storage and retrieval through the DataStore."""

    DEFAULT_TITLE = "New Conversation"

    def __init__(self, store: DataStore):
        """
        Initialize the conversation manager.

        Args:
            store: DataStore used for reads and writes
        """
        self.store = store
        # One lock per conversation id serialises read-modify-write appends.
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()
        logger.info("ConversationManager initialized")

    @staticmethod
    def is_valid_conversation_id(conversation_id: Optional[str]) -> bool:
        return isinstance(conversation_id, str) and bool(CONVERSATION_ID_PATTERN.match(conversation_id))

    async def get_conversation(self, conversation_id: str, owner_id: str) -> Conversation:
        """
        Fetch an owned conversation.

        Raises:
            ConversationNotFoundError: If missing, malformed, or owned by someone else
        """
        if not self.is_valid_conversation_id(conversation_id):
            raise ConversationNotFoundError(conversation_id)
        conversation = await self.store.get_conversation(conversation_id, owner_id)
        if conversation is None:
            raise ConversationNotFoundError(conversation_id)
        return conversation

    async def resolve_conversation(self, conversation_id: Optional[str], owner_id: str) -> Optional[Conversation]:
        """
        The conversation a new message belongs to.

        With an id, the owned conversation (or ConversationNotFoundError). Without
        one, the owner's most recently updated conversation, or None if they have none.
        """
        if conversation_id:
            return await self.get_conversation(conversation_id, owner_id)
        return await self.store.find_latest_conversation(owner_id)

    async def list_conversations(self, owner_id: str) -> List[Conversation]:
        return await self.store.list_conversations(owner_id)

    async def delete_conversation(self, conversation_id: str, owner_id: str) -> None:
        """
        Delete an owned conversation.

        Raises:
            ConversationNotFoundError: If nothing was deleted
        """
        deleted = await self.store.delete_conversation(conversation_id, owner_id)
        if not deleted:
            raise ConversationNotFoundError(conversation_id)
        logger.info(f"Deleted conversation {conversation_id}")

    async def append_turns(
        self,
        conversation_id: Optional[str],
        owner_id: str,
        user_text: str,
        bot_text: str,
        metadata: Optional[TurnMetadata] = None
    ) -> Conversation:
        """
        Append a user turn and a bot turn, then persist both in one write.

        Without a conversation id the owner's most recently updated conversation
        is used, and a new one is created if they have none.

        Args:
            conversation_id: Target conversation, or None
            owner_id: Authenticated caller
            user_text: The customer's message
            bot_text: The composed reply
            metadata: Annotations for the bot turn

        Returns:
            The updated conversation

        Raises:
            ConversationNotFoundError: If a supplied id is not owned by the caller
        """
        if conversation_id is None:
            latest = await self.store.find_latest_conversation(owner_id)
            conversation_id = latest.conversation_id if latest else None

        if conversation_id is None:
            conversation_id = self._generate_conversation_id()
            is_new = True
        else:
            is_new = False

        async with self._lock_for(conversation_id):
            if is_new:
                now = self._now()
                conversation = Conversation(
                    conversation_id=conversation_id,
                    owner_id=owner_id,
                    turns=[],
                    created_at=now,
                    updated_at=now,
                    title=self.DEFAULT_TITLE,
                )
                logger.info(f"Created new conversation: {conversation_id}")
            else:
                # Re-read under the lock so concurrent appends are not lost.
                conversation = await self.get_conversation(conversation_id, owner_id)

            timestamp = self._now()
            conversation.turns.append(Turn(speaker=USER, message=user_text, timestamp=timestamp))
            conversation.turns.append(Turn(speaker=BOT, message=bot_text, timestamp=timestamp, metadata=metadata))
            conversation.updated_at = timestamp
            conversation.last_message = bot_text

            await self.store.save_conversation(conversation)

        logger.info(f"Added turns to conversation {conversation_id} ({len(conversation.turns)} total)")
        return conversation

    async def record_feedback(self, conversation_id: str, owner_id: str, rating: int, comment: Optional[str] = None) -> Conversation:
        if not 1 <= rating <= 5:
            raise ValueError("rating must be between 1 and 5")
        async with self._lock_for(conversation_id):
            conversation = await self.get_conversation(conversation_id, owner_id)
            conversation.feedback = Feedback(rating=rating, comment=comment)
            conversation.updated_at = self._now()
            await self.store.save_conversation(conversation)
        logger.info(f"Recorded feedback ({rating}/5) for conversation {conversation_id}")
        return conversation

    async def end_conversation(self, conversation_id: str, owner_id: str) -> Conversation:
        async with self._lock_for(conversation_id):
            conversation = await self.get_conversation(conversation_id, owner_id)
            if conversation.active:
                now = self._now()
                conversation.active = False
                conversation.ended_at = now
                conversation.updated_at = now
                await self.store.save_conversation(conversation)
        logger.info(f"Ended conversation {conversation_id}")
        return conversation

    @staticmethod
    def get_history(conversation: Optional[Conversation], max_turns: int = HISTORY_MAX_TURNS) -> List[Turn]:
        """The most recent `max_turns` turns of a conversation, oldest first."""
        if conversation is None or max_turns <= 0:
            return []
        return list(conversation.turns[-max_turns:])

    def _lock_for(self, conversation_id: str) -> asyncio.Lock:
        lock = self._locks.get(conversation_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[conversation_id] = lock
        return lock

    def _generate_conversation_id(self) -> str:
        """
        Generate a unique conversation ID.

        Returns:
            Unique conversation ID string
        """
        return f"conv_{uuid.uuid4().hex[:12]}"

    @staticmethod
    def _now() -> datetime:
        return datetime.now(timezone.utc)
