"""
Message router: the end-to-end pipeline for one inbound chat message.

classify -> handle (deterministic handler or rate-limited model fallback)
-> persist user and bot turns -> publish the bot turn to conversation subscribers.
Used by both the REST endpoint and the WebSocket channel.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

from config import FALLBACK_MODEL
from models.api import turn_to_out
from models.conversation import Conversation, TurnMetadata
from services import pattern_catalog as catalog
from services.conversation_manager import ConversationManager
from services.intent_classifier import IntentClassifier, Classification
from services.intent_handlers import IntentHandlers
from services.message_bus import MessageBus
from services.rate_limiter import RateLimitExceededError
from services.routing_logger import RoutingLogger

logger = logging.getLogger(__name__)

MESSAGE_EVENT = "message"
TYPING_EVENT = "typing"


@dataclass
class ChatResult:
    """Outcome of processing one message."""
    conversation: Conversation
    message: str
    classification: Classification


class MessageRouter:
    """Runs classification, handling, persistence and notification for chat messages."""

    def __init__(
        self,
        classifier: IntentClassifier,
        handlers: IntentHandlers,
        conversation_manager: ConversationManager,
        message_bus: Optional[MessageBus] = None,
        routing_logger: Optional[RoutingLogger] = None
    ):
        self.classifier = classifier
        self.handlers = handlers
        self.conversation_manager = conversation_manager
        self.message_bus = message_bus or MessageBus()
        self.routing_logger = routing_logger

    async def process_message(
        self,
        owner_id: str,
        message: str,
        conversation_id: Optional[str] = None
    ) -> ChatResult:
        """
        Answer a customer message and record both turns.

        Args:
            owner_id: Authenticated caller
            message: Non-empty message text
            conversation_id: Target conversation; defaults to the caller's latest

        Returns:
            ChatResult with the updated conversation and the bot's reply

        Raises:
            ValueError: If the message is empty
            ConversationNotFoundError: If conversation_id is not owned by the caller
            RateLimitExceededError: If the model fallback is over budget
        """
        if not message or not message.strip():
            raise ValueError("Message is required")

        start_time = time.time()
        logger.info(f"Processing message for {owner_id}: {message[:100]}")

        conversation = await self.conversation_manager.resolve_conversation(conversation_id, owner_id)
        topic = conversation.conversation_id if conversation else None
        history = ConversationManager.get_history(conversation)

        classification = self.classifier.classify(message)

        try:
            if classification.use_ai:
                await self._publish(topic, TYPING_EVENT, {"conversation_id": topic, "is_typing": True})
            try:
                reply = await self.handlers.handle(classification, owner_id, message, history)
            finally:
                if classification.use_ai:
                    await self._publish(topic, TYPING_EVENT, {"conversation_id": topic, "is_typing": False})
        except RateLimitExceededError:
            self._log_decision(message, classification, start_time, topic, outcome="rate_limited")
            raise
        except Exception:
            self._log_decision(message, classification, start_time, topic, outcome="error")
            raise

        metadata = TurnMetadata(intent=classification.category)
        if classification.category == catalog.ORDER_STATUS and classification.entity:
            metadata.related_order_ids.append(classification.entity)

        try:
            updated = await self.conversation_manager.append_turns(
                topic, owner_id, message, reply, metadata=metadata
            )
        except Exception:
            # Turn not recorded
            self._log_decision(message, classification, start_time, topic, outcome="error")
            raise

        self._log_decision(message, classification, start_time, updated.conversation_id)
        # Delivered in the background; a slow subscriber does not hold up the reply.
        self.message_bus.publish_nowait(updated.conversation_id, MESSAGE_EVENT, self.message_payload(updated))

        return ChatResult(conversation=updated, message=reply, classification=classification)

    @staticmethod
    def message_payload(conversation: Conversation) -> Dict[str, Any]:
        """Event body for a newly appended user/bot turn pair."""
        user_turn, bot_turn = conversation.turns[-2], conversation.turns[-1]
        return {
            "conversation_id": conversation.conversation_id,
            "user_turn": turn_to_out(user_turn).model_dump(mode="json", by_alias=True),
            "bot_turn": turn_to_out(bot_turn).model_dump(mode="json", by_alias=True),
            "updated_at": conversation.updated_at.isoformat(),
        }

    async def _publish(self, topic: Optional[str], event: str, payload: Dict[str, Any]) -> None:
        if topic is None:
            return
        await self.message_bus.publish(topic, event, payload)

    def _log_decision(
        self,
        message: str,
        classification: Classification,
        start_time: float,
        conversation_id: Optional[str],
        outcome: str = "answered"
    ) -> None:
        if self.routing_logger is None:
            return
        try:
            self.routing_logger.log_routing_decision(
                query=message,
                intent=classification.category,
                rule_triggered=classification.rule_triggered,
                use_ai=classification.use_ai,
                latency_ms=int((time.time() - start_time) * 1000),
                entity=classification.entity,
                model_used=FALLBACK_MODEL if classification.use_ai else None,
                conversation_id=conversation_id,
                outcome=outcome
            )
        except OSError as e:
            logger.warning(f"Failed to write routing decision: {e}")
