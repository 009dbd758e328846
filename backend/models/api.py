"""Request and response schemas for the chat API."""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from models.conversation import Conversation, Turn


class APIModel(BaseModel):
    """Base schema: snake_case in Python, camelCase on the wire."""
    model_config = ConfigDict(populate_by_name=True)


class MessageRequest(APIModel):
    """Inbound chat message. `message` is optional here so an empty body is a 400, not a 422."""
    message: Optional[str] = None
    conversation_id: Optional[str] = Field(default=None, alias="conversationId")


class FeedbackRequest(APIModel):
    rating: int = Field(ge=1, le=5)
    comment: Optional[str] = None


class TurnMetadataOut(APIModel):
    related_product_ids: List[str] = Field(default_factory=list, alias="relatedProductIds")
    related_order_ids: List[str] = Field(default_factory=list, alias="relatedOrderIds")
    intent: Optional[str] = None
    sentiment: Optional[str] = None


class TurnOut(APIModel):
    type: str
    message: str
    timestamp: datetime
    metadata: Optional[TurnMetadataOut] = None


class FeedbackOut(APIModel):
    rating: int
    comment: Optional[str] = None


class ConversationOut(APIModel):
    id: str
    title: str
    turns: List[TurnOut]
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")
    active: bool = True
    ended_at: Optional[datetime] = Field(default=None, alias="endedAt")
    last_message: Optional[str] = Field(default=None, alias="lastMessage")
    feedback: Optional[FeedbackOut] = None


class MessageResponse(APIModel):
    conversation: ConversationOut
    message: str


def turn_to_out(turn: Turn) -> TurnOut:
    """Convert a Turn dataclass into its wire schema."""
    metadata = None
    if turn.metadata is not None:
        metadata = TurnMetadataOut(
            related_product_ids=turn.metadata.related_product_ids,
            related_order_ids=turn.metadata.related_order_ids,
            intent=turn.metadata.intent,
            sentiment=turn.metadata.sentiment,
        )
    return TurnOut(
        type=turn.speaker,
        message=turn.message,
        timestamp=turn.timestamp,
        metadata=metadata,
    )


def conversation_to_out(conversation: Conversation) -> ConversationOut:
    """Convert a Conversation dataclass into its wire schema."""
    feedback = None
    if conversation.feedback is not None:
        feedback = FeedbackOut(
            rating=conversation.feedback.rating,
            comment=conversation.feedback.comment,
        )
    return ConversationOut(
        id=conversation.conversation_id,
        title=conversation.title,
        turns=[turn_to_out(t) for t in conversation.turns],
        created_at=conversation.created_at,
        updated_at=conversation.updated_at,
        active=conversation.active,
        ended_at=conversation.ended_at,
        last_message=conversation.last_message,
        feedback=feedback,
    )
