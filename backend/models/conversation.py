"""Conversation data models."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

USER = "user"
BOT = "bot"


@dataclass
class TurnMetadata:
    """Optional annotations attached to a turn."""
    related_product_ids: List[str] = field(default_factory=list)
    related_order_ids: List[str] = field(default_factory=list)
    intent: Optional[str] = None
    sentiment: Optional[str] = None


@dataclass
class Turn:
    """Represents a single message in a conversation."""
    speaker: str  # "user" or "bot"
    message: str
    timestamp: datetime
    metadata: Optional[TurnMetadata] = None


@dataclass
class Feedback:
    """Customer rating of a conversation."""
    rating: int  # 1 to 5
    comment: Optional[str] = None


@dataclass
class Conversation:
    """Represents a multi-turn support conversation owned by one customer."""
    conversation_id: str
    owner_id: str
    turns: List[Turn]
    created_at: datetime
    updated_at: datetime
    title: str = "New Conversation"
    active: bool = True
    ended_at: Optional[datetime] = None
    last_message: Optional[str] = None
    feedback: Optional[Feedback] = None
