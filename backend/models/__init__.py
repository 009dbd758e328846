"""Data models for ShopAssist support chatbot."""
from .conversation import Conversation, Turn, TurnMetadata, Feedback, USER, BOT
from .catalog import Product, Order, OrderItem, ShippingAddress, Policy, POLICY_TYPES
from .api import (
    MessageRequest,
    MessageResponse,
    FeedbackRequest,
    ConversationOut,
    TurnOut,
    conversation_to_out,
    turn_to_out,
)

__all__ = [
    "Conversation",
    "Turn",
    "TurnMetadata",
    "Feedback",
    "USER",
    "BOT",
    "Product",
    "Order",
    "OrderItem",
    "ShippingAddress",
    "Policy",
    "POLICY_TYPES",
    "MessageRequest",
    "MessageResponse",
    "FeedbackRequest",
    "ConversationOut",
    "TurnOut",
    "conversation_to_out",
    "turn_to_out",
]
