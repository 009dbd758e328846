"""Services for ShopAssist support chatbot."""
from .intent_classifier import IntentClassifier, Classification, IntentRule
from .template_engine import render, get_response, format_currency
from .rate_limiter import RateLimiter, RateLimitDecision, RateLimitExceededError
from .retry import retry_with_backoff
from .llm_client import LLMClient, LLMResponse, LLMError, LLMClientError
from .data_store import DataStore
from .conversation_manager import ConversationManager, ConversationNotFoundError
from .intent_handlers import IntentHandlers
from .message_bus import MessageBus
from .routing_logger import RoutingLogger
from .message_router import MessageRouter, ChatResult

__all__ = ['IntentClassifier', 'Classification', 'IntentRule', 'render', 'get_response', 'format_currency', 'RateLimiter', 'RateLimitDecision', 'RateLimitExceededError', 'retry_with_backoff', 'LLMClient', 'LLMResponse', 'LLMError', 'LLMClientError', 'DataStore', 'ConversationManager', 'ConversationNotFoundError', 'IntentHandlers', 'MessageBus', 'RoutingLogger', 'MessageRouter', 'ChatResult']
