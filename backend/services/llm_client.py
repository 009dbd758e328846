"""LLM Client for Groq API integration."""
import time
from dataclasses import dataclass
from typing import List, Optional, Dict, Any
from groq import AsyncGroq
from groq import RateLimitError, AuthenticationError, APIError, APITimeoutError
import logging

from config import GROQ_API_KEY, FALLBACK_MODEL, FALLBACK_MAX_TOKENS, HISTORY_MAX_TURNS
from models.conversation import Turn, USER

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are a friendly customer support assistant for an online tech store that sells smartphones, laptops, audio gear, wearables and smart home devices.

Instructions:
- Answer the customer's question concisely and politely
- If you don't know something about a specific order or product, suggest asking with the order number or product name
- Never invent order details, prices or stock levels"""


@dataclass
class LLMResponse:
    """Response from LLM generation."""
    text: str
    tokens_input: int
    tokens_output: int
    latency_ms: int
    model_used: str


@dataclass
class LLMError:
    """Structured error response from LLM operations."""
    code: str
    message: str
    details: Dict[str, Any]


class LLMClientError(Exception):
    """Custom exception for LLM client errors with structured error information."""

    def __init__(self, error: LLMError):
        self.error = error
        super().__init__(error.message)


class LLMClient:
    """Async client for the Groq chat-completions API."""

    def __init__(self, api_key: Optional[str] = None, model: str = FALLBACK_MODEL):
        """
        Initialize LLM client with Groq API key.

        Args:
            api_key: Groq API key (defaults to GROQ_API_KEY from environment)
            model: Default model for generation
        """
        self.api_key = api_key or GROQ_API_KEY
        if not self.api_key:
            raise ValueError("GROQ_API_KEY must be provided or set in environment")

        self.model = model
        self.client = AsyncGroq(api_key=self.api_key)
        logger.info("LLMClient initialized successfully")

    async def generate(
        self,
        messages: List[Dict[str, str]],
        model: Optional[str] = None,
        max_tokens: int = FALLBACK_MAX_TOKENS
    ) -> LLMResponse:
        """
        Generate a chat completion.

        Args:
            messages: Chat messages (role/content dicts), see build_messages
            model: Model name (defaults to the client's model)
            max_tokens: Maximum tokens to generate

        Returns:
            LLMResponse with text, token counts, and latency

        Raises:
            LLMClientError: Structured error with code, message, and details
        """
        model = model or self.model
        start_time = time.time()

        try:
            logger.debug(f"Generating response with model: {model}, messages={len(messages)}")

            response = await self.client.chat.completions.create(
                model=model,
                messages=messages,
                max_tokens=max_tokens,
                temperature=0.7
            )

            latency_ms = int((time.time() - start_time) * 1000)
            text = response.choices[0].message.content or ""
            tokens_input = response.usage.prompt_tokens
            tokens_output = response.usage.completion_tokens

            logger.info(
                f"Generated response: model={model}, "
                f"input_tokens={tokens_input}, output_tokens={tokens_output}, "
                f"latency={latency_ms}ms"
            )

            return LLMResponse(
                text=text,
                tokens_input=tokens_input,
                tokens_output=tokens_output,
                latency_ms=latency_ms,
                model_used=model
            )

        except RateLimitError as e:
            raise self._error(
                "RATE_LIMIT_ERROR",
                "Rate limit exceeded. Please try again in a few moments.",
                model, start_time, e,
                retry_after=60
            )
        except AuthenticationError as e:
            raise self._error(
                "AUTHENTICATION_ERROR",
                "Authentication failed. Please check your API key.",
                model, start_time, e
            )
        except APITimeoutError as e:
            raise self._error(
                "TIMEOUT_ERROR",
                "Request timed out. Please try again.",
                model, start_time, e
            )
        except APIError as e:
            raise self._error(
                "API_ERROR",
                f"Groq API error: {str(e)}",
                model, start_time, e
            )
        except Exception as e:
            raise self._error(
                "UNKNOWN_ERROR",
                f"Unexpected error during generation: {str(e)}",
                model, start_time, e,
                error_type=type(e).__name__
            )

    @staticmethod
    def _error(code: str, message: str, model: str, start_time: float, cause: Exception, **extra: Any) -> LLMClientError:
        latency_ms = int((time.time() - start_time) * 1000)
        error = LLMError(
            code=code,
            message=message,
            details={
                "model": model,
                "latency_ms": latency_ms,
                "original_error": str(cause),
                **extra
            }
        )
        logger.error(
            f"{code}: model={model}, latency={latency_ms}ms, error={cause}",
            exc_info=True,
            extra={"error_code": error.code, "error_details": error.details}
        )
        return LLMClientError(error)

    @staticmethod
    def build_messages(
        message: str,
        history: Optional[List[Turn]] = None,
        max_turns: int = HISTORY_MAX_TURNS
    ) -> List[Dict[str, str]]:
        """
        Build the chat message list for a fallback request.

        Args:
            message: The new customer message
            history: Prior turns of the conversation, oldest first
            max_turns: How many of the most recent turns to include

        Returns:
            System prompt, then up to `max_turns` role-tagged turns, then the new message
        """
        messages = [{"role": "system", "content": SYSTEM_PROMPT}]

        recent = (history or [])[-max_turns:] if max_turns > 0 else []
        for turn in recent:
            role = "user" if turn.speaker == USER else "assistant"
            messages.append({"role": role, "content": turn.message})

        messages.append({"role": "user", "content": message})
        return messages
