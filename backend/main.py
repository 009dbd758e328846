"""Main entry point for ShopAssist support chatbot API."""
import json
import logging
import uuid
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from auth import decode_user_id, get_current_user_id
from config import CORS_ORIGINS, LOG_FORMAT, LOG_LEVEL, PORT
from logger import setup_logging
from models.api import (
    ConversationOut,
    FeedbackRequest,
    MessageRequest,
    MessageResponse,
    conversation_to_out,
)
from services.conversation_manager import ConversationManager, ConversationNotFoundError
from services.data_store import DataStore
from services.intent_classifier import IntentClassifier
from services.intent_handlers import IntentHandlers
from services.llm_client import LLMClient
from services.message_bus import MessageBus
from services.message_router import MessageRouter, MESSAGE_EVENT
from services.rate_limiter import RateLimiter, RateLimitExceededError
from services.routing_logger import RoutingLogger

# Initialize logging
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="ShopAssist Support Chatbot",
    description="Customer support chatbot for an online tech store",
    version="1.0.0"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Initialize services (will be done on startup)
message_router: MessageRouter = None
conversation_manager: ConversationManager = None
message_bus: MessageBus = None
routing_logger: RoutingLogger = None


@app.on_event("startup")
async def startup_event():
    """Initialize services on startup."""
    global message_router, conversation_manager, message_bus, routing_logger

    if LOG_FORMAT == "json":
        setup_logging(LOG_LEVEL)

    logger.info("Initializing ShopAssist services...")

    try:
        data_store = await DataStore.connect()
        logger.info("Initialized DataStore")

        llm_client = LLMClient()
        logger.info("Initialized LLMClient")

        conversation_manager = ConversationManager(data_store)
        message_bus = MessageBus()
        routing_logger = RoutingLogger()

        message_router = MessageRouter(
            classifier=IntentClassifier(),
            handlers=IntentHandlers(data_store, llm_client, RateLimiter()),
            conversation_manager=conversation_manager,
            message_bus=message_bus,
            routing_logger=routing_logger
        )
        logger.info("All services initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize services: {e}", exc_info=True)
        raise


@app.on_event("shutdown")
async def shutdown_event():
    if routing_logger is not None:
        routing_logger.close()


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "message": "ShopAssist Support Chatbot API"}


@app.get("/health")
async def health():
    """Detailed health check."""
    return {
        "status": "healthy",
        "service": "shopassist-chatbot",
        "version": "1.0.0"
    }


@app.post("/api/chat/message", response_model=MessageResponse)
async def send_message(
    request: MessageRequest,
    user_id: str = Depends(get_current_user_id)
) -> MessageResponse:
    """
    Answer a chat message and append it to the caller's conversation.

    Args:
        request: MessageRequest with message and optional conversationId
        user_id: Authenticated caller

    Returns:
        MessageResponse with the updated conversation and the bot reply

    Raises:
        HTTPException: 400 empty message, 404 unknown conversation,
            429 model rate limit, 500 anything else
    """
    try:
        if not request.message or not request.message.strip():
            raise HTTPException(status_code=400, detail={"error": "Message is required"})

        result = await message_router.process_message(
            owner_id=user_id,
            message=request.message,
            conversation_id=request.conversation_id
        )

        return MessageResponse(
            conversation=conversation_to_out(result.conversation),
            message=result.message
        )

    except HTTPException:
        raise
    except ConversationNotFoundError:
        raise HTTPException(status_code=404, detail={"error": "Chat not found"})
    except RateLimitExceededError as e:
        logger.warning(f"Rate limit rejected message from {user_id}: {e}")
        raise HTTPException(
            status_code=429,
            detail={"error": str(e), "retry_after": e.retry_after}
        )
    except Exception as e:
        logger.error(f"Unexpected error processing message: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail={"error": "Failed to process message"})


@app.get("/api/chat", response_model=List[ConversationOut])
async def list_chats(user_id: str = Depends(get_current_user_id)) -> List[ConversationOut]:
    """All of the caller's conversations, most recently updated first."""
    try:
        conversations = await conversation_manager.list_conversations(user_id)
    except Exception as e:
        logger.error(f"Error getting chats: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail={"error": "An error occurred while getting chats"})
    return [conversation_to_out(c) for c in conversations]


@app.get("/api/chat/{conversation_id}", response_model=ConversationOut)
async def get_chat(conversation_id: str, user_id: str = Depends(get_current_user_id)) -> ConversationOut:
    _require_valid_id(conversation_id)
    try:
        conversation = await conversation_manager.get_conversation(conversation_id, user_id)
    except ConversationNotFoundError:
        raise HTTPException(status_code=404, detail={"error": "Chat not found"})
    except Exception as e:
        logger.error(f"Error getting chat {conversation_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail={"error": "An error occurred while getting the chat"})
    return conversation_to_out(conversation)


@app.delete("/api/chat/{conversation_id}")
async def delete_chat(conversation_id: str, user_id: str = Depends(get_current_user_id)):
    _require_valid_id(conversation_id)
    try:
        await conversation_manager.delete_conversation(conversation_id, user_id)
    except ConversationNotFoundError:
        raise HTTPException(status_code=404, detail={"error": "Chat not found"})
    except Exception as e:
        logger.error(f"Error deleting chat {conversation_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail={"error": "An error occurred while deleting the chat"})
    return {"message": "Chat deleted successfully"}


@app.put("/api/chat/{conversation_id}/feedback", response_model=ConversationOut)
async def submit_feedback(
    conversation_id: str,
    request: FeedbackRequest,
    user_id: str = Depends(get_current_user_id)
) -> ConversationOut:
    _require_valid_id(conversation_id)
    try:
        conversation = await conversation_manager.record_feedback(
            conversation_id, user_id, request.rating, request.comment
        )
    except ConversationNotFoundError:
        raise HTTPException(status_code=404, detail={"error": "Chat not found"})
    except Exception as e:
        logger.error(f"Error saving feedback for chat {conversation_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail={"error": "An error occurred while saving feedback"})
    return conversation_to_out(conversation)


@app.post("/api/chat/{conversation_id}/end", response_model=ConversationOut)
async def end_chat(conversation_id: str, user_id: str = Depends(get_current_user_id)) -> ConversationOut:
    _require_valid_id(conversation_id)
    try:
        conversation = await conversation_manager.end_conversation(conversation_id, user_id)
    except ConversationNotFoundError:
        raise HTTPException(status_code=404, detail={"error": "Chat not found"})
    except Exception as e:
        logger.error(f"Error ending chat {conversation_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail={"error": "An error occurred while ending the chat"})
    return conversation_to_out(conversation)


@app.websocket("/ws/chat")
async def chat_socket(websocket: WebSocket, token: Optional[str] = None):
    """
    Real-time chat channel.

    Frames from the client: {"type": "join"|"leave", "conversation_id"} and
    {"type": "message", "message", "conversation_id"?}. The server pushes
    {"event": ..., "data": ...} frames for joined, message, typing and error.
    """
    user_id = decode_user_id(token)
    if not user_id:
        await websocket.close(code=1008)
        return

    await websocket.accept()
    subscriber_id = f"ws_{uuid.uuid4().hex[:12]}"
    logger.info(f"Client {subscriber_id} connected for user {user_id}")

    async def deliver(event: str, payload: Dict[str, Any]) -> None:
        await websocket.send_json({"event": event, "data": payload})

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                frame = json.loads(raw)
            except json.JSONDecodeError:
                await deliver("error", {"message": "Invalid frame"})
                continue
            if not isinstance(frame, dict):
                await deliver("error", {"message": "Invalid frame"})
                continue
            await _handle_socket_frame(frame, user_id, subscriber_id, deliver)
    except WebSocketDisconnect:
        logger.info(f"Client {subscriber_id} disconnected")
    finally:
        await message_bus.unsubscribe_all(subscriber_id)


async def _handle_socket_frame(frame: Dict[str, Any], user_id: str, subscriber_id: str, deliver) -> None:
    frame_type = frame.get("type")
    conversation_id = frame.get("conversation_id")
    if conversation_id is not None and not isinstance(conversation_id, str):
        await deliver("error", {"message": "Invalid chat ID"})
        return

    if frame_type == "join":
        try:
            await conversation_manager.get_conversation(conversation_id, user_id)
        except ConversationNotFoundError:
            await deliver("error", {"message": "Chat not found", "conversation_id": conversation_id})
            return
        await message_bus.subscribe(conversation_id, subscriber_id, deliver)
        await deliver("joined", {"conversation_id": conversation_id})

    elif frame_type == "leave":
        if conversation_id:
            await message_bus.unsubscribe(conversation_id, subscriber_id)

    elif frame_type == "message":
        text = frame.get("message")
        if not isinstance(text, str) or not text.strip():
            await deliver("error", {"message": "Message is required"})
            return

        try:
            result = await message_router.process_message(user_id, text, conversation_id)
        except ConversationNotFoundError:
            await deliver("error", {"message": "Chat not found", "conversation_id": conversation_id})
            return
        except RateLimitExceededError as e:
            await deliver("error", {"message": str(e), "retry_after": e.retry_after})
            return
        except Exception as e:
            logger.error(f"Error handling socket message: {e}", exc_info=True)
            await deliver("error", {"message": "Error processing message"})
            return

        # A sender not yet subscribed (e.g. first message of a new conversation)
        # missed the broadcast; subscribe it and deliver directly.
        topic = result.conversation.conversation_id
        if not message_bus.is_subscribed(topic, subscriber_id):
            await message_bus.subscribe(topic, subscriber_id, deliver)
            await deliver(MESSAGE_EVENT, MessageRouter.message_payload(result.conversation))

    else:
        await deliver("error", {"message": f"Unknown frame type: {frame_type}"})


def _require_valid_id(conversation_id: str) -> None:
    if not ConversationManager.is_valid_conversation_id(conversation_id):
        raise HTTPException(status_code=400, detail={"error": "Invalid chat ID"})


if __name__ == "__main__":
    import uvicorn
    logger.info(f"Starting ShopAssist Support Chatbot API on port {PORT}")
    uvicorn.run(app, host="0.0.0.0", port=PORT)
