# app/routes/chat_route.py

import asyncio, logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, WebSocket, WebSocketDisconnect, status

from app.database.connection import get_db
from app.models.chat import (
    AddParticipantRequest,
    ConversationWithDetails,
    CreateConversationRequest,
    MarkReadRequest,
    MarkReadResponse,
    Message,
    Participant,
    SendMessageRequest,
)
from app.services.chat_service import ChatService
from app.services.chat_subscription import ChatSubscription

logger = logging.getLogger(__name__)
router = APIRouter()


def get_chat_service(db=Depends(get_db)) -> ChatService:
    return ChatService(db)


# ==================== Conversation Routes ====================

@router.get("/conversations", response_model=List[ConversationWithDetails])
async def get_user_conversations(
    user_id: Optional[str] = Query(None, alias="userId"),
    chat: ChatService = Depends(get_chat_service)
):
    if not user_id or not user_id.strip():
        raise HTTPException(status_code=400, detail="Invalid user ID")
    try:
        return chat.list_conversations(user_id.strip())
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error getting conversations for {user_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to get conversations")


@router.post("/conversations", response_model=ConversationWithDetails, status_code=status.HTTP_201_CREATED)
async def create_conversation(
    request: CreateConversationRequest,
    chat: ChatService = Depends(get_chat_service)
):
    """Create a conversation and join every listed participant."""
    try:
        return chat.create_conversation(request)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error creating conversation: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create conversation"
        )


@router.get("/conversations/{conversation_id}", response_model=ConversationWithDetails)
async def get_conversation_details(
    conversation_id: str,
    user_id: Optional[str] = Query(None, alias="userId"),
    chat: ChatService = Depends(get_chat_service)
):
    try:
        return chat.get_conversation(conversation_id, user_id)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching conversation {conversation_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to get conversation")


# ==================== Message Routes ====================

@router.get("/messages/{conversation_id}", response_model=List[Message])
async def get_conversation_messages(
    conversation_id: str,
    chat: ChatService = Depends(get_chat_service)
):
    try:
        return chat.get_messages(conversation_id)
    except Exception as e:
        logger.error(f"Error getting messages for {conversation_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to get messages")


@router.post("/messages", response_model=Message, status_code=status.HTTP_201_CREATED)
async def send_message(
    request: SendMessageRequest,
    chat: ChatService = Depends(get_chat_service)
):
    try:
        return chat.send_message(request)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error sending message to {request.conversation_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to send message")


@router.post("/read/{conversation_id}", response_model=MarkReadResponse)
async def mark_conversation_read(
    conversation_id: str,
    request: MarkReadRequest,
    chat: ChatService = Depends(get_chat_service)
):
    """Mark other senders' messages read and move the reader's lastReadAt to now."""
    try:
        return chat.mark_read(conversation_id, request.user_id)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error marking {conversation_id} read for {request.user_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to mark messages as read")


# ==================== Participant Routes ====================

@router.post("/participants", response_model=Participant, status_code=status.HTTP_201_CREATED)
async def add_participant(
    request: AddParticipantRequest,
    user_name: Optional[str] = Query(None, alias="userName"),
    chat: ChatService = Depends(get_chat_service)
):
    try:
        return chat.add_participant(request, user_name)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error adding participant {request.user_id} to {request.conversation_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to add participant")


@router.delete("/participants/{conversation_id}/{user_id}")
async def remove_participant(
    conversation_id: str,
    user_id: str,
    chat: ChatService = Depends(get_chat_service)
):
    try:
        chat.remove_participant(conversation_id, user_id)
        return {"success": True}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error removing participant {user_id} from {conversation_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to remove participant")


# ==================== Live Feed ====================

async def _pump(websocket: WebSocket, queue: asyncio.Queue):
    while True:
        payload = await queue.get()
        await websocket.send_json(payload)


@router.websocket("/ws/{conversation_id}")
async def conversation_feed(websocket: WebSocket, conversation_id: str, db=Depends(get_db)):
    """Push every messages/participants snapshot of a conversation to the client."""
    await websocket.accept()
    queue: asyncio.Queue = asyncio.Queue()
    loop = asyncio.get_running_loop()

    def on_change(feed, data, error):
        payload = {
            "feed": feed,
            "data": [item.model_dump(mode="json", by_alias=True) for item in data],
            "error": error,
        }
        try:
            # listener callbacks arrive on the Firestore watch thread
            loop.call_soon_threadsafe(queue.put_nowait, payload)
        except RuntimeError:
            logger.warning(f"Dropped {feed} update for {conversation_id}: event loop closed")

    subscription = ChatSubscription(db, conversation_id, on_change=on_change)
    sender = asyncio.create_task(_pump(websocket, queue))
    try:
        subscription.open()
        while True:
            # client frames are ignored; receiving detects the disconnect
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.info(f"Chat feed client disconnected from {conversation_id}")
    finally:
        subscription.close()
        sender.cancel()
        outcome, = await asyncio.gather(sender, return_exceptions=True)
        if isinstance(outcome, Exception):
            logger.warning(f"Chat feed sender for {conversation_id} failed: {outcome}")


# ==================== Health Check ====================

@router.get("/health")
async def chat_health_check():
    """Check if chat service is running"""
    return {
        "status": "healthy",
        "service": "chat",
        "message": "Chat service is running"
    }
