from fastapi import APIRouter, Depends, HTTPException
from app.models.chatbot import ChatbotRequest, ChatbotResponse
from app.database.connection import get_db
from app.services.chatbot_history import ChatbotHistory
from app.services.chatbot_service import RealEstateChatbot
import logging, uuid

logger = logging.getLogger(__name__)
router = APIRouter()


def get_chatbot() -> RealEstateChatbot:
    return RealEstateChatbot()


def get_history(db=Depends(get_db)) -> ChatbotHistory:
    return ChatbotHistory(db)


@router.post("", response_model=ChatbotResponse)
def chat_message(
    request: ChatbotRequest,
    chatbot: RealEstateChatbot = Depends(get_chatbot),
    history: ChatbotHistory = Depends(get_history)
):
    session_id = request.session_id or str(uuid.uuid4())
    logger.info(f"Chatbot query for session {session_id}")

    response = chatbot.chat(request.query, request.chat_history, session_id=session_id)

    # transcript is best effort, the answer is returned either way
    history.append_exchange(session_id, request.user_id, request.query, response.answer)
    return response


@router.get("/history/{session_id}")
def get_chat_history(session_id: str, history: ChatbotHistory = Depends(get_history)):
    """Get chat history for a session"""
    try:
        session = history.get_session(session_id)
    except Exception as e:
        logger.error(f"Failed to fetch chat history: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch chat history")

    if not session:
        raise HTTPException(status_code=404, detail="Session not found")
    return session.model_dump(by_alias=True)


@router.delete("/history/{session_id}")
def delete_chat_history(session_id: str, history: ChatbotHistory = Depends(get_history)):
    try:
        deleted = history.delete_session(session_id)
    except Exception as e:
        logger.error(f"Failed to delete chat history: {e}")
        raise HTTPException(status_code=500, detail="Failed to delete chat history")

    if not deleted:
        raise HTTPException(status_code=404, detail="Session not found")
    return {
        "message": "Chat history deleted successfully",
        "sessionId": session_id,
        "success": True
    }
