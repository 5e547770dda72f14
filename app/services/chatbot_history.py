import logging
from datetime import datetime, timezone
from typing import Optional

from google.cloud import firestore

from app.database.connection import CHATBOT_HISTORY
from app.models.chatbot import ChatbotSession

logger = logging.getLogger(__name__)


class ChatbotHistory:
    """Per-session chatbot transcript kept in ``chatbot_history/{session_id}``."""

    def __init__(self, db):
        self.collection = db.collection(CHATBOT_HISTORY)

    def append_exchange(self, session_id: str, user_id: Optional[str], query: str, answer: str) -> bool:
        """Best effort: failures are logged and reported as False."""
        now = datetime.now(timezone.utc)
        exchange = [
            {"role": "user", "content": query, "timestamp": now},
            {"role": "assistant", "content": answer, "timestamp": now},
        ]
        try:
            chat_ref = self.collection.document(session_id)
            if chat_ref.get().exists:
                chat_ref.update({
                    "messages": firestore.ArrayUnion(exchange),
                    "updatedAt": now,
                })
            else:
                chat_ref.set({
                    "sessionId": session_id,
                    "userId": user_id,
                    "messages": exchange,
                    "createdAt": now,
                    "updatedAt": now,
                })
            logger.info(f"Chat saved to session: {session_id}")
            return True
        except Exception as e:
            logger.error(f"Failed to save chat history for {session_id}: {e}")
            return False

    def get_session(self, session_id: str) -> Optional[ChatbotSession]:
        doc = self.collection.document(session_id).get()
        if not doc.exists:
            return None
        data = doc.to_dict()
        return ChatbotSession(
            session_id=session_id,
            user_id=data.get("userId"),
            messages=data.get("messages", []),
            created_at=data.get("createdAt"),
            updated_at=data.get("updatedAt"),
        )

    def delete_session(self, session_id: str) -> bool:
        chat_ref = self.collection.document(session_id)
        if not chat_ref.get().exists:
            return False
        chat_ref.delete()
        logger.info(f"Chat session {session_id} deleted successfully")
        return True
