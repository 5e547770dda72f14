import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional

from fastapi import HTTPException, status
from google.cloud.firestore import FieldFilter, Query

from app.database.connection import CONVERSATIONS, MESSAGES, PARTICIPANTS
from app.models.chat import (
    AddParticipantRequest,
    Conversation,
    ConversationType,
    ConversationWithDetails,
    CreateConversationRequest,
    MarkReadResponse,
    Message,
    MessageType,
    Participant,
    SendMessageRequest,
)

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def participant_doc_id(conversation_id: str, user_id: str) -> str:
    # one participant document per (conversation, user)
    return f"{conversation_id}_{user_id}"


class ChatService:
    """
    Conversation, participant and message operations on Firestore.

    Ordering of messages is whatever Firestore returns for
    ``order_by("timestamp")``; nothing here serialises concurrent writers.
    """

    def __init__(self, db, clock: Optional[Callable[[], datetime]] = None):
        self.db = db
        self.clock = clock or utc_now
        self.conversations = db.collection(CONVERSATIONS)
        self.participants = db.collection(PARTICIPANTS)
        self.messages = db.collection(MESSAGES)

    # ****************************************************
    #  Formatting
    # ****************************************************

    @staticmethod
    def to_conversation(doc) -> Conversation:
        data = doc.to_dict()
        return Conversation(
            id=doc.id,
            title=data.get("title", ""),
            type=data.get("type", ConversationType.DIRECT.value),
            created_at=data["createdAt"],
            last_message_at=data.get("lastMessageAt") or data["createdAt"],
            metadata=data.get("metadata"),
        )

    @staticmethod
    def to_participant(doc) -> Participant:
        data = doc.to_dict()
        return Participant(
            id=doc.id,
            conversation_id=str(data["conversationId"]),
            user_id=str(data["userId"]),
            user_type=data["userType"],
            joined_at=data["joinedAt"],
            last_read_at=data["lastReadAt"],
        )

    @staticmethod
    def to_message(doc) -> Message:
        data = doc.to_dict()
        return Message(
            id=doc.id,
            conversation_id=str(data["conversationId"]),
            sender_id=str(data["senderId"]),
            sender_name=data["senderName"],
            sender_type=data["senderType"],
            content=data["content"],
            type=data.get("type", MessageType.CHAT.value),
            timestamp=data["timestamp"],
            is_read=data.get("isRead", False),
            metadata=data.get("metadata"),
        )

    # ****************************************************
    #  Reads
    # ****************************************************

    def get_conversation_doc(self, conversation_id: str):
        doc = self.conversations.document(conversation_id).get()
        if not doc.exists:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Conversation not found"
            )
        return doc

    def get_participants(self, conversation_id: str) -> List[Participant]:
        docs = self.participants.where(
            filter=FieldFilter("conversationId", "==", conversation_id)
        ).stream()
        return [self.to_participant(doc) for doc in docs]

    def get_messages(self, conversation_id: str) -> List[Message]:
        docs = self.messages.where(
            filter=FieldFilter("conversationId", "==", conversation_id)
        ).order_by("timestamp", direction=Query.ASCENDING).stream()
        return [self.to_message(doc) for doc in docs]

    def get_latest_message(self, conversation_id: str) -> Optional[Message]:
        docs = list(
            self.messages.where(
                filter=FieldFilter("conversationId", "==", conversation_id)
            ).order_by("timestamp", direction=Query.DESCENDING).limit(1).stream()
        )
        return self.to_message(docs[0]) if docs else None

    def count_unread(self, conversation_id: str, user_id: str) -> int:
        docs = self.messages.where(
            filter=FieldFilter("conversationId", "==", conversation_id)
        ).where(filter=FieldFilter("isRead", "==", False)).stream()
        return sum(1 for doc in docs if str(doc.to_dict().get("senderId")) != user_id)

    def with_details(self, doc, user_id: Optional[str] = None) -> ConversationWithDetails:
        conversation = self.to_conversation(doc)
        return ConversationWithDetails(
            **conversation.model_dump(),
            participants=self.get_participants(doc.id),
            latest_message=self.get_latest_message(doc.id),
            unread_count=self.count_unread(doc.id, user_id) if user_id else 0,
        )

    def get_conversation(self, conversation_id: str, user_id: Optional[str] = None) -> ConversationWithDetails:
        return self.with_details(self.get_conversation_doc(conversation_id), user_id)

    def list_conversations(self, user_id: str) -> List[ConversationWithDetails]:
        memberships = self.participants.where(
            filter=FieldFilter("userId", "==", user_id)
        ).stream()
        conversation_ids = {str(doc.to_dict()["conversationId"]) for doc in memberships}

        conversations = []
        for conversation_id in conversation_ids:
            doc = self.conversations.document(conversation_id).get()
            if not doc.exists:
                logger.warning(f"Participant {user_id} points at missing conversation {conversation_id}")
                continue
            conversations.append(self.with_details(doc, user_id))

        conversations.sort(key=lambda c: c.last_message_at, reverse=True)
        return conversations

    # ****************************************************
    #  Writes
    # ****************************************************

    def create_conversation(self, request: CreateConversationRequest) -> ConversationWithDetails:
        # collapse duplicate users, first entry wins
        unique = {}
        for participant in request.participants:
            unique.setdefault(participant.user_id, participant)

        if request.type == ConversationType.DIRECT.value and len(unique) < 2:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="A direct conversation needs two different participants"
            )

        now = self.clock()
        conversation_ref = self.conversations.document()
        conversation_ref.set({
            "title": request.title,
            "type": request.type,
            "createdAt": now,
            "lastMessageAt": now,
            "metadata": request.metadata,
        })

        batch = self.db.batch()
        for participant in unique.values():
            participant_ref = self.participants.document(
                participant_doc_id(conversation_ref.id, participant.user_id)
            )
            batch.set(participant_ref, {
                "conversationId": conversation_ref.id,
                "userId": participant.user_id,
                "userType": participant.user_type,
                "joinedAt": now,
                "lastReadAt": now,
            })
        batch.commit()

        logger.info(f"Created conversation {conversation_ref.id} with {len(unique)} participants")
        return self.get_conversation(conversation_ref.id)

    def send_message(self, request: SendMessageRequest) -> Message:
        conversation_id = request.conversation_id
        self.get_conversation_doc(conversation_id)

        now = self.clock()
        message_ref = self.messages.document()
        message_ref.set({
            "conversationId": conversation_id,
            "senderId": request.sender_id,
            "senderName": request.sender_name,
            "senderType": request.sender_type,
            "content": request.content,
            "type": request.type,
            "timestamp": now,
            "isRead": False,
            "metadata": request.metadata,
        })

        # same instant as the message so lastMessageAt never trails it
        self.conversations.document(conversation_id).update({"lastMessageAt": now})

        return self.to_message(message_ref.get())

    def mark_read(self, conversation_id: str, user_id: str) -> MarkReadResponse:
        self.get_conversation_doc(conversation_id)

        participant_ref = self.participants.document(participant_doc_id(conversation_id, user_id))
        if not participant_ref.get().exists:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="User is not a participant in this conversation"
            )

        unread = self.messages.where(
            filter=FieldFilter("conversationId", "==", conversation_id)
        ).where(filter=FieldFilter("isRead", "==", False)).stream()

        now = self.clock()
        batch = self.db.batch()
        marked = 0
        for doc in unread:
            if str(doc.to_dict().get("senderId")) == user_id:
                continue
            batch.update(doc.reference, {"isRead": True})
            marked += 1
        batch.update(participant_ref, {"lastReadAt": now})
        batch.commit()

        logger.info(f"User {user_id} read conversation {conversation_id} ({marked} messages marked)")
        return MarkReadResponse(success=True, last_read_at=now, messages_marked=marked)

    def add_participant(self, request: AddParticipantRequest, user_name: Optional[str] = None) -> Participant:
        conversation_id = request.conversation_id
        self.get_conversation_doc(conversation_id)

        participant_ref = self.participants.document(participant_doc_id(conversation_id, request.user_id))
        existing = participant_ref.get()
        if existing.exists:
            return self.to_participant(existing)

        now = self.clock()
        participant_ref.set({
            "conversationId": conversation_id,
            "userId": request.user_id,
            "userType": request.user_type,
            "joinedAt": now,
            "lastReadAt": now,
        })
        self.post_system_message(
            conversation_id, request.user_id, request.user_type, MessageType.JOIN,
            f"{user_name or request.user_id} joined the conversation",
        )
        return self.to_participant(participant_ref.get())

    def remove_participant(self, conversation_id: str, user_id: str) -> bool:
        self.get_conversation_doc(conversation_id)

        participant_ref = self.participants.document(participant_doc_id(conversation_id, user_id))
        existing = participant_ref.get()
        if not existing.exists:
            raise HTTPException(status_code=404, detail="Participant not found")

        user_type = existing.to_dict().get("userType")
        participant_ref.delete()
        self.post_system_message(
            conversation_id, user_id, user_type, MessageType.LEAVE,
            f"{user_id} left the conversation",
        )
        return True

    def post_system_message(self, conversation_id: str, user_id: str, user_type: str,
                            message_type: MessageType, content: str) -> Message:
        return self.send_message(SendMessageRequest(
            conversation_id=conversation_id,
            sender_id=user_id,
            sender_name="System",
            sender_type=user_type,
            content=content,
            type=message_type,
        ))
