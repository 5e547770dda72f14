# app/models/chat.py

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import Field

from app.models.base import CamelModel, Identifier, NonEmptyStr


class ConversationType(str, Enum):
    DIRECT = "direct"
    GROUP = "group"
    PROPERTY = "property"
    SERVICE = "service"


class ParticipantType(str, Enum):
    BUYER = "buyer"
    SELLER = "seller"
    EXPERT = "expert"
    CUSTOMER_SERVICE = "customer_service"


class MessageType(str, Enum):
    CHAT = "chat"
    SYSTEM = "system"
    JOIN = "join"
    LEAVE = "leave"


# ==================== Stored entities ====================

class Participant(CamelModel):
    id: str
    conversation_id: str
    user_id: str
    user_type: ParticipantType
    joined_at: datetime
    last_read_at: datetime


class Message(CamelModel):
    id: str
    conversation_id: str
    sender_id: str
    sender_name: str
    sender_type: ParticipantType
    content: str
    type: MessageType = MessageType.CHAT
    timestamp: datetime
    is_read: bool = False
    metadata: Optional[Dict[str, Any]] = None


class Conversation(CamelModel):
    id: str
    title: str
    type: ConversationType = ConversationType.DIRECT
    created_at: datetime
    last_message_at: datetime
    metadata: Optional[Dict[str, Any]] = None


class ConversationWithDetails(Conversation):
    participants: List[Participant] = []
    latest_message: Optional[Message] = None
    unread_count: int = 0


# ==================== Requests ====================

class ParticipantIn(CamelModel):
    user_id: Identifier
    user_type: ParticipantType = ParticipantType.BUYER


class CreateConversationRequest(CamelModel):
    title: NonEmptyStr
    type: ConversationType = ConversationType.DIRECT
    participants: List[ParticipantIn] = Field(..., min_length=1)
    metadata: Optional[Dict[str, Any]] = None


class SendMessageRequest(CamelModel):
    conversation_id: Identifier
    sender_id: Identifier
    sender_name: NonEmptyStr
    sender_type: ParticipantType = ParticipantType.BUYER
    content: NonEmptyStr
    type: MessageType = MessageType.CHAT
    metadata: Optional[Dict[str, Any]] = None


class MarkReadRequest(CamelModel):
    user_id: Identifier


class MarkReadResponse(CamelModel):
    success: bool
    last_read_at: datetime
    messages_marked: int = 0


class AddParticipantRequest(CamelModel):
    conversation_id: Identifier
    user_id: Identifier
    user_type: ParticipantType = ParticipantType.BUYER
