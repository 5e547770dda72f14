from datetime import datetime
from typing import List, Literal, Optional

from pydantic import Field

from app.models.base import CamelModel, NonEmptyStr


class ExplainTermRequest(CamelModel):
    contract_text: NonEmptyStr
    term: NonEmptyStr


class TermExplanation(CamelModel):
    term: str
    definition: str
    implications: str
    example: Optional[str] = None
    related_terms: List[str] = []
    source: Literal["ai", "parsed", "fallback"] = "ai"


class ChatbotTurn(CamelModel):
    role: Literal["user", "bot", "assistant"]
    content: str


class ChatbotRequest(CamelModel):
    query: NonEmptyStr
    chat_history: List[ChatbotTurn] = []
    session_id: Optional[str] = None
    user_id: Optional[str] = None


class ChatbotResponse(CamelModel):
    answer: str
    related_questions: List[str] = []
    source: Literal["ai", "fallback"] = "ai"
    session_id: Optional[str] = None


class ChatbotHistoryEntry(CamelModel):
    role: str
    content: str
    timestamp: datetime


class ChatbotSession(CamelModel):
    session_id: str
    user_id: Optional[str] = None
    messages: List[ChatbotHistoryEntry] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
