import logging, random
from typing import List, Optional, Tuple

import google.generativeai as genai

from app.config.settings import settings
from app.models.chatbot import ChatbotResponse, ChatbotTurn

logger = logging.getLogger(__name__)


class KeywordFallback:
    """Canned answers chosen by keyword when Gemini cannot be reached."""

    RULES: List[Tuple[Tuple[str, ...], str]] = [
        (
            ("property", "house", "home"),
            "I can help you find properties! Use our property search to filter listings by "
            "location, price range, bedrooms and property type. Our AI-powered matching can "
            "also suggest homes based on your preferences. Would you like to start a search?",
        ),
        (
            ("price", "cost", "fee", "commission", "save"),
            "REALTY.AI offers FREE, BASIC ($1,500) and PREMIUM ($2,500) plans. Compared to a "
            "traditional 5-6% agent commission, most of our customers save thousands of dollars. "
            "Check our pricing page for a full comparison.",
        ),
        (
            ("contract", "document", "legal", "closing"),
            "Our document review tools explain contract terms in plain language, and our experts "
            "can review your purchase agreement and closing documents. Upload a document to get "
            "started, or book a consultation with one of our experts.",
        ),
        (
            ("mortgage", "loan", "financ"),
            "We partner with trusted financing providers who offer mortgages, pre-approvals and "
            "refinancing. Visit our financing page to compare lenders serving your area.",
        ),
    ]

    GENERIC = (
        "I'm sorry, I'm having trouble connecting to my knowledge base right now. I can still "
        "help with property searches, pricing plans, contract documents and financing options. "
        "Please try again in a moment or contact our support team for immediate assistance."
    )

    @classmethod
    def answer(cls, query: str) -> str:
        query_lower = query.lower()
        for keywords, answer in cls.RULES:
            if any(kw in query_lower for kw in keywords):
                return answer
        return cls.GENERIC


class RealEstateChatbot:

    SYSTEM_CONTEXT = """You are an AI assistant for a real estate platform called REALTY.AI.
        Focus on providing helpful, accurate information about real estate topics, property listings,
        buying/selling processes, and our services. Our platform offers FREE, BASIC ($1,500), and PREMIUM ($2,500)
        plans with various levels of support and features.

        Key features of our platform:
        - AI-powered property matching and search
        - Document review and explanation
        - Expert consultation services
        - Significant savings compared to traditional agent commissions (typically 5-6%)

        Keep responses concise, friendly, and focused on real estate. If you don't know something specific about
        REALTY.AI's offerings, recommend the user contact our customer support or check the pricing page.

        Always suggest ways that REALTY.AI can save the user money compared to traditional real estate services.

        User query: {query}"""

    RELATED_QUESTIONS = [
        "How much can I save with REALTY.AI compared to traditional agents?",
        "What's included in the BASIC plan?",
        "How does the AI property matching work?",
        "Can I get expert help with contract negotiations?",
        "Do you help with mortgage and financing options?",
    ]

    HISTORY_TURNS = 10

    def __init__(self, model_name: Optional[str] = None, timeout: Optional[float] = None,
                 rng: Optional[random.Random] = None):
        self.model_name = model_name or settings.GEMINI_MODEL
        self.timeout = timeout or settings.AI_TIMEOUT_SECONDS
        self.rng = rng or random.Random()

    def related_questions(self) -> List[str]:
        return self.rng.sample(self.RELATED_QUESTIONS, 3)

    @staticmethod
    def format_history(chat_history: List[ChatbotTurn]) -> List[dict]:
        # Gemini chat roles are "user" and "model"
        return [
            {"role": "user" if turn.role == "user" else "model", "parts": [turn.content]}
            for turn in chat_history
        ]

    def ask_gemini(self, query: str, chat_history: List[ChatbotTurn]) -> str:
        api_key = settings.gemini_key
        if not api_key:
            raise RuntimeError("Gemini API key is not configured")

        genai.configure(api_key=api_key)
        model = genai.GenerativeModel(self.model_name)
        chat = model.start_chat(history=self.format_history(chat_history[-self.HISTORY_TURNS:]))
        response = chat.send_message(
            self.SYSTEM_CONTEXT.format(query=query),
            generation_config=genai.types.GenerationConfig(
                temperature=0.4,
                top_k=32,
                top_p=0.95,
                max_output_tokens=500,
            ),
            request_options={"timeout": self.timeout},
        )
        return response.text.strip()

    def chat(self, query: str, chat_history: Optional[List[ChatbotTurn]] = None,
             session_id: Optional[str] = None) -> ChatbotResponse:
        """
        Answer a real-estate question with Gemini.

        Any failure (no key, timeout, blocked or empty reply) falls back to a
        keyword-based canned answer with ``source="fallback"``.
        """
        try:
            answer = self.ask_gemini(query, chat_history or [])
            if not answer:
                raise ValueError("Gemini returned an empty answer")
            logger.info(f"RealEstateChatbot: response ({len(answer)} chars)")
            return ChatbotResponse(
                answer=answer,
                related_questions=self.related_questions(),
                source="ai",
                session_id=session_id,
            )
        except Exception as e:
            logger.error(f"RealEstateChatbot: Gemini chat failed, using fallback: {e}")
            return ChatbotResponse(
                answer=KeywordFallback.answer(query),
                related_questions=self.related_questions(),
                source="fallback",
                session_id=session_id,
            )
