import random

import pytest

from app.models.chatbot import ChatbotTurn
from app.services.chatbot_history import ChatbotHistory
from app.services.chatbot_service import KeywordFallback, RealEstateChatbot


@pytest.mark.parametrize("query, expected", [
    ("Can you help me find a house?", KeywordFallback.RULES[0][1]),
    ("What does it cost?", KeywordFallback.RULES[1][1]),
    ("Please review my closing documents", KeywordFallback.RULES[2][1]),
    ("I need a mortgage", KeywordFallback.RULES[3][1]),
    ("Tell me a joke", KeywordFallback.GENERIC),
])
def test_keyword_fallback(query, expected):
    assert KeywordFallback.answer(query) == expected


def test_chat_without_key_falls_back():
    bot = RealEstateChatbot(rng=random.Random(1))
    response = bot.chat("How do I find a home?", session_id="s1")

    assert response.source == "fallback"
    assert response.answer == KeywordFallback.RULES[0][1]
    assert response.session_id == "s1"
    assert len(response.related_questions) == 3
    assert set(response.related_questions) <= set(RealEstateChatbot.RELATED_QUESTIONS)


def test_chat_uses_gemini_answer(monkeypatch):
    seen = {}

    def fake_ask(self, query, chat_history):
        seen["history"] = chat_history
        return "  Our BASIC plan includes expert support.  ".strip()

    monkeypatch.setattr(RealEstateChatbot, "ask_gemini", fake_ask)
    history = [ChatbotTurn(role="user", content="hi"), ChatbotTurn(role="bot", content="hello")]
    response = RealEstateChatbot().chat("What is in BASIC?", history)

    assert response.source == "ai"
    assert response.answer == "Our BASIC plan includes expert support."
    assert seen["history"] == history


def test_empty_gemini_answer_falls_back(monkeypatch):
    monkeypatch.setattr(RealEstateChatbot, "ask_gemini", lambda self, q, h: "")
    assert RealEstateChatbot().chat("random question").source == "fallback"


def test_history_roles_map_to_gemini_roles():
    formatted = RealEstateChatbot.format_history([
        ChatbotTurn(role="user", content="a"),
        ChatbotTurn(role="bot", content="b"),
        ChatbotTurn(role="assistant", content="c"),
    ])
    assert [t["role"] for t in formatted] == ["user", "model", "model"]
    assert formatted[0]["parts"] == ["a"]


def test_chatbot_route_saves_history(client, db):
    response = client.post("/api/chatbot", json={"query": "Any mortgage partners?", "userId": "u1"})

    assert response.status_code == 200
    body = response.json()
    assert body["source"] == "fallback"
    session_id = body["sessionId"]
    assert session_id

    client.post("/api/chatbot", json={"query": "And loans?", "sessionId": session_id})

    history = client.get(f"/api/chatbot/history/{session_id}")
    assert history.status_code == 200
    messages = history.json()["messages"]
    assert [m["role"] for m in messages] == ["user", "assistant", "user", "assistant"]
    assert history.json()["userId"] == "u1"


def test_chatbot_route_rejects_blank_query(client):
    assert client.post("/api/chatbot", json={"query": "   "}).status_code == 400


def test_delete_history(client, db):
    ChatbotHistory(db).append_exchange("s-del", None, "q", "a")

    deleted = client.delete("/api/chatbot/history/s-del")
    assert deleted.status_code == 200
    assert deleted.json()["success"] is True

    assert client.get("/api/chatbot/history/s-del").status_code == 404
    assert client.delete("/api/chatbot/history/s-del").status_code == 404


def test_history_write_failure_is_not_fatal():
    class BrokenCollection:
        def document(self, _):
            raise RuntimeError("firestore down")

    class BrokenDb:
        def collection(self, _):
            return BrokenCollection()

    assert ChatbotHistory(BrokenDb()).append_exchange("s", None, "q", "a") is False
