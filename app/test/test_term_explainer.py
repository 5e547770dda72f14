import json, threading, time

import pytest
import requests

from app.config.settings import settings
from app.services import term_explainer
from app.utils import gemini_analyzer

CONTRACT = "The Buyer shall deliver an earnest money deposit to the escrow agent within 3 days."


def _reply_with(monkeypatch, text):
    captured = {}

    def fake_generate(prompt, generation_config=None, timeout=None):
        captured["prompt"] = prompt
        captured["config"] = generation_config
        return text

    monkeypatch.setattr(gemini_analyzer, "generate_text", fake_generate)
    return captured


def test_no_key_gives_fallback(client):
    response = client.post("/api/ai/explain-term", json={"contractText": CONTRACT, "term": "escrow"})

    assert response.status_code == 200
    body = response.json()
    assert body["term"] == "escrow"
    assert body["definition"] == term_explainer.FALLBACK_DEFINITION
    assert body["implications"] == term_explainer.FALLBACK_IMPLICATIONS
    assert body["relatedTerms"] == []
    assert body["source"] == "fallback"


def test_missing_fields_are_400(client):
    response = client.post("/api/ai/explain-term", json={"contractText": CONTRACT, "term": " "})
    assert response.status_code == 400
    assert "term" in response.json()["error"]


def test_json_reply_is_parsed(monkeypatch):
    reply = "Here you go:\n```json\n" + json.dumps({
        "term": "earnest money",
        "definition": "A good-faith deposit.",
        "implications": "The buyer may lose it on default.",
        "example": "A $5,000 deposit held in escrow.",
        "relatedTerms": ["escrow", "contingency", "default"],
    }) + "\n```"
    captured = _reply_with(monkeypatch, reply)

    explanation = term_explainer.explain_term(CONTRACT, "earnest money")

    assert explanation.source == "ai"
    assert explanation.definition == "A good-faith deposit."
    assert explanation.related_terms == ["escrow", "contingency", "default"]
    assert captured["config"]["temperature"] == 0.2
    assert '"earnest money"' in captured["prompt"]


def test_json_reply_with_missing_fields_gets_placeholders(monkeypatch):
    _reply_with(monkeypatch, '{"definition": "A deposit."}')
    explanation = term_explainer.explain_term(CONTRACT, "escrow")

    assert explanation.term == "escrow"
    assert explanation.implications == "No implications provided"
    assert explanation.related_terms == []


def test_plain_text_reply_uses_section_parser(monkeypatch):
    _reply_with(monkeypatch, (
        "Definition: Money held by a neutral third party until closing.\n"
        "Implications: Neither party can touch the funds alone.\n"
        "Example: The title company holds the buyer's deposit.\n"
        "Related Terms: escrow agent, earnest money, closing"
    ))
    explanation = term_explainer.explain_term(CONTRACT, "escrow")

    assert explanation.source == "parsed"
    assert explanation.definition == "Money held by a neutral third party until closing."
    assert explanation.implications == "Neither party can touch the funds alone."
    assert explanation.example == "The title company holds the buyer's deposit."
    assert explanation.related_terms == ["escrow agent", "earnest money", "closing"]


def test_unparseable_reply_reports_extraction_failure(monkeypatch):
    _reply_with(monkeypatch, "I cannot help with that.")
    explanation = term_explainer.explain_term(CONTRACT, "escrow")

    assert explanation.source == "parsed"
    assert explanation.definition == "Definition extraction failed. Please try again."


def test_timeout_gives_fallback(monkeypatch):
    monkeypatch.setattr(settings, "GEMINI_API_KEY", "test-key")

    def slow_post(*args, **kwargs):
        raise requests.exceptions.Timeout("read timed out")

    monkeypatch.setattr(requests, "post", slow_post)
    explanation = term_explainer.explain_term(CONTRACT, "escrow")

    assert explanation.source == "fallback"
    assert explanation.definition == term_explainer.FALLBACK_DEFINITION


def test_contract_context_is_truncated():
    prompt = term_explainer.build_prompt("x" * 10000, "lien")
    assert "x" * term_explainer.CONTRACT_CONTEXT_CHARS in prompt
    assert "x" * (term_explainer.CONTRACT_CONTEXT_CHARS + 1) not in prompt


def test_slow_upstream_is_cut_off_at_the_deadline(monkeypatch):
    monkeypatch.setattr(settings, "GEMINI_API_KEY", "test-key")
    monkeypatch.setattr(settings, "AI_TIMEOUT_SECONDS", 0.2)
    release = threading.Event()

    def trickling_post(*args, **kwargs):
        # stands in for a server that keeps each read under the socket timeout
        release.wait(5)
        raise requests.exceptions.ConnectionError("closed")

    monkeypatch.setattr(requests, "post", trickling_post)
    started = time.monotonic()
    try:
        with pytest.raises(gemini_analyzer.GeminiTimeout):
            gemini_analyzer.generate_text("hello")
        explanation = term_explainer.explain_term(CONTRACT, "escrow")
    finally:
        release.set()

    assert time.monotonic() - started < 2
    assert explanation.source == "fallback"
