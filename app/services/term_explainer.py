import json, logging, re
from typing import List, Optional

from app.models.chatbot import TermExplanation
from app.utils import gemini_analyzer

logger = logging.getLogger(__name__)

CONTRACT_CONTEXT_CHARS = 3000

FALLBACK_DEFINITION = "Unable to generate explanation at this time."
FALLBACK_IMPLICATIONS = "Please try again with a different term or contact support if the issue persists."

SECTION_NAMES = ["definition", "implications", "example", r"related\s*terms"]


def build_prompt(contract_text: str, term: str) -> str:
    return f"""
        You are a legal expert specializing in real estate contracts. Explain the term "{term}"
        as it appears in the context of the following contract text. If the term isn't specifically
        in the text, explain it generally as it would relate to real estate contracts.

        Contract text for context:
        \"\"\"
        {contract_text[:CONTRACT_CONTEXT_CHARS]}
        \"\"\"

        Respond with JSON only, using these fields:
        - term: the term being explained (exactly as provided)
        - definition: a clear, concise explanation of what this term means in real estate
        - implications: what this term means for the parties involved in the contract
        - example: a brief practical example of how this term works
        - relatedTerms: an array of 3-5 related legal terms
    """


def fallback_explanation(term: str) -> TermExplanation:
    return TermExplanation(
        term=term,
        definition=FALLBACK_DEFINITION,
        implications=FALLBACK_IMPLICATIONS,
        related_terms=[],
        source="fallback",
    )


def parse_json_explanation(text: str, term: str) -> Optional[TermExplanation]:
    """Parse the JSON object embedded in a model reply, or None."""
    start = text.find("{")
    end = text.rfind("}") + 1
    if start < 0 or end <= start:
        return None

    try:
        parsed = json.loads(text[start:end])
    except json.JSONDecodeError:
        return None
    if not isinstance(parsed, dict):
        return None

    related = parsed.get("relatedTerms") or parsed.get("related_terms")
    example = parsed.get("example")
    return TermExplanation(
        term=str(parsed.get("term") or term),
        definition=str(parsed.get("definition") or "").strip() or "No definition provided",
        implications=str(parsed.get("implications") or "").strip() or "No implications provided",
        example=str(example).strip() if example else None,
        related_terms=[str(t).strip() for t in related if str(t).strip()] if isinstance(related, list) else [],
        source="ai",
    )


def extract_section(text: str, name: str) -> Optional[str]:
    others = "|".join(s for s in SECTION_NAMES if s != name)
    pattern = rf"{name}\W*[:\-]?\s*(.*?)(?=\n\s*\W*(?:{others})\b|$)"
    match = re.search(pattern, text, re.IGNORECASE | re.DOTALL)
    if match:
        section = match.group(1).strip().strip('",').strip()
        return section or None
    return None


def split_terms(section: str) -> List[str]:
    terms = []
    for raw in re.split(r"[,\n;]", section):
        cleaned = re.sub(r"^[\s\-\*\d\.\)\[\"']+|[\s\]\"']+$", "", raw)
        if cleaned:
            terms.append(cleaned)
    return terms[:5]


def parse_text_explanation(text: str, term: str) -> TermExplanation:
    """Heuristic section parser for replies that are not valid JSON."""
    definition = extract_section(text, "definition")
    implications = extract_section(text, "implications")
    example = extract_section(text, "example")
    related = extract_section(text, r"related\s*terms")

    return TermExplanation(
        term=term,
        definition=definition or "Definition extraction failed. Please try again.",
        implications=implications or "Implications extraction failed. Please try again.",
        example=example,
        related_terms=split_terms(related) if related else [],
        source="parsed",
    )


def explain_term(contract_text: str, term: str) -> TermExplanation:
    """
    Explain a contract term with Gemini.

    Never raises for upstream problems: a missing key, a timeout or any
    transport error gives the canned explanation, and a non-JSON reply goes
    through the section parser.
    """
    logger.info(f"Explaining legal term: '{term}'")
    try:
        text = gemini_analyzer.generate_text(
            build_prompt(contract_text, term),
            generation_config={"temperature": 0.2, "topP": 0.8, "topK": 40},
        )
    except gemini_analyzer.GeminiUnavailable as e:
        logger.error(f"Term explanation unavailable: {e}")
        return fallback_explanation(term)
    except Exception as e:
        logger.error(f"Gemini term explanation failed for '{term}': {e}")
        return fallback_explanation(term)

    explanation = parse_json_explanation(text, term)
    if explanation:
        return explanation

    logger.warning(f"Gemini reply for '{term}' was not JSON, using section parser")
    return parse_text_explanation(text, term)
