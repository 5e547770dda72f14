import logging

from fastapi import APIRouter

from app.models.chatbot import ExplainTermRequest, TermExplanation
from app.services import term_explainer

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/explain-term", response_model=TermExplanation)
def explain_term(request: ExplainTermRequest):
    """Explain a legal term in the context of the given contract text."""
    return term_explainer.explain_term(request.contract_text, request.term)
