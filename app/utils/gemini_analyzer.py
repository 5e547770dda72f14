from app.config.settings import settings
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from typing import Dict, Optional
import json, logging
import requests

logger = logging.getLogger(__name__)

# Shared pool for blocking Gemini calls; bounds the total wait per request
_executor = ThreadPoolExecutor(max_workers=10, thread_name_prefix="gemini")


class GeminiUnavailable(Exception):
    """Raised when no Gemini key is configured."""


class GeminiTimeout(Exception):
    """Raised when Gemini does not answer within the overall deadline."""


def _post(url: str, payload: Dict, timeout: float) -> Dict:
    headers = {
        "Content-Type": "application/json"
    }
    try:
        response = requests.post(
            url,
            headers=headers,
            data=json.dumps(payload),
            timeout=timeout
        )
        response.raise_for_status()
        return response.json()

    except requests.exceptions.HTTPError:
        logger.error(f"Gemini returned {response.status_code}: {response.text[:300]}")
        raise


def generate_text(prompt: str, generation_config: Optional[Dict] = None, timeout: Optional[float] = None) -> str:
    """
    Single-turn call to the Gemini ``generateContent`` REST endpoint.

    ``timeout`` is a total deadline for the whole call, not a per-read
    socket timeout: a server that trickles bytes still gets cut off.
    Returns the text of the first candidate; raises on transport errors,
    timeouts and empty candidates.
    """
    api_key = settings.gemini_key

    if not api_key:
        raise GeminiUnavailable("Gemini API key is not set in the environment variables.")

    url = f"{settings.GEMINI_API_URL}/{settings.GEMINI_MODEL}:generateContent?key={api_key}"
    deadline = timeout or settings.AI_TIMEOUT_SECONDS

    payload = {
        "contents": [{
            "parts": [{"text": prompt}]
        }]
    }
    if generation_config:
        payload["generationConfig"] = generation_config

    future = _executor.submit(_post, url, payload, deadline)
    try:
        result = future.result(timeout=deadline)
    except FutureTimeout:
        future.cancel()
        logger.warning(f"Gemini did not answer within {deadline}s")
        raise GeminiTimeout(f"Gemini did not answer within {deadline}s")

    candidates = result.get("candidates") or []
    if not candidates:
        raise ValueError("Gemini response had no candidates")

    parts = candidates[0].get("content", {}).get("parts", [])
    text = "".join(part.get("text", "") for part in parts).strip()
    if not text:
        raise ValueError("Gemini response was empty")
    return text
