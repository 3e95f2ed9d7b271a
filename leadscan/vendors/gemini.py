"""Client utilities for the Gemini generateContent API."""

import logging
from typing import Any, Dict, List, Optional

import requests

logger = logging.getLogger(__name__)
_SESSION = requests.Session()
_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
_TIMEOUT = 120


class GeminiError(RuntimeError):
    """Raised when the Gemini API returns a non-successful response."""

    def __init__(self, message: str, status_code: Optional[int] = None, status: Optional[str] = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.status = status


class RateLimitError(GeminiError):
    """Raised on HTTP 429 / RESOURCE_EXHAUSTED responses."""


def _raise_for_error(response: requests.Response) -> None:
    if response.status_code < 400:
        return
    try:
        payload = response.json()
    except ValueError:
        payload = None
    # Some endpoints wrap the error object in a one-element list.
    if isinstance(payload, list) and payload:
        payload = payload[0]
    error = payload.get("error") if isinstance(payload, dict) else None
    if not isinstance(error, dict):
        error = {}
    status = error.get("status")
    message = error.get("message") or response.text[:500] or f"HTTP {response.status_code}"
    logger.error("generateContent failed: http=%s status=%s message=%s", response.status_code, status, message)
    if response.status_code == 429 or status == "RESOURCE_EXHAUSTED":
        raise RateLimitError(f"{response.status_code} {status or ''}: {message}".strip(), response.status_code, status)
    raise GeminiError(message, response.status_code, status)


def generate_content(model: str, body: Dict[str, Any], api_key: str) -> Dict[str, Any]:
    response = _SESSION.post(
        f"{_BASE_URL}/models/{model}:generateContent",
        json=body,
        headers={"x-goog-api-key": api_key},
        timeout=_TIMEOUT,
    )
    _raise_for_error(response)
    return response.json()


def response_text(payload: Dict[str, Any]) -> str:
    """Concatenate the text parts of the first candidate."""
    candidates = payload.get("candidates") or []
    if not candidates:
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(part.get("text", "") for part in parts if isinstance(part, dict))


def search_places(prompt: str, *, model: str, api_key: str, latitude: float, longitude: float) -> List[Any]:
    """Run a Google Maps grounded prompt and return the raw grounding chunks."""
    body = {
        "contents": [{"parts": [{"text": prompt}]}],
        "tools": [{"googleMaps": {}}],
        "toolConfig": {"retrievalConfig": {"latLng": {"latitude": latitude, "longitude": longitude}}},
    }
    payload = generate_content(model, body, api_key)
    candidates = payload.get("candidates") or []
    if not candidates:
        return []
    metadata = candidates[0].get("groundingMetadata") or {}
    return metadata.get("groundingChunks") or []


def generate_json(prompt: str, schema: Dict[str, Any], *, model: str, api_key: str) -> str:
    """Request structured JSON output and return the raw response text."""
    body = {
        "contents": [{"parts": [{"text": prompt}]}],
        "generationConfig": {"responseMimeType": "application/json", "responseSchema": schema},
    }
    return response_text(generate_content(model, body, api_key))
