"""
Gemini text-generation client.

One POST per call to the generateContent endpoint; no streaming, no retries.
Every failure (network, non-2xx status, missing text) is surfaced as a single
UpstreamError so callers can treat them alike.
"""

import logging

import httpx

from lessongen.config import settings

logger = logging.getLogger(__name__)

LESSON_MAX_OUTPUT_TOKENS = 800
LESSON_TEMPERATURE = 0.5


class UpstreamError(RuntimeError):
    """A third-party API call did not produce a usable result."""


class ConfigurationError(RuntimeError):
    """A required setting is missing."""


# ─────────────────────────────────────────────────────────────────────────────
# Request / response builders
# ─────────────────────────────────────────────────────────────────────────────

def build_generate_body(prompt: str, max_output_tokens: int, temperature: float) -> dict:
    """Build JSON body for POST models/{model}:generateContent."""
    return {
        "contents": [{"parts": [{"text": prompt}]}],
        "generationConfig": {
            "maxOutputTokens": max_output_tokens,
            "temperature": temperature,
        },
    }


def extract_text(response_json: dict) -> str:
    """Pull the first candidate's first text part, or "" when absent."""
    candidates = response_json.get("candidates") or []
    if not candidates:
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    if not parts:
        return ""
    return parts[0].get("text") or ""


def generate_url(model: str | None = None) -> str:
    base = settings.GEMINI_BASE_URL.rstrip("/")
    return f"{base}/models/{model or settings.GEMINI_MODEL}:generateContent"


def lesson_prompt(outline: str) -> str:
    return f"""Create a brief, well-structured lesson (800-1200 characters max) about:

{outline}

Include: introduction, main points (bullet format), one example, and 3 practice questions.
Use markdown. Be concise."""


# ─────────────────────────────────────────────────────────────────────────────
# Calls
# ─────────────────────────────────────────────────────────────────────────────

async def generate_text(
    client: httpx.AsyncClient,
    api_key: str,
    prompt: str,
    max_output_tokens: int,
    temperature: float,
) -> str:
    """
    Send one generateContent request and return the generated text.

    Raises:
        UpstreamError: on network failure, a non-2xx status, or a response
            without a text part.
    """
    body = build_generate_body(prompt, max_output_tokens, temperature)
    try:
        response = await client.post(
            generate_url(),
            params={"key": api_key},
            headers={"Content-Type": "application/json"},
            json=body,
        )
    except httpx.HTTPError as e:
        raise UpstreamError(f"Gemini request failed: {e}") from e

    logger.info("Gemini response status: %s", response.status_code)

    if not response.is_success:
        logger.error("Gemini error: %s", response.text)
        raise UpstreamError(f"Gemini error: {response.status_code}")

    try:
        data = response.json()
    except ValueError as e:
        raise UpstreamError("Gemini returned a malformed response") from e

    text = extract_text(data) if isinstance(data, dict) else ""
    if not text:
        raise UpstreamError("No content generated")
    return text


async def generate_lesson_content(client: httpx.AsyncClient, api_key: str, outline: str) -> str:
    """Generate the markdown lesson body for an outline."""
    if not api_key:
        raise ConfigurationError("GEMINI_API_KEY not configured")
    return await generate_text(
        client,
        api_key,
        lesson_prompt(outline),
        max_output_tokens=LESSON_MAX_OUTPUT_TOKENS,
        temperature=LESSON_TEMPERATURE,
    )
