"""Quiz generation — five multiple-choice questions per lesson, best effort."""

import json
import logging
import re

import httpx
from pydantic import TypeAdapter, ValidationError

from lessongen.schemas.lesson import QuizQuestion
from lessongen.services.ai_client import UpstreamError, generate_text

logger = logging.getLogger(__name__)

QUIZ_QUESTION_COUNT = 5
QUIZ_MAX_OUTPUT_TOKENS = 1500
QUIZ_TEMPERATURE = 0.4

# Greedy on purpose: first "[" through last "]".
_ARRAY_RE = re.compile(r"\[[\s\S]*\]")

_quiz_adapter = TypeAdapter(list[QuizQuestion])


def quiz_prompt(outline: str) -> str:
    return f"""Write exactly {QUIZ_QUESTION_COUNT} multiple-choice questions that check understanding of a lesson about:

{outline}

Return ONLY a JSON array, no commentary. Each item must look like:
{{"question": "...", "options": ["A", "B", "C", "D"], "correct_index": 0, "explanation": "..."}}
"options" has exactly 4 strings and "correct_index" is the zero-based index of the right option."""


def extract_json_array(text: str) -> str | None:
    """Return the bracket-delimited array substring of model output, if any."""
    match = _ARRAY_RE.search(text or "")
    return match.group(0) if match else None


def parse_quiz(text: str) -> list[dict]:
    """Parse model output into quiz question dicts; [] on any failure."""
    raw = extract_json_array(text)
    if raw is None:
        logger.warning("Quiz output contained no JSON array")
        return []
    try:
        questions = _quiz_adapter.validate_python(json.loads(raw))
    except (json.JSONDecodeError, ValidationError) as e:
        logger.warning("Quiz output could not be parsed: %s", e)
        return []
    return [q.model_dump() for q in questions[:QUIZ_QUESTION_COUNT]]


async def generate_quiz(client: httpx.AsyncClient, api_key: str, outline: str) -> list[dict]:
    """Ask the model for a quiz about the outline. Never raises."""
    try:
        text = await generate_text(
            client,
            api_key,
            quiz_prompt(outline),
            max_output_tokens=QUIZ_MAX_OUTPUT_TOKENS,
            temperature=QUIZ_TEMPERATURE,
        )
    except UpstreamError as e:
        logger.warning("Quiz generation failed: %s", e)
        return []
    return parse_quiz(text)
