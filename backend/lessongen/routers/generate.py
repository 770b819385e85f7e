"""Generation router — turn a lesson row's outline into lesson content."""

import json
import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from lessongen.config import settings
from lessongen.dependencies import get_generator
from lessongen.middleware.cors import CORS_HEADERS
from lessongen.schemas.lesson import ErrorResponse, GenerateLessonRequest, GenerateLessonResponse
from lessongen.services.generation import LessonGenerator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["generate"])


def _json(payload, status_code: int = 200) -> JSONResponse:
    return JSONResponse(payload, status_code=status_code, headers=CORS_HEADERS)


async def _read_body(request: Request) -> GenerateLessonRequest | None:
    try:
        return GenerateLessonRequest.model_validate(await request.json())
    except (json.JSONDecodeError, UnicodeDecodeError, ValidationError):
        return None


@router.api_route(
    "/generate-lesson",
    methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def generate_lesson(
    request: Request,
    background_tasks: BackgroundTasks,
    generator: LessonGenerator = Depends(get_generator),
):
    """Generate the lesson body for an existing row.

    Responds once the lesson text is stored; quiz and images are added to the
    row afterwards and announced on the lesson's change stream.
    """
    body = await _read_body(request)
    if body is None or not body.lessonId or not body.outline:
        return _json(ErrorResponse(error="lessonId and outline are required").model_dump(), 400)

    lesson_id, outline = body.lessonId, body.outline

    try:
        await generator.generate(lesson_id, outline)
    except Exception as e:
        logger.error("[%s] Error: %s", lesson_id, e)
        message = str(e) or "Unknown error"
        # Best effort: the lesson id is taken from the request body again.
        retry_body = await _read_body(request)
        generator.mark_failed(retry_body.lessonId if retry_body else None, message)
        return _json(ErrorResponse(error=message).model_dump(), 500)

    mode = settings.ENRICHMENT_MODE.lower()
    if mode == "inline":
        await generator.enrich(lesson_id, outline)
    elif mode != "off":
        # Starlette runs background tasks after the response is sent and keeps
        # the request alive until they finish.
        background_tasks.add_task(generator.enrich, lesson_id, outline)

    return _json(GenerateLessonResponse(lessonId=lesson_id).model_dump())
