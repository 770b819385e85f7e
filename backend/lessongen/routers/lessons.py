"""Lessons router — create, read and follow lesson rows."""

import asyncio
import json

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse, StreamingResponse

from lessongen.dependencies import get_store
from lessongen.schemas.lesson import ErrorResponse, LessonCreateRequest, LessonResponse
from lessongen.services.lesson_store import LessonStore
from lessongen.services.realtime import LessonEvents

router = APIRouter(prefix="/api/lessons", tags=["lessons"])

HEARTBEAT_SECONDS = 15


@router.post(
    "",
    response_model=LessonResponse,
    status_code=201,
    responses={400: {"model": ErrorResponse}},
)
def create_lesson(req: LessonCreateRequest, store: LessonStore = Depends(get_store)):
    """Create a lesson row in the generating state.

    Call /api/generate-lesson with the returned id to produce its content.
    """
    outline = req.outline.strip()
    if not outline:
        return JSONResponse({"error": "outline is required"}, status_code=400)
    return store.create(outline, lesson_id=req.id)


@router.get("", response_model=list[LessonResponse])
def list_lessons(
    limit: int = Query(50, ge=1, le=200),
    store: LessonStore = Depends(get_store),
):
    """List lessons, newest first."""
    return store.list_recent(limit=limit)


@router.get("/{lesson_id}", response_model=LessonResponse, responses={404: {"model": ErrorResponse}})
def get_lesson(lesson_id: str, store: LessonStore = Depends(get_store)):
    lesson = store.get(lesson_id)
    if not lesson:
        return JSONResponse({"error": "Lesson not found"}, status_code=404)
    return lesson


async def _change_stream(lesson_id: str, events: LessonEvents):
    queue = events.subscribe(lesson_id)
    try:
        while True:
            try:
                event = await asyncio.wait_for(queue.get(), timeout=HEARTBEAT_SECONDS)
            except asyncio.TimeoutError:
                yield ": heartbeat\n\n"
                continue
            yield f"data: {json.dumps(event)}\n\n"
    finally:
        events.unsubscribe(lesson_id, queue)


@router.get("/{lesson_id}/stream")
async def stream_lesson_changes(lesson_id: str, store: LessonStore = Depends(get_store)):
    """SSE stream with one event per change to the lesson row."""
    return StreamingResponse(
        _change_stream(lesson_id, store.events),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )
