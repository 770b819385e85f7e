"""Lesson generation — the mandatory text stage, the enrichment stage, and the failure path.

The mandatory stage must finish before the caller gets a response: it writes
title, content and status="generated" in a single point update, or nothing.
Enrichment (quiz, images) runs afterwards, may outlive the response, and only
ever logs its failures.
"""

import logging
from typing import Callable

import httpx

from lessongen.config import settings
from lessongen.models.lesson import LessonStatus
from lessongen.services.ai_client import ConfigurationError, generate_lesson_content
from lessongen.services.image_search import image_query, search_images
from lessongen.services.lesson_store import LessonStore, LessonStoreError
from lessongen.services.quiz import generate_quiz

logger = logging.getLogger(__name__)

TITLE_MAX_CHARS = 100
ERROR_MESSAGE_MAX_CHARS = 200


def derive_title(outline: str) -> str:
    return outline[:TITLE_MAX_CHARS].strip()


def truncate_error(message: str) -> str:
    return message[:ERROR_MESSAGE_MAX_CHARS]


def default_client_factory() -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=settings.UPSTREAM_TIMEOUT_SECONDS)


class LessonGenerator:
    """Runs generation for one lesson row against the configured upstreams.

    API keys default to the current settings at call time, so a key added to
    the environment is picked up without rebuilding the generator.
    """

    def __init__(
        self,
        store: LessonStore,
        client_factory: Callable[[], httpx.AsyncClient] = default_client_factory,
        gemini_api_key: str | None = None,
        pexels_api_key: str | None = None,
    ):
        self.store = store
        self.client_factory = client_factory
        self._gemini_api_key = gemini_api_key
        self._pexels_api_key = pexels_api_key

    @property
    def gemini_api_key(self) -> str:
        if self._gemini_api_key is not None:
            return self._gemini_api_key
        return settings.GEMINI_API_KEY

    @property
    def pexels_api_key(self) -> str:
        if self._pexels_api_key is not None:
            return self._pexels_api_key
        return settings.PEXELS_API_KEY

    async def generate(self, lesson_id: str, outline: str) -> str:
        """Mandatory stage. Returns the generated content.

        Raises:
            ConfigurationError: GEMINI_API_KEY is not set.
            UpstreamError: the text-generation call failed.
            LessonStoreError: the row could not be updated.
        """
        api_key = self.gemini_api_key
        logger.info("[%s] Starting generation with key present: %s", lesson_id, bool(api_key))
        if not api_key:
            raise ConfigurationError("GEMINI_API_KEY not configured")

        logger.info("[%s] Calling Gemini API...", lesson_id)
        async with self.client_factory() as client:
            content = await generate_lesson_content(client, api_key, outline)
        logger.info("[%s] Content generated: %d chars", lesson_id, len(content))

        self.store.update(
            lesson_id,
            title=derive_title(outline),
            content=content,
            status=LessonStatus.GENERATED,
        )
        logger.info("[%s] Success", lesson_id)
        return content

    async def enrich(self, lesson_id: str, outline: str) -> None:
        """Enrichment stage: quiz, then images, then one update. Never raises."""
        try:
            async with self.client_factory() as client:
                quiz_data = await generate_quiz(client, self.gemini_api_key, outline)
                image_urls: list[str] = []
                if self.pexels_api_key:
                    image_urls = await search_images(client, self.pexels_api_key, image_query(outline))
            logger.info(
                "[%s] Enrichment ready: %d quiz questions, %d images",
                lesson_id, len(quiz_data), len(image_urls),
            )
            self.store.update(lesson_id, quiz_data=quiz_data, image_urls=image_urls)
        except Exception:
            logger.exception("[%s] Enrichment failed", lesson_id)

    def mark_failed(self, lesson_id: str | None, message: str) -> None:
        """Failure path write: status="error" with a truncated message. Never raises."""
        if not lesson_id:
            return
        try:
            self.store.update(
                lesson_id,
                status=LessonStatus.ERROR,
                error_message=truncate_error(message),
            )
        except LessonStoreError:
            logger.exception("[%s] Error updating error status", lesson_id)
