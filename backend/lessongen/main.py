"""lessongen — FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from lessongen import models  # noqa: F401  (register tables)
from lessongen.config import settings
from lessongen.database import Base, engine
from lessongen.logging_config import configure_logging
from lessongen.middleware.cors import permissive_cors
from lessongen.routers import generate, lessons, pages
from lessongen.services.lesson_store import LessonStoreError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=engine)
    if not settings.GEMINI_API_KEY:
        logger.warning("GEMINI_API_KEY is not set; generation requests will fail until it is")
    if not settings.PEXELS_API_KEY:
        logger.info("PEXELS_API_KEY is not set; lessons will be generated without images")
    yield


async def _store_error_handler(request: Request, exc: LessonStoreError):
    logger.error("Store error on %s: %s", request.url.path, exc)
    return JSONResponse({"error": str(exc)}, status_code=500)


def create_app() -> FastAPI:
    configure_logging()

    app = FastAPI(
        title="lessongen",
        description="Generates short markdown lessons, quizzes and image galleries from an outline.",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_exception_handler(LessonStoreError, _store_error_handler)

    # CORS: every origin, pre-flight answered with an empty 200
    app.middleware("http")(permissive_cors)

    app.include_router(generate.router)
    app.include_router(lessons.router)
    app.include_router(pages.router)

    @app.get("/health")
    def health():
        return {
            "status": "ok",
            "gemini_configured": bool(settings.GEMINI_API_KEY),
            "image_search_configured": bool(settings.PEXELS_API_KEY),
            "enrichment_mode": settings.ENRICHMENT_MODE,
        }

    return app


app = create_app()
