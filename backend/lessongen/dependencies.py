"""FastAPI dependencies for the shared store and generator."""

from functools import lru_cache

from lessongen.database import SessionLocal
from lessongen.services.generation import LessonGenerator
from lessongen.services.lesson_store import LessonStore


@lru_cache
def get_store() -> LessonStore:
    return LessonStore(SessionLocal)


@lru_cache
def get_generator() -> LessonGenerator:
    return LessonGenerator(get_store())
