"""Shared fixtures: an isolated SQLite store and scripted upstream APIs."""

import json
import os
import sys

import httpx
import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from lessongen.config import settings
from lessongen.database import Base, make_engine
from lessongen.dependencies import get_generator, get_store
from lessongen.main import app
from lessongen.services.generation import LessonGenerator
from lessongen.services.lesson_store import LessonStore
from lessongen.services.realtime import LessonEvents


def gemini_payload(text: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def quiz_questions(count: int = 5) -> list[dict]:
    return [
        {
            "question": f"Question {i}?",
            "options": ["A", "B", "C", "D"],
            "correct_index": i % 4,
            "explanation": f"Because {i}.",
        }
        for i in range(count)
    ]


class FakeUpstream:
    """Scripted Gemini and Pexels endpoints served through httpx.MockTransport.

    Each attribute is a (status_code, body) pair; a list of pairs is consumed
    one per call.
    """

    def __init__(self):
        self.lesson = (200, gemini_payload("## Intro\nPlants turn light into sugar."))
        self.quiz = (200, gemini_payload(json.dumps(quiz_questions())))
        self.images = (200, {"photos": [
            {"src": {"large": "https://images.example/1.jpg"}},
            {"src": {"large": "https://images.example/2.jpg"}},
        ]})
        self.requests: list[httpx.Request] = []

    def _next(self, name: str):
        value = getattr(self, name)
        if isinstance(value, list):
            return value.pop(0)
        return value

    def calls(self, kind: str) -> list[httpx.Request]:
        return [r for r in self.requests if self.kind(r) == kind]

    @staticmethod
    def kind(request: httpx.Request) -> str:
        if request.url.host == "api.pexels.com":
            return "images"
        prompt = json.loads(request.content)["contents"][0]["parts"][0]["text"]
        return "quiz" if "multiple-choice" in prompt else "lesson"

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        status, body = self._next(self.kind(request))
        if isinstance(body, str):
            return httpx.Response(status, text=body)
        return httpx.Response(status, json=body)


@pytest.fixture
def store(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'lessons.db'}")
    Base.metadata.create_all(bind=engine)
    yield LessonStore(sessionmaker(autocommit=False, autoflush=False, bind=engine), events=LessonEvents())
    engine.dispose()


@pytest.fixture
def upstream():
    return FakeUpstream()


@pytest.fixture
def make_generator(store, upstream):
    def factory(gemini_api_key="test-gemini-key", pexels_api_key="test-pexels-key", lesson_store=None):
        return LessonGenerator(
            lesson_store or store,
            client_factory=lambda: httpx.AsyncClient(transport=httpx.MockTransport(upstream.handler)),
            gemini_api_key=gemini_api_key,
            pexels_api_key=pexels_api_key,
        )
    return factory


@pytest.fixture
def make_client(store, make_generator, monkeypatch):
    monkeypatch.setattr(settings, "ENRICHMENT_MODE", "background")

    def factory(**generator_kwargs):
        generator = make_generator(**generator_kwargs)
        app.dependency_overrides[get_store] = lambda: generator.store
        app.dependency_overrides[get_generator] = lambda: generator
        return TestClient(app)

    yield factory
    app.dependency_overrides.clear()
