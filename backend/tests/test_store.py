"""Tests for the lesson store and its change notifications."""

import asyncio
import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from lessongen.database import SessionLocal
from lessongen.dependencies import get_generator, get_store
from lessongen.models.lesson import LessonStatus
from lessongen.routers.lessons import _change_stream
from lessongen.services.lesson_store import LessonStoreError
from lessongen.services.realtime import LessonEvents


class TestLessonStore:
    """Point reads and point updates."""

    def test_create_defaults(self, store):
        row = store.create("Photosynthesis basics", lesson_id="abc")
        assert row["id"] == "abc"
        assert row["status"] == "generating"
        assert row["content"] is None
        assert row["image_urls"] == []
        assert row["quiz_data"] == []
        assert row["created_at"] is not None

    def test_create_generates_id(self, store):
        row = store.create("Volcanoes")
        assert len(row["id"]) == 36

    def test_duplicate_id_is_store_error(self, store):
        store.create("one", lesson_id="dup")
        with pytest.raises(LessonStoreError):
            store.create("two", lesson_id="dup")

    def test_update_round_trips_json_fields(self, store):
        store.create("Volcanoes", lesson_id="v1")
        quiz = [{"question": "Q?", "options": ["a", "b", "c", "d"], "correct_index": 2, "explanation": "e"}]
        assert store.update("v1", quiz_data=quiz, image_urls=["https://x/1.jpg"]) is True
        row = store.get("v1")
        assert row["quiz_data"] == quiz
        assert row["image_urls"] == ["https://x/1.jpg"]
        assert row["status"] == "generating"

    def test_update_missing_row_returns_false(self, store):
        assert store.update("nope", status="error") is False

    def test_update_rejects_unknown_fields(self, store):
        store.create("Volcanoes", lesson_id="v1")
        with pytest.raises(ValueError):
            store.update("v1", outline="changed")

    def test_update_rejects_unknown_status(self, store):
        store.create("Volcanoes", lesson_id="v1")
        with pytest.raises(ValueError):
            store.update("v1", status="done")
        assert store.get("v1")["status"] == "generating"

    def test_update_accepts_every_status(self, store):
        store.create("Volcanoes", lesson_id="v1")
        for status in LessonStatus.ALL:
            assert store.update("v1", status=status) is True
            assert store.get("v1")["status"] == status

    def test_get_missing_is_none(self, store):
        assert store.get("nope") is None

    def test_list_recent_limit(self, store):
        for i in range(3):
            store.create(f"Outline {i}")
        assert len(store.list_recent(limit=2)) == 2
        assert len(store.list_recent()) == 3


class TestDependencies:
    """The app-wide store and generator share the configured database."""

    def test_store_opens_app_sessions(self):
        assert get_store()._session_factory is SessionLocal

    def test_generator_writes_through_shared_store(self):
        assert get_generator().store is get_store()


class TestChangeNotifications:
    """Updates are announced to subscribers of that lesson id only."""

    def test_update_publishes_to_subscriber(self, store):
        store.create("Volcanoes", lesson_id="v1")

        async def scenario():
            queue = store.events.subscribe("v1")
            other = store.events.subscribe("v2")
            store.update("v1", status="generated", content="text")
            event = await asyncio.wait_for(queue.get(), timeout=1)
            return event, other.qsize()

        event, other_size = asyncio.run(scenario())
        assert event == {"event": "update", "lesson_id": "v1"}
        assert other_size == 0

    def test_missed_update_not_published(self, store):
        async def scenario():
            queue = store.events.subscribe("ghost")
            store.update("ghost", status="error")
            return queue.qsize()

        assert asyncio.run(scenario()) == 0

    def test_publish_from_worker_thread(self):
        events = LessonEvents()

        async def scenario():
            queue = events.subscribe("t1")
            await asyncio.to_thread(events.publish, "t1")
            return await asyncio.wait_for(queue.get(), timeout=1)

        assert asyncio.run(scenario())["lesson_id"] == "t1"

    def test_unsubscribe(self):
        events = LessonEvents()

        async def scenario():
            queue = events.subscribe("u1")
            assert events.subscriber_count("u1") == 1
            events.unsubscribe("u1", queue)
            events.publish("u1")
            return queue.qsize(), events.subscriber_count("u1")

        assert asyncio.run(scenario()) == (0, 0)

    def test_change_stream_emits_sse_and_unsubscribes(self):
        events = LessonEvents()

        async def scenario():
            stream = _change_stream("s1", events)

            async def first_chunk():
                return await stream.__anext__()

            pending = asyncio.create_task(first_chunk())
            await asyncio.sleep(0)
            subscribed = events.subscriber_count("s1")
            events.publish("s1")
            chunk = await asyncio.wait_for(pending, timeout=1)
            await stream.aclose()
            return subscribed, chunk, events.subscriber_count("s1")

        subscribed, chunk, remaining = asyncio.run(scenario())
        assert subscribed == 1
        assert chunk == 'data: {"event": "update", "lesson_id": "s1"}\n\n'
        assert remaining == 0

    def test_change_stream_subscribes_only_once_iterated(self):
        events = LessonEvents()

        async def scenario():
            stream = _change_stream("s2", events)
            count = events.subscriber_count("s2")
            await stream.aclose()
            return count, events.subscriber_count("s2")

        assert asyncio.run(scenario()) == (0, 0)
