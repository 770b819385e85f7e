"""Lesson row store — point reads and point updates keyed by id.

Each write runs in its own short-lived session and commits on its own; no
transaction spans two calls. Successful writes are announced on the change
notification hub.
"""

import json
import logging
from uuid import uuid4

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from lessongen.models.lesson import Lesson, LessonStatus
from lessongen.services.realtime import LessonEvents, lesson_events

logger = logging.getLogger(__name__)

_JSON_FIELDS = ("image_urls", "quiz_data")
_UPDATABLE_FIELDS = {"title", "content", "status", "error_message", *_JSON_FIELDS}


class LessonStoreError(RuntimeError):
    """A read or write against the lessons table failed."""


class LessonStore:
    def __init__(self, session_factory: sessionmaker, events: LessonEvents = lesson_events):
        self._session_factory = session_factory
        self.events = events

    def _session(self) -> Session:
        return self._session_factory()

    def create(self, outline: str, lesson_id: str | None = None) -> dict:
        """Insert a new row in the generating state and return it."""
        db = self._session()
        try:
            lesson = Lesson(
                id=lesson_id or str(uuid4()),
                outline=outline,
                status=LessonStatus.GENERATING,
            )
            db.add(lesson)
            db.commit()
            db.refresh(lesson)
            row = lesson.to_dict()
        except SQLAlchemyError as e:
            db.rollback()
            raise LessonStoreError(f"Could not create lesson: {e}") from e
        finally:
            db.close()
        self.events.publish(row["id"])
        return row

    def get(self, lesson_id: str) -> dict | None:
        db = self._session()
        try:
            lesson = db.query(Lesson).filter(Lesson.id == lesson_id).first()
            return lesson.to_dict() if lesson else None
        except SQLAlchemyError as e:
            raise LessonStoreError(f"Could not load lesson: {e}") from e
        finally:
            db.close()

    def list_recent(self, limit: int = 50) -> list[dict]:
        db = self._session()
        try:
            lessons = (
                db.query(Lesson)
                .order_by(Lesson.created_at.desc())
                .limit(limit)
                .all()
            )
            return [l.to_dict() for l in lessons]
        except SQLAlchemyError as e:
            raise LessonStoreError(f"Could not list lessons: {e}") from e
        finally:
            db.close()

    def update(self, lesson_id: str, **fields) -> bool:
        """Apply one point update. Returns False when no row has that id.

        A missing row is not an error, matching an UPDATE ... WHERE id = ?
        that matches nothing.
        """
        unknown = set(fields) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update lesson fields: {sorted(unknown)}")
        if "status" in fields and fields["status"] not in LessonStatus.ALL:
            raise ValueError(f"Unknown lesson status: {fields['status']!r}")

        values = {
            key: json.dumps(value) if key in _JSON_FIELDS else value
            for key, value in fields.items()
        }

        db = self._session()
        try:
            matched = (
                db.query(Lesson)
                .filter(Lesson.id == lesson_id)
                .update(values, synchronize_session=False)
            )
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise LessonStoreError(f"Could not update lesson: {e}") from e
        finally:
            db.close()

        if not matched:
            logger.warning("[%s] Update matched no lesson row", lesson_id)
            return False
        self.events.publish(lesson_id)
        return True
