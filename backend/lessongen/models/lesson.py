"""Lesson model — one row per outline submitted for generation."""

import json
from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Column, DateTime, String, Text

from lessongen.database import Base


class LessonStatus:
    GENERATING = "generating"
    GENERATED = "generated"
    ERROR = "error"

    ALL = (GENERATING, GENERATED, ERROR)


class Lesson(Base):
    __tablename__ = "lessons"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    outline = Column(Text, nullable=False)
    title = Column(String(100), nullable=True)
    content = Column(Text, nullable=True)                  # Markdown

    status = Column(String(20), nullable=False, default=LessonStatus.GENERATING)
    error_message = Column(Text, nullable=True)

    image_urls = Column(Text, nullable=False, default="[]")  # JSON array of URLs
    quiz_data = Column(Text, nullable=False, default="[]")   # JSON array of quiz questions

    created_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "outline": self.outline,
            "title": self.title,
            "content": self.content,
            "status": self.status,
            "error_message": self.error_message,
            "image_urls": json.loads(self.image_urls or "[]"),
            "quiz_data": json.loads(self.quiz_data or "[]"),
            "created_at": self.created_at,
        }
