"""Lesson request/response and quiz schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class QuizQuestion(BaseModel):
    question: str
    options: list[str] = Field(min_length=4, max_length=4)
    correct_index: int = Field(ge=0, le=3)
    explanation: str = ""


class GenerateLessonRequest(BaseModel):
    lessonId: Optional[str] = None
    outline: Optional[str] = None

    @field_validator("lessonId", mode="before")
    @classmethod
    def numeric_id_as_text(cls, value):
        # Lesson ids are stored as text.
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value


class GenerateLessonResponse(BaseModel):
    success: bool = True
    lessonId: str


class ErrorResponse(BaseModel):
    error: str


class LessonCreateRequest(BaseModel):
    outline: str
    id: Optional[str] = None


class LessonResponse(BaseModel):
    id: str
    outline: str
    title: Optional[str] = None
    content: Optional[str] = None
    status: str
    error_message: Optional[str] = None
    image_urls: list[str] = []
    quiz_data: list[QuizQuestion] = []
    created_at: datetime

    class Config:
        from_attributes = True
