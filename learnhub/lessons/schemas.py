"""Pydantic schemas for lesson management."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from learnhub.content.models import Lesson, ensure_utc_aware


class CreateLessonRequest(BaseModel):
    """Lesson creation request."""

    title: str = Field(..., min_length=1, max_length=255, description="Lesson title")
    body: str = Field("", description="Lesson body")
    order_index: int | None = Field(
        None, ge=0, description="Position to insert at (appended if omitted)"
    )
    estimated_minutes: int | None = Field(None, ge=0, le=10000)


class UpdateLessonRequest(BaseModel):
    """Lesson update request. Omitted fields are left unchanged."""

    title: str | None = Field(None, min_length=1, max_length=255)
    body: str | None = None
    order_index: int | None = Field(None, ge=0, description="New position")
    estimated_minutes: int | None = Field(None, ge=0, le=10000)


class LessonResponse(BaseModel):
    """Lesson response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    content_id: UUID
    title: str
    body: str
    order_index: int
    estimated_minutes: int | None = None
    created_at: datetime

    @classmethod
    def from_entity(cls, lesson: Lesson) -> "LessonResponse":
        return cls(
            id=lesson.id,
            content_id=lesson.content_id,
            title=lesson.title,
            body=lesson.body,
            order_index=lesson.order_index,
            estimated_minutes=lesson.estimated_minutes,
            created_at=ensure_utc_aware(lesson.created_at),
        )
