"""Pydantic schemas for learner progress."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from learnhub.content.models import Content, ensure_utc_aware
from learnhub.content.schemas import ContentSummary

from .models import Enrollment, EnrollmentStatus
from .service import ContentProgress, LessonCompletionResult


class EnrollmentResponse(BaseModel):
    """Enrollment response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    learner_id: str
    content_id: UUID
    status: EnrollmentStatus
    progress_percentage: int = Field(..., ge=0, le=100)
    started_at: datetime
    completed_at: datetime | None = None
    content: ContentSummary | None = None

    @classmethod
    def from_entity(
        cls, enrollment: Enrollment, content: Content | None = None
    ) -> "EnrollmentResponse":
        return cls(
            id=enrollment.id,
            learner_id=enrollment.learner_id,
            content_id=enrollment.content_id,
            status=EnrollmentStatus(enrollment.status),
            progress_percentage=enrollment.progress_percentage,
            started_at=ensure_utc_aware(enrollment.started_at),
            completed_at=ensure_utc_aware(enrollment.completed_at),
            content=ContentSummary.from_entity(content) if content is not None else None,
        )


class EnrollResponse(BaseModel):
    """Enrollment result."""

    message: str
    created: bool
    enrollment: EnrollmentResponse


class EnrollmentListResponse(BaseModel):
    """Learner library."""

    items: list[EnrollmentResponse]
    total: int


class LessonCompleteResponse(BaseModel):
    """Lesson completion result."""

    lesson_id: UUID
    progress_percentage: int
    is_complete: bool

    @classmethod
    def from_result(cls, result: LessonCompletionResult) -> "LessonCompleteResponse":
        return cls(
            lesson_id=result.lesson_id,
            progress_percentage=result.progress_percentage,
            is_complete=result.is_complete,
        )


class ContentProgressResponse(BaseModel):
    """Learner progress within one content item."""

    enrollment: EnrollmentResponse
    completed_lesson_ids: list[UUID]
    lessons_completed: int
    lessons_total: int

    @classmethod
    def from_progress(cls, progress: ContentProgress) -> "ContentProgressResponse":
        return cls(
            enrollment=EnrollmentResponse.from_entity(progress.enrollment),
            completed_lesson_ids=sorted(progress.completed_lesson_ids, key=str),
            lessons_completed=len(progress.completed_lesson_ids),
            lessons_total=progress.lessons_total,
        )
