"""Database models for learner progress tracking.

Relational table definitions for:
- Enrollments: one row per (learner, content) with overall progress
- Lesson completions: one fact per (learner, lesson)

Both uniqueness rules are enforced by the database so that duplicate
requests can be absorbed with an insert-ignore.
"""

from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from learnhub.content.models import utcnow
from learnhub.core.database import Base


class EnrollmentStatus(str, Enum):
    """Content enrollment status."""

    IN_PROGRESS = "in_progress"  # Enrolled, not every lesson completed yet
    COMPLETED = "completed"  # Every lesson completed


class Enrollment(Base):
    """Learner enrollment in a content item.

    Invariant: ``status == completed`` iff ``progress_percentage == 100``
    iff ``completed_at`` is set.

    Attributes:
        id: Row identifier
        learner_id: Learner identifier (resolved upstream)
        content_id: Enrolled content
        status: in_progress or completed
        progress_percentage: Overall progress (0-100)
        started_at: Enrollment timestamp
        completed_at: Completion timestamp (null unless completed)
    """

    __tablename__ = "student_content_enrollments"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    learner_id: Mapped[str] = mapped_column(String(255))
    content_id: Mapped[UUID] = mapped_column(
        ForeignKey("learning_content.id", ondelete="CASCADE")
    )
    status: Mapped[str] = mapped_column(
        String(20), default=EnrollmentStatus.IN_PROGRESS.value
    )
    progress_percentage: Mapped[int] = mapped_column(Integer, default=0)
    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (
        UniqueConstraint("learner_id", "content_id", name="unique_user_content"),
        Index("idx_enrollments_user", "learner_id", "status"),
    )

    @property
    def is_completed(self) -> bool:
        """Check if the content is completed."""
        return self.status == EnrollmentStatus.COMPLETED.value

    def __repr__(self) -> str:
        return (
            f"<Enrollment learner={self.learner_id} content={self.content_id} "
            f"{self.status} {self.progress_percentage}%>"
        )


class LessonCompletion(Base):
    """Durable fact that a learner finished a lesson."""

    __tablename__ = "student_lesson_progress"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    learner_id: Mapped[str] = mapped_column(String(255))
    lesson_id: Mapped[UUID] = mapped_column(
        ForeignKey("learning_lessons.id", ondelete="CASCADE")
    )
    completed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )

    __table_args__ = (
        UniqueConstraint("learner_id", "lesson_id", name="unique_user_lesson"),
    )

    def __repr__(self) -> str:
        return f"<LessonCompletion learner={self.learner_id} lesson={self.lesson_id}>"
