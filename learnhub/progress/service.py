"""Learner progress service layer.

Business logic for:
- Idempotent content enrollment
- Idempotent lesson completion with progress recalculation
- Enrollment and completion queries ("my library")

Progress only moves forward: a recalculation never lowers the stored
percentage and a completed enrollment stays completed, even if lessons are
added to the content afterwards.
"""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

import structlog

from learnhub.content.models import Content, utcnow
from learnhub.content.service import ContentNotFoundError
from learnhub.content.store import ContentStore
from learnhub.core.exceptions import (
    ForbiddenError,
    NotFoundError,
    StoreConflictError,
)
from learnhub.lessons.sequencer import LessonNotFoundError

from .calculator import calculate_progress
from .models import Enrollment, EnrollmentStatus


logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class NotEnrolledError(ForbiddenError):
    """Learner not enrolled in the content."""

    def __init__(self, message: str = "Not enrolled in this content"):
        super().__init__(message, "not_enrolled")


class EnrollmentNotFoundError(NotFoundError):
    """Enrollment not found."""

    def __init__(self, message: str = "Enrollment not found"):
        super().__init__(message, "enrollment_not_found")


# ==============================================================================
# Results
# ==============================================================================


@dataclass(frozen=True)
class EnrollResult:
    enrollment: Enrollment
    created: bool


@dataclass(frozen=True)
class LessonCompletionResult:
    lesson_id: UUID
    progress_percentage: int
    is_complete: bool


@dataclass(frozen=True)
class LibraryEntry:
    enrollment: Enrollment
    content: Content


@dataclass(frozen=True)
class ContentProgress:
    enrollment: Enrollment
    completed_lesson_ids: set[UUID]
    lessons_total: int


# ==============================================================================
# Enrollment Ledger
# ==============================================================================


class EnrollmentLedger:
    """Tracks enrollments and lesson completions of learners."""

    def __init__(self, store: ContentStore):
        self.store = store

    async def enroll(self, learner_id: str, content_id: UUID) -> EnrollResult:
        """Enroll a learner in published content.

        Enrolling twice returns the existing enrollment unchanged.

        Raises:
            ContentNotFoundError: If content does not exist or is unpublished
        """
        async with self.store.transaction() as tx:
            content = await tx.get_content(content_id)
            if content is None or not content.published:
                raise ContentNotFoundError

            created = await tx.insert_enrollment(learner_id, content_id, utcnow())
            enrollment = await tx.get_enrollment(learner_id, content_id)
            if enrollment is None:
                raise StoreConflictError

        if created:
            logger.info(
                "learner_enrolled",
                learner_id=learner_id,
                content_id=str(content_id),
            )
        return EnrollResult(enrollment=enrollment, created=created)

    async def complete_lesson(
        self, learner_id: str, lesson_id: UUID
    ) -> LessonCompletionResult:
        """Record a lesson completion and recalculate content progress.

        Completing the same lesson again records nothing new and reports
        the current progress.

        Raises:
            LessonNotFoundError: If lesson does not exist
            NotEnrolledError: If learner is not enrolled in the lesson's content
        """
        async with self.store.transaction() as tx:
            lesson = await tx.get_lesson(lesson_id)
            if lesson is None:
                raise LessonNotFoundError
            content_id = lesson.content_id

            enrollment = await tx.get_enrollment(learner_id, content_id, lock=True)
            if enrollment is None:
                raise NotEnrolledError

            now = utcnow()
            recorded = await tx.insert_completion(learner_id, lesson_id, now)

            total = await tx.count_lessons(content_id)
            completed = await tx.count_completed_lessons(learner_id, content_id)
            percentage, is_complete = calculate_progress(completed, total)
            newly_completed = self._apply_progress(enrollment, percentage, is_complete, now)
            await tx.flush()

        if recorded:
            logger.info(
                "lesson_completed",
                learner_id=learner_id,
                lesson_id=str(lesson_id),
                content_id=str(content_id),
                completed=completed,
                total=total,
                progress_percentage=enrollment.progress_percentage,
            )
        if newly_completed:
            logger.info(
                "enrollment_completed",
                learner_id=learner_id,
                content_id=str(content_id),
            )

        return LessonCompletionResult(
            lesson_id=lesson_id,
            progress_percentage=enrollment.progress_percentage,
            is_complete=enrollment.is_completed,
        )

    @staticmethod
    def _apply_progress(
        enrollment: Enrollment, percentage: int, is_complete: bool, now: datetime
    ) -> bool:
        """Write recalculated progress to ``enrollment``.

        Returns True when the enrollment became completed.
        """
        if enrollment.is_completed:
            return False

        if is_complete:
            enrollment.status = EnrollmentStatus.COMPLETED.value
            enrollment.progress_percentage = 100
            enrollment.completed_at = now
            return True

        enrollment.progress_percentage = max(enrollment.progress_percentage, percentage)
        return False

    # ==========================================================================
    # Queries
    # ==========================================================================

    async def get_enrollment(self, learner_id: str, content_id: UUID) -> Enrollment:
        async with self.store.transaction() as tx:
            enrollment = await tx.get_enrollment(learner_id, content_id)
        if enrollment is None:
            raise EnrollmentNotFoundError
        return enrollment

    async def list_enrollments(self, learner_id: str) -> list[LibraryEntry]:
        """Learner's enrollments with their content, most recently started first."""
        async with self.store.transaction() as tx:
            rows = await tx.list_enrollments(learner_id)
        return [LibraryEntry(enrollment=e, content=c) for e, c in rows]

    async def completed_lesson_ids(self, learner_id: str, content_id: UUID) -> set[UUID]:
        async with self.store.transaction() as tx:
            return await tx.completed_lesson_ids(learner_id, content_id)

    async def get_content_progress(
        self, learner_id: str, content_id: UUID
    ) -> ContentProgress:
        """Enrollment plus completed lesson ids, read in one transaction.

        Raises:
            EnrollmentNotFoundError: If learner is not enrolled
        """
        async with self.store.transaction() as tx:
            enrollment = await tx.get_enrollment(learner_id, content_id)
            if enrollment is None:
                raise EnrollmentNotFoundError
            completed = await tx.completed_lesson_ids(learner_id, content_id)
            total = await tx.count_lessons(content_id)

        return ContentProgress(
            enrollment=enrollment,
            completed_lesson_ids=completed,
            lessons_total=total,
        )
