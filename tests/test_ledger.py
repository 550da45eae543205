"""Tests for enrollment and lesson completion."""

import uuid

import pytest
from sqlalchemy import func, select

from learnhub.content.models import Content, Lesson
from learnhub.content.schemas import CreateContentRequest
from learnhub.content.service import ContentNotFoundError, ContentService
from learnhub.content.store import ContentStore, StoreSession
from learnhub.core.exceptions import StoreConflictError
from learnhub.lessons.sequencer import InsertLesson, LessonNotFoundError, Sequencer
from learnhub.progress.models import EnrollmentStatus, LessonCompletion
from learnhub.progress.service import (
    EnrollmentLedger,
    EnrollmentNotFoundError,
    NotEnrolledError,
)


LEARNER = "learner-1"


async def count_completions(store: ContentStore) -> int:
    async with store.transaction() as tx:
        return await tx.session.scalar(
            select(func.count()).select_from(LessonCompletion)
        )


@pytest.fixture
def three_lessons(lessons: list[Lesson]) -> list[Lesson]:
    return lessons[:3]


class TestEnroll:
    """Tests for EnrollmentLedger.enroll."""

    @pytest.mark.asyncio
    async def test_creates_in_progress_enrollment(
        self, ledger: EnrollmentLedger, content: Content
    ) -> None:
        result = await ledger.enroll(LEARNER, content.id)

        assert result.created is True
        assert result.enrollment.status == EnrollmentStatus.IN_PROGRESS.value
        assert result.enrollment.progress_percentage == 0
        assert result.enrollment.started_at is not None
        assert result.enrollment.completed_at is None

    @pytest.mark.asyncio
    async def test_second_enroll_returns_existing(
        self, ledger: EnrollmentLedger, content: Content
    ) -> None:
        first = await ledger.enroll(LEARNER, content.id)
        second = await ledger.enroll(LEARNER, content.id)

        assert second.created is False
        assert second.enrollment.id == first.enrollment.id
        assert len(await ledger.list_enrollments(LEARNER)) == 1

    @pytest.mark.asyncio
    async def test_unpublished_content_is_not_found(
        self, ledger: EnrollmentLedger, content_service: ContentService
    ) -> None:
        draft = await content_service.create_content(CreateContentRequest(title="Draft"))
        with pytest.raises(ContentNotFoundError):
            await ledger.enroll(LEARNER, draft.id)

    @pytest.mark.asyncio
    async def test_unknown_content(self, ledger: EnrollmentLedger) -> None:
        with pytest.raises(ContentNotFoundError):
            await ledger.enroll(LEARNER, uuid.uuid4())

    @pytest.mark.asyncio
    async def test_enrollment_missing_after_insert_raises_conflict(
        self,
        ledger: EnrollmentLedger,
        content: Content,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        async def get_enrollment(self, learner_id, content_id, *, lock=False):
            return None

        monkeypatch.setattr(StoreSession, "get_enrollment", get_enrollment)

        with pytest.raises(StoreConflictError):
            await ledger.enroll(LEARNER, content.id)


class TestCompleteLesson:
    """Tests for EnrollmentLedger.complete_lesson."""

    @pytest.mark.asyncio
    async def test_progress_through_three_lessons(
        self,
        ledger: EnrollmentLedger,
        sequencer: Sequencer,
        content_service: ContentService,
    ) -> None:
        """33 -> 67 -> 100, completed only at the last lesson."""
        course = await content_service.create_content(
            CreateContentRequest(title="Three", published=True)
        )
        lessons = [
            await sequencer.apply(InsertLesson(content_id=course.id, title=t, body=""))
            for t in ("a", "b", "c")
        ]
        await ledger.enroll(LEARNER, course.id)

        percentages = []
        for lesson in lessons:
            result = await ledger.complete_lesson(LEARNER, lesson.id)
            enrollment = await ledger.get_enrollment(LEARNER, course.id)
            percentages.append(result.progress_percentage)

            if lesson is lessons[-1]:
                assert result.is_complete is True
                assert enrollment.status == EnrollmentStatus.COMPLETED.value
                assert enrollment.completed_at is not None
            else:
                assert result.is_complete is False
                assert enrollment.status == EnrollmentStatus.IN_PROGRESS.value
                assert enrollment.completed_at is None

        assert percentages == [33, 67, 100]

    @pytest.mark.asyncio
    async def test_repeat_completion_is_idempotent(
        self,
        ledger: EnrollmentLedger,
        store: ContentStore,
        content: Content,
        lessons: list[Lesson],
    ) -> None:
        await ledger.enroll(LEARNER, content.id)

        first = await ledger.complete_lesson(LEARNER, lessons[0].id)
        second = await ledger.complete_lesson(LEARNER, lessons[0].id)

        assert first == second
        assert first.progress_percentage == 20
        assert await count_completions(store) == 1

    @pytest.mark.asyncio
    async def test_not_enrolled_is_forbidden(
        self,
        ledger: EnrollmentLedger,
        store: ContentStore,
        content: Content,
        lessons: list[Lesson],
    ) -> None:
        with pytest.raises(NotEnrolledError):
            await ledger.complete_lesson(LEARNER, lessons[0].id)
        assert await count_completions(store) == 0

    @pytest.mark.asyncio
    async def test_unknown_lesson(self, ledger: EnrollmentLedger) -> None:
        with pytest.raises(LessonNotFoundError):
            await ledger.complete_lesson(LEARNER, uuid.uuid4())

    @pytest.mark.asyncio
    async def test_only_lessons_of_the_content_count(
        self,
        ledger: EnrollmentLedger,
        sequencer: Sequencer,
        content_service: ContentService,
        content: Content,
        lessons: list[Lesson],
    ) -> None:
        other = await content_service.create_content(
            CreateContentRequest(title="Other", published=True)
        )
        other_lesson = await sequencer.apply(
            InsertLesson(content_id=other.id, title="x", body="")
        )
        await ledger.enroll(LEARNER, content.id)
        await ledger.enroll(LEARNER, other.id)

        other_result = await ledger.complete_lesson(LEARNER, other_lesson.id)
        result = await ledger.complete_lesson(LEARNER, lessons[0].id)

        assert other_result.is_complete is True
        assert result.progress_percentage == 20
        assert result.is_complete is False

    @pytest.mark.asyncio
    async def test_completion_survives_added_lessons(
        self,
        ledger: EnrollmentLedger,
        sequencer: Sequencer,
        content: Content,
    ) -> None:
        """A completed enrollment is not reverted when content grows."""
        only = await sequencer.apply(
            InsertLesson(content_id=content.id, title="only", body="")
        )
        await ledger.enroll(LEARNER, content.id)
        await ledger.complete_lesson(LEARNER, only.id)
        completed_at = (await ledger.get_enrollment(LEARNER, content.id)).completed_at

        added = await sequencer.apply(
            InsertLesson(content_id=content.id, title="added", body="")
        )
        result = await ledger.complete_lesson(LEARNER, added.id)
        enrollment = await ledger.get_enrollment(LEARNER, content.id)

        assert result.progress_percentage == 100
        assert result.is_complete is True
        assert enrollment.status == EnrollmentStatus.COMPLETED.value
        assert enrollment.completed_at == completed_at

    @pytest.mark.asyncio
    async def test_percentage_does_not_decrease(
        self,
        ledger: EnrollmentLedger,
        sequencer: Sequencer,
        content: Content,
        lessons: list[Lesson],
    ) -> None:
        await ledger.enroll(LEARNER, content.id)
        await ledger.complete_lesson(LEARNER, lessons[0].id)
        await ledger.complete_lesson(LEARNER, lessons[1].id)  # 2/5 = 40

        for i in range(5):
            await sequencer.apply(
                InsertLesson(content_id=content.id, title=f"extra {i}", body="")
            )
        result = await ledger.complete_lesson(LEARNER, lessons[2].id)  # 3/10

        assert result.progress_percentage == 40


class TestQueries:
    """Tests for enrollment queries."""

    @pytest.mark.asyncio
    async def test_get_enrollment_missing(
        self, ledger: EnrollmentLedger, content: Content
    ) -> None:
        with pytest.raises(EnrollmentNotFoundError):
            await ledger.get_enrollment(LEARNER, content.id)

    @pytest.mark.asyncio
    async def test_list_enrollments_per_learner(
        self,
        ledger: EnrollmentLedger,
        content_service: ContentService,
        content: Content,
    ) -> None:
        other = await content_service.create_content(
            CreateContentRequest(title="Other", published=True)
        )
        await ledger.enroll(LEARNER, content.id)
        await ledger.enroll(LEARNER, other.id)
        await ledger.enroll("someone-else", content.id)

        entries = await ledger.list_enrollments(LEARNER)

        assert {e.enrollment.content_id for e in entries} == {content.id, other.id}
        assert {e.content.title for e in entries} == {"Intro to Python", "Other"}
        assert all(e.content.id == e.enrollment.content_id for e in entries)
        assert entries[0].enrollment.started_at >= entries[1].enrollment.started_at

    @pytest.mark.asyncio
    async def test_content_progress(
        self, ledger: EnrollmentLedger, content: Content, lessons: list[Lesson]
    ) -> None:
        await ledger.enroll(LEARNER, content.id)
        await ledger.complete_lesson(LEARNER, lessons[1].id)
        await ledger.complete_lesson(LEARNER, lessons[3].id)

        progress = await ledger.get_content_progress(LEARNER, content.id)

        assert progress.completed_lesson_ids == {lessons[1].id, lessons[3].id}
        assert progress.lessons_total == 5
        assert progress.enrollment.progress_percentage == 40
        assert await ledger.completed_lesson_ids("someone-else", content.id) == set()
