"""Lesson management service layer.

Translates lesson create/update/delete requests into sequencer operations.
Field edits and repositioning of one update share a transaction.
"""

from uuid import UUID

import structlog

from learnhub.content.models import Lesson
from learnhub.content.store import ContentStore
from learnhub.lessons.schemas import CreateLessonRequest, UpdateLessonRequest
from learnhub.lessons.sequencer import (
    DeleteLesson,
    InsertLesson,
    LessonNotFoundError,
    MoveLesson,
    Sequencer,
)


logger = structlog.get_logger(__name__)


class LessonService:
    """Service for lesson CRUD operations."""

    def __init__(self, store: ContentStore, sequencer: Sequencer | None = None):
        self.store = store
        self.sequencer = sequencer or Sequencer(store)

    async def create_lesson(self, content_id: UUID, data: CreateLessonRequest) -> Lesson:
        """Create a lesson, appended or inserted at ``data.order_index``."""
        return await self.sequencer.apply(
            InsertLesson(
                content_id=content_id,
                title=data.title,
                body=data.body,
                order_index=data.order_index,
                estimated_minutes=data.estimated_minutes,
            )
        )

    async def get_lesson(self, lesson_id: UUID) -> Lesson:
        async with self.store.transaction() as tx:
            lesson = await tx.get_lesson(lesson_id)
        if lesson is None:
            raise LessonNotFoundError
        return lesson

    async def update_lesson(self, lesson_id: UUID, data: UpdateLessonRequest) -> Lesson:
        """Update lesson fields and, if requested, its position.

        A move happens only when ``order_index`` is given and differs from
        the current position.
        """
        async with self.store.transaction() as tx:
            if data.order_index is not None:
                lesson = await self.sequencer.move(
                    tx, MoveLesson(lesson_id=lesson_id, new_index=data.order_index)
                )
            else:
                lesson = await tx.get_lesson(lesson_id)
                if lesson is None:
                    raise LessonNotFoundError

            changes = data.model_dump(
                exclude_unset=True, exclude={"order_index"}
            )
            for field, value in changes.items():
                if field in ("title", "body") and value is None:
                    continue
                setattr(lesson, field, value)
            await tx.flush()

        if changes:
            logger.info(
                "lesson_updated",
                lesson_id=str(lesson_id),
                fields=sorted(changes),
            )
        return lesson

    async def delete_lesson(self, lesson_id: UUID) -> None:
        await self.sequencer.apply(DeleteLesson(lesson_id=lesson_id))
