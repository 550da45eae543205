"""Dense ordering of lessons within a content item.

For every content item the lessons occupy exactly the positions
``0..n-1``. The sequencer is the only writer of ``Lesson.order_index``;
each operation runs inside one store transaction after locking the owning
content row, so concurrent edits of the same content are applied one at a
time.

Operations are expressed as typed requests::

    InsertLesson(content_id, title, body)          # append
    InsertLesson(content_id, title, body, 0)       # insert in front
    MoveLesson(lesson_id, new_index=3)
    DeleteLesson(lesson_id)

and dispatched with ``Sequencer.apply``.
"""

from dataclasses import dataclass
from uuid import UUID, uuid4

import structlog

from learnhub.content.models import Lesson
from learnhub.content.service import ContentNotFoundError
from learnhub.content.store import ContentStore, StoreSession
from learnhub.core.exceptions import (
    InvalidArgumentError,
    NotFoundError,
    StoreConflictError,
)


logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class LessonNotFoundError(NotFoundError):
    """Lesson not found."""

    def __init__(self, message: str = "Lesson not found"):
        super().__init__(message, "lesson_not_found")


class InvalidPositionError(InvalidArgumentError):
    """Requested position is outside the content's lesson range."""

    def __init__(self, position: int, upper: int):
        super().__init__(
            f"Position {position} is out of range [0, {upper}]", "invalid_position"
        )
        self.position = position
        self.upper = upper


# ==============================================================================
# Requests
# ==============================================================================


def _check_index(name: str, value: int | None) -> None:
    if value is None:
        return
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidArgumentError(f"{name} must be an integer")
    if value < 0:
        raise InvalidArgumentError(f"{name} must be non-negative")


@dataclass(frozen=True)
class InsertLesson:
    """Create a lesson, appended unless ``order_index`` is given."""

    content_id: UUID
    title: str
    body: str
    order_index: int | None = None
    estimated_minutes: int | None = None

    def __post_init__(self) -> None:
        _check_index("order_index", self.order_index)


@dataclass(frozen=True)
class MoveLesson:
    """Move a lesson to ``new_index`` shifting the siblings in between."""

    lesson_id: UUID
    new_index: int

    def __post_init__(self) -> None:
        _check_index("new_index", self.new_index)


@dataclass(frozen=True)
class DeleteLesson:
    """Remove a lesson and close the gap it leaves."""

    lesson_id: UUID


SequenceOp = InsertLesson | MoveLesson | DeleteLesson


# ==============================================================================
# Sequencer
# ==============================================================================


class Sequencer:
    """Applies insert, move and delete operations to lesson sequences.

    ``apply`` runs one operation in its own transaction. ``insert``,
    ``move`` and ``delete`` run inside a caller-provided transaction so
    that they can be combined with other writes.
    """

    def __init__(self, store: ContentStore):
        self.store = store

    async def apply(self, op: SequenceOp) -> Lesson:
        """Apply one operation atomically.

        Returns:
            The inserted, moved or deleted lesson
        """
        async with self.store.transaction() as tx:
            if isinstance(op, InsertLesson):
                return await self.insert(tx, op)
            if isinstance(op, MoveLesson):
                return await self.move(tx, op)
            if isinstance(op, DeleteLesson):
                return await self.delete(tx, op)
        raise TypeError(f"Unsupported sequence operation: {type(op).__name__}")

    async def insert(self, tx: StoreSession, op: InsertLesson) -> Lesson:
        """Create a lesson at the end or at an explicit position.

        Raises:
            ContentNotFoundError: If content does not exist
            InvalidPositionError: If ``order_index`` is greater than the count
        """
        content = await tx.get_content(op.content_id, lock=True)
        if content is None:
            raise ContentNotFoundError

        if op.order_index is None:
            highest = await tx.max_order_index(op.content_id)
            order_index = 0 if highest is None else highest + 1
        else:
            total = await tx.count_lessons(op.content_id)
            if op.order_index > total:
                raise InvalidPositionError(op.order_index, total)
            order_index = op.order_index
            if order_index < total:
                await tx.shift_order(op.content_id, order_index, None, +1)
                await tx.settle_order(op.content_id)

        lesson = await tx.add_lesson(
            Lesson(
                id=uuid4(),
                content_id=op.content_id,
                title=op.title,
                body=op.body,
                order_index=order_index,
                estimated_minutes=op.estimated_minutes,
            )
        )

        logger.info(
            "lesson_created",
            lesson_id=str(lesson.id),
            content_id=str(op.content_id),
            order_index=order_index,
        )
        return lesson

    async def move(self, tx: StoreSession, op: MoveLesson) -> Lesson:
        """Move a lesson to a new position.

        Raises:
            LessonNotFoundError: If lesson does not exist
            InvalidPositionError: If ``new_index`` is not an existing position
        """
        lesson = await self._lock_lesson(tx, op.lesson_id)
        content_id = lesson.content_id
        old_index = lesson.order_index
        new_index = op.new_index

        total = await tx.count_lessons(content_id)
        if new_index >= total:
            raise InvalidPositionError(new_index, total - 1)
        if new_index == old_index:
            return lesson

        if not await tx.move_lesson_to(lesson.id, old_index, new_index):
            raise StoreConflictError
        if new_index > old_index:
            await tx.shift_order(content_id, old_index + 1, new_index, -1)
        else:
            await tx.shift_order(content_id, new_index, old_index - 1, +1)
        await tx.settle_order(content_id)

        logger.info(
            "lesson_moved",
            lesson_id=str(lesson.id),
            content_id=str(content_id),
            from_index=old_index,
            to_index=new_index,
        )
        moved = await tx.get_lesson(lesson.id)
        if moved is None:
            raise LessonNotFoundError
        return moved

    async def delete(self, tx: StoreSession, op: DeleteLesson) -> Lesson:
        """Delete a lesson and renumber the lessons after it.

        Raises:
            LessonNotFoundError: If lesson does not exist
        """
        lesson = await self._lock_lesson(tx, op.lesson_id)

        await tx.delete_lesson(lesson.id)
        await tx.shift_order(lesson.content_id, lesson.order_index + 1, None, -1)
        await tx.settle_order(lesson.content_id)

        logger.info(
            "lesson_deleted",
            lesson_id=str(lesson.id),
            content_id=str(lesson.content_id),
            order_index=lesson.order_index,
        )
        return lesson

    async def _lock_lesson(self, tx: StoreSession, lesson_id: UUID) -> Lesson:
        """Lock the lesson's content, then read the lesson's current state."""
        lesson = await tx.get_lesson(lesson_id)
        if lesson is None:
            raise LessonNotFoundError
        await tx.get_content(lesson.content_id, lock=True)

        # Re-read: another writer may have changed it before the lock
        lesson = await tx.get_lesson(lesson_id)
        if lesson is None:
            raise LessonNotFoundError
        return lesson
