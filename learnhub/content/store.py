"""Transactional storage primitives for content, lessons and progress.

``ContentStore.transaction()`` is the only way to obtain a ``StoreSession``;
everything done through one session commits together or not at all.

Shifting lesson positions happens in two phases so the
``(content_id, order_index)`` unique constraint is never violated by an
intermediate row state, even on databases that check it row by row:

1. rows that move are "parked" at a negative slot, ``-(target + 1)``;
2. ``settle_order`` flips every parked row of the content back to
   ``target``.

Parked slots are distinct because targets are distinct, and they cannot
collide with live (non-negative) positions.
"""

from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

import structlog
from sqlalchemy import and_, delete, func, select, update
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from learnhub.content.models import Content, Lesson
from learnhub.core.database import build_sessionmaker
from learnhub.core.exceptions import StoreConflictError
from learnhub.progress.models import Enrollment, LessonCompletion


logger = structlog.get_logger(__name__)

# Dialects with a native INSERT ... ON CONFLICT DO NOTHING
_INSERT_IGNORE_DIALECTS: dict[str, Callable[..., Any]] = {
    "postgresql": postgresql_insert,
    "sqlite": sqlite_insert,
}


def park_slot(order_index: int) -> int:
    """Negative slot holding a row whose final position is ``order_index``."""
    return -order_index - 1


class StoreSession:
    """Store primitives bound to one open transaction."""

    def __init__(self, session: AsyncSession, dialect: str):
        self.session = session
        self.dialect = dialect

    # ==========================================================================
    # Content
    # ==========================================================================

    async def get_content(self, content_id: UUID, *, lock: bool = False) -> Content | None:
        """Point read of a content row.

        With ``lock=True`` the row is locked until the transaction ends,
        serializing writers of the same content.
        """
        stmt = (
            select(Content)
            .where(Content.id == content_id)
            .execution_options(populate_existing=True)
        )
        if lock:
            stmt = stmt.with_for_update()
        return (await self.session.execute(stmt)).scalar_one_or_none()

    async def get_content_by_slug(self, slug: str) -> Content | None:
        stmt = select(Content).where(Content.slug == slug)
        return (await self.session.execute(stmt)).scalar_one_or_none()

    async def list_published_content(self) -> list[Content]:
        """Published content, newest first."""
        stmt = (
            select(Content)
            .where(Content.published.is_(True))
            .order_by(Content.created_at.desc())
        )
        return list((await self.session.execute(stmt)).scalars())

    async def slug_exists(self, slug: str) -> bool:
        stmt = select(func.count()).select_from(Content).where(Content.slug == slug)
        return bool(await self.session.scalar(stmt))

    async def add_content(self, content: Content) -> Content:
        self.session.add(content)
        await self.session.flush()
        return content

    async def delete_content(self, content_id: UUID) -> bool:
        """Delete a content row; lessons and progress cascade in the database."""
        result = await self.session.execute(
            delete(Content)
            .where(Content.id == content_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    # ==========================================================================
    # Lessons
    # ==========================================================================

    async def get_lesson(self, lesson_id: UUID) -> Lesson | None:
        stmt = (
            select(Lesson)
            .where(Lesson.id == lesson_id)
            .execution_options(populate_existing=True)
        )
        return (await self.session.execute(stmt)).scalar_one_or_none()

    async def list_lessons(self, content_id: UUID) -> list[Lesson]:
        """Lessons of a content ordered by position."""
        stmt = (
            select(Lesson)
            .where(Lesson.content_id == content_id)
            .order_by(Lesson.order_index)
            .execution_options(populate_existing=True)
        )
        return list((await self.session.execute(stmt)).scalars())

    async def count_lessons(self, content_id: UUID) -> int:
        stmt = (
            select(func.count())
            .select_from(Lesson)
            .where(Lesson.content_id == content_id)
        )
        return int(await self.session.scalar(stmt) or 0)

    async def max_order_index(self, content_id: UUID) -> int | None:
        """Highest position in use, or None when the content has no lessons."""
        stmt = select(func.max(Lesson.order_index)).where(
            Lesson.content_id == content_id
        )
        return await self.session.scalar(stmt)

    async def add_lesson(self, lesson: Lesson) -> Lesson:
        self.session.add(lesson)
        await self.session.flush()
        return lesson

    async def delete_lesson(self, lesson_id: UUID) -> None:
        await self.session.execute(
            delete(Lesson)
            .where(Lesson.id == lesson_id)
            .execution_options(synchronize_session=False)
        )

    async def move_lesson_to(
        self, lesson_id: UUID, expected_index: int, new_index: int
    ) -> bool:
        """Conditionally park a lesson for ``new_index``.

        Only applies when the lesson is still at ``expected_index``; returns
        False otherwise. ``settle_order`` must run before commit.
        """
        result = await self.session.execute(
            update(Lesson)
            .where(Lesson.id == lesson_id, Lesson.order_index == expected_index)
            .values(order_index=park_slot(new_index))
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def shift_order(
        self, content_id: UUID, lo: int, hi: int | None, delta: int
    ) -> int:
        """Park every lesson of ``content_id`` with position in ``[lo, hi]``
        for position ``+ delta``. ``hi=None`` means unbounded.

        Returns the number of rows shifted. ``settle_order`` must run before
        commit.
        """
        conditions = [Lesson.content_id == content_id, Lesson.order_index >= lo]
        if hi is not None:
            conditions.append(Lesson.order_index <= hi)

        result = await self.session.execute(
            update(Lesson)
            .where(and_(*conditions))
            .values(order_index=-(Lesson.order_index + delta) - 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def settle_order(self, content_id: UUID) -> None:
        """Move every parked lesson of ``content_id`` to its final position."""
        await self.session.execute(
            update(Lesson)
            .where(Lesson.content_id == content_id, Lesson.order_index < 0)
            .values(order_index=-Lesson.order_index - 1)
            .execution_options(synchronize_session=False)
        )

    # ==========================================================================
    # Enrollments & completions
    # ==========================================================================

    async def get_enrollment(
        self, learner_id: str, content_id: UUID, *, lock: bool = False
    ) -> Enrollment | None:
        stmt = (
            select(Enrollment)
            .where(
                Enrollment.learner_id == learner_id,
                Enrollment.content_id == content_id,
            )
            .execution_options(populate_existing=True)
        )
        if lock:
            stmt = stmt.with_for_update()
        return (await self.session.execute(stmt)).scalar_one_or_none()

    async def list_enrollments(
        self, learner_id: str
    ) -> list[tuple[Enrollment, Content]]:
        """Enrollments of a learner with their content, most recently started first."""
        stmt = (
            select(Enrollment, Content)
            .join(Content, Content.id == Enrollment.content_id)
            .where(Enrollment.learner_id == learner_id)
            .order_by(Enrollment.started_at.desc())
        )
        return list((await self.session.execute(stmt)).tuples())

    async def insert_enrollment(
        self, learner_id: str, content_id: UUID, started_at: datetime
    ) -> bool:
        """Insert an in-progress enrollment unless one exists for the pair.

        Returns True when a new row was created.
        """
        return await self._insert_ignore(
            Enrollment,
            {
                "id": uuid4(),
                "learner_id": learner_id,
                "content_id": content_id,
                "status": "in_progress",
                "progress_percentage": 0,
                "started_at": started_at,
                "completed_at": None,
            },
            conflict_columns=("learner_id", "content_id"),
        )

    async def insert_completion(
        self, learner_id: str, lesson_id: UUID, completed_at: datetime
    ) -> bool:
        """Record a lesson completion unless already recorded.

        Returns True when a new row was created.
        """
        return await self._insert_ignore(
            LessonCompletion,
            {
                "id": uuid4(),
                "learner_id": learner_id,
                "lesson_id": lesson_id,
                "completed_at": completed_at,
            },
            conflict_columns=("learner_id", "lesson_id"),
        )

    async def count_completed_lessons(self, learner_id: str, content_id: UUID) -> int:
        """Completions of ``learner_id`` restricted to lessons of ``content_id``."""
        stmt = (
            select(func.count())
            .select_from(LessonCompletion)
            .join(Lesson, LessonCompletion.lesson_id == Lesson.id)
            .where(
                LessonCompletion.learner_id == learner_id,
                Lesson.content_id == content_id,
            )
        )
        return int(await self.session.scalar(stmt) or 0)

    async def completed_lesson_ids(self, learner_id: str, content_id: UUID) -> set[UUID]:
        stmt = (
            select(LessonCompletion.lesson_id)
            .join(Lesson, LessonCompletion.lesson_id == Lesson.id)
            .where(
                LessonCompletion.learner_id == learner_id,
                Lesson.content_id == content_id,
            )
        )
        return set((await self.session.execute(stmt)).scalars())

    async def flush(self) -> None:
        await self.session.flush()

    async def _insert_ignore(
        self,
        model: type[Enrollment] | type[LessonCompletion],
        values: dict[str, Any],
        conflict_columns: tuple[str, ...],
    ) -> bool:
        insert_factory = _INSERT_IGNORE_DIALECTS.get(self.dialect)

        if insert_factory is not None:
            stmt = (
                insert_factory(model)
                .values(**values)
                .on_conflict_do_nothing(index_elements=list(conflict_columns))
                .returning(model.id)
            )
            inserted = (await self.session.execute(stmt)).scalar_one_or_none()
            return inserted is not None

        # No native insert-ignore: check and skip inside the same transaction
        existing = await self.session.scalar(
            select(model.id).where(
                *(getattr(model, column) == values[column] for column in conflict_columns)
            )
        )
        if existing is not None:
            return False
        self.session.add(model(**values))
        await self.session.flush()
        return True


class ContentStore:
    """Factory for atomic store sessions."""

    def __init__(
        self,
        engine: AsyncEngine,
        sessionmaker: async_sessionmaker[AsyncSession] | None = None,
    ):
        self.engine = engine
        self.dialect = engine.dialect.name
        self._sessionmaker = sessionmaker or build_sessionmaker(engine)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[StoreSession]:
        """Open a transaction; commit on success, roll back on any error.

        Database errors (serialization failures, deadlocks, constraint
        races) surface as ``StoreConflictError`` so callers can retry the
        whole operation.
        """
        async with self._sessionmaker() as session:
            try:
                async with session.begin():
                    yield StoreSession(session, self.dialect)
            except DBAPIError as e:
                logger.warning(
                    "store_transaction_failed",
                    error_type=type(e.orig).__name__ if e.orig else type(e).__name__,
                    error=str(e.orig or e),
                )
                raise StoreConflictError from e
