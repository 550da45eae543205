"""Tests for the transactional store primitives."""

import pytest

from learnhub.content.models import Content, Lesson, utcnow
from learnhub.content.store import ContentStore, park_slot
from learnhub.core.exceptions import StoreConflictError


class TestTransaction:
    """Tests for ContentStore.transaction."""

    @pytest.mark.asyncio
    async def test_rolls_back_on_error(self, store: ContentStore) -> None:
        with pytest.raises(RuntimeError):
            async with store.transaction() as tx:
                await tx.add_content(Content(title="Temp", slug="temp"))
                raise RuntimeError("boom")

        async with store.transaction() as tx:
            assert await tx.slug_exists("temp") is False

    @pytest.mark.asyncio
    async def test_database_errors_become_store_conflicts(
        self, store: ContentStore, content: Content
    ) -> None:
        with pytest.raises(StoreConflictError):
            async with store.transaction() as tx:
                await tx.add_content(Content(title="Dup", slug=content.slug))

    @pytest.mark.asyncio
    async def test_deleting_content_cascades(
        self, store: ContentStore, content: Content, lessons: list[Lesson]
    ) -> None:
        async with store.transaction() as tx:
            assert await tx.delete_content(content.id) is True

        async with store.transaction() as tx:
            assert await tx.count_lessons(content.id) == 0
            assert await tx.get_lesson(lessons[0].id) is None


class TestContentLookups:
    """Tests for catalog reads."""

    @pytest.mark.asyncio
    async def test_by_slug_and_published_listing(
        self, store: ContentStore, content: Content
    ) -> None:
        async with store.transaction() as tx:
            await tx.add_content(Content(title="Draft", slug="draft", published=False))

        async with store.transaction() as tx:
            assert (await tx.get_content_by_slug(content.slug)).id == content.id
            assert (await tx.get_content_by_slug("draft")).published is False
            assert await tx.get_content_by_slug("missing") is None
            assert [c.slug for c in await tx.list_published_content()] == [content.slug]


class TestShifting:
    """Tests for park-then-settle shifting."""

    def test_park_slot(self) -> None:
        assert park_slot(0) == -1
        assert park_slot(4) == -5

    @pytest.mark.asyncio
    async def test_shift_bounded_range(
        self, store: ContentStore, content: Content, lessons: list[Lesson], lesson_titles
    ) -> None:
        async with store.transaction() as tx:
            await tx.delete_lesson(lessons[1].id)
            shifted = await tx.shift_order(content.id, 2, 4, -1)
            await tx.settle_order(content.id)

        assert shifted == 3
        assert await lesson_titles(content.id) == ["L0", "L2", "L3", "L4"]

    @pytest.mark.asyncio
    async def test_conditional_move_checks_expected_index(
        self, store: ContentStore, content: Content, lessons: list[Lesson]
    ) -> None:
        async with store.transaction() as tx:
            assert await tx.move_lesson_to(lessons[0].id, 3, 4) is False


class TestInsertIgnore:
    """Tests for insert-or-skip of enrollments and completions."""

    @pytest.mark.asyncio
    async def test_native_insert_ignore(
        self, store: ContentStore, content: Content, lessons: list[Lesson]
    ) -> None:
        async with store.transaction() as tx:
            assert await tx.insert_enrollment("l1", content.id, utcnow()) is True
            assert await tx.insert_enrollment("l1", content.id, utcnow()) is False
            assert await tx.insert_completion("l1", lessons[0].id, utcnow()) is True
            assert await tx.insert_completion("l1", lessons[0].id, utcnow()) is False
            assert await tx.count_completed_lessons("l1", content.id) == 1

    @pytest.mark.asyncio
    async def test_pre_check_fallback(
        self, store: ContentStore, content: Content, lessons: list[Lesson]
    ) -> None:
        """Dialects without ON CONFLICT skip existing rows after a lookup."""
        store.dialect = "generic"

        async with store.transaction() as tx:
            assert await tx.insert_enrollment("l1", content.id, utcnow()) is True
            assert await tx.insert_enrollment("l1", content.id, utcnow()) is False
            assert await tx.insert_completion("l1", lessons[0].id, utcnow()) is True
            assert await tx.insert_completion("l1", lessons[0].id, utcnow()) is False

        async with store.transaction() as tx:
            assert len(await tx.list_enrollments("l1")) == 1
            assert await tx.completed_lesson_ids("l1", content.id) == {lessons[0].id}
