"""Content administration service layer.

Business logic for:
- Content creation with unique slugs
- Publication toggling
- Reading a content item with its ordered lessons
- The published catalog learners browse
- Content deletion (cascades to lessons and progress)
"""

from uuid import UUID, uuid4

import structlog

from learnhub.content.models import Content, Lesson, generate_slug
from learnhub.content.schemas import CreateContentRequest
from learnhub.content.store import ContentStore
from learnhub.core.exceptions import ConflictError, InvalidArgumentError, NotFoundError


logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class ContentNotFoundError(NotFoundError):
    """Content not found (or not visible to learners)."""

    def __init__(self, message: str = "Content not found"):
        super().__init__(message, "content_not_found")


class SlugExistsError(ConflictError):
    """Slug already exists."""

    def __init__(self, message: str = "Slug already exists"):
        super().__init__(message, "slug_exists")


# ==============================================================================
# Content Service
# ==============================================================================


class ContentService:
    """Service for content administration."""

    def __init__(self, store: ContentStore):
        self.store = store

    async def create_content(self, data: CreateContentRequest) -> Content:
        """Create a content item.

        An explicit slug must be unused. A slug generated from the title
        gets a short suffix when it collides.

        Raises:
            SlugExistsError: If an explicit slug is already taken
            InvalidArgumentError: If no slug can be derived from the title
        """
        content_id = uuid4()

        async with self.store.transaction() as tx:
            if data.slug:
                slug = data.slug
                if await tx.slug_exists(slug):
                    raise SlugExistsError
            else:
                slug = generate_slug(data.title)
                if not slug:
                    raise InvalidArgumentError(
                        "Title must contain at least one letter or digit"
                    )
                if await tx.slug_exists(slug):
                    slug = f"{slug}-{str(content_id)[:8]}"

            content = await tx.add_content(
                Content(
                    id=content_id,
                    title=data.title,
                    slug=slug,
                    description=data.description or "",
                    published=data.published,
                )
            )

        logger.info("content_created", content_id=str(content.id), slug=content.slug)
        return content

    async def get_content(self, content_id: UUID) -> Content:
        async with self.store.transaction() as tx:
            content = await tx.get_content(content_id)
        if content is None:
            raise ContentNotFoundError
        return content

    async def get_content_with_lessons(
        self, content_id: UUID
    ) -> tuple[Content, list[Lesson]]:
        """Content and its lessons in position order, read in one transaction."""
        async with self.store.transaction() as tx:
            content = await tx.get_content(content_id)
            if content is None:
                raise ContentNotFoundError
            lessons = await tx.list_lessons(content_id)
        return content, lessons

    # ==========================================================================
    # Learner catalog
    # ==========================================================================

    async def list_published(self) -> list[Content]:
        async with self.store.transaction() as tx:
            return await tx.list_published_content()

    async def get_published_with_lessons(
        self, slug: str
    ) -> tuple[Content, list[Lesson]]:
        """Published content by slug and its lessons in position order.

        Raises:
            ContentNotFoundError: If no published content has the slug
        """
        async with self.store.transaction() as tx:
            content = await tx.get_content_by_slug(slug)
            if content is None or not content.published:
                raise ContentNotFoundError
            lessons = await tx.list_lessons(content.id)
        return content, lessons

    async def set_published(self, content_id: UUID, published: bool) -> Content:
        async with self.store.transaction() as tx:
            content = await tx.get_content(content_id, lock=True)
            if content is None:
                raise ContentNotFoundError
            content.published = published
            await tx.flush()

        logger.info(
            "content_publication_changed",
            content_id=str(content_id),
            published=published,
        )
        return content

    async def delete_content(self, content_id: UUID) -> None:
        async with self.store.transaction() as tx:
            if not await tx.delete_content(content_id):
                raise ContentNotFoundError

        logger.info("content_deleted", content_id=str(content_id))
