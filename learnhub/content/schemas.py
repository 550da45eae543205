"""Pydantic schemas for content administration."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from learnhub.content.models import Content, Lesson, ensure_utc_aware


class CreateContentRequest(BaseModel):
    """Content creation request."""

    title: str = Field(..., min_length=1, max_length=255, description="Content title")
    slug: str | None = Field(
        None,
        min_length=1,
        max_length=255,
        pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$",
        description="URL-friendly identifier (generated from title if omitted)",
    )
    description: str | None = Field(None, max_length=5000)
    published: bool = Field(False, description="Whether learners can enroll")


class PublishContentRequest(BaseModel):
    """Publication toggle request."""

    published: bool


class LessonSummary(BaseModel):
    """Lesson as listed inside a content item."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    order_index: int
    estimated_minutes: int | None = None


class ContentResponse(BaseModel):
    """Content response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    slug: str
    description: str = ""
    published: bool
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_entity(cls, content: Content) -> "ContentResponse":
        return cls(
            id=content.id,
            title=content.title,
            slug=content.slug,
            description=content.description or "",
            published=content.published,
            created_at=ensure_utc_aware(content.created_at),
            updated_at=ensure_utc_aware(content.updated_at),
        )


class ContentDetailResponse(ContentResponse):
    """Content with its lessons in position order."""

    lessons: list[LessonSummary] = []
    lesson_count: int = 0

    @classmethod
    def from_entities(
        cls, content: Content, lessons: list[Lesson]
    ) -> "ContentDetailResponse":
        base = ContentResponse.from_entity(content)
        return cls(
            **base.model_dump(),
            lessons=[LessonSummary.model_validate(lesson) for lesson in lessons],
            lesson_count=len(lessons),
        )


class ContentListResponse(BaseModel):
    """Published content catalog."""

    items: list[ContentResponse]
    total: int


class ContentSummary(BaseModel):
    """Content as shown next to a learner's enrollment."""

    id: UUID
    title: str
    slug: str
    description: str = ""

    @classmethod
    def from_entity(cls, content: Content) -> "ContentSummary":
        return cls(
            id=content.id,
            title=content.title,
            slug=content.slug,
            description=content.description or "",
        )
