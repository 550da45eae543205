"""Database models for curated content.

Relational table definitions for:
- Content: top-level learning unit (published or draft)
- Lessons: ordered sub-units of a content item

Lessons are exclusively owned by their content (ON DELETE CASCADE) and
``(content_id, order_index)`` is unique, so two lessons can never share a
position within one content item.
"""

import re
import unicodedata
from datetime import UTC, datetime
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from learnhub.core.database import Base


# ==============================================================================
# Helper Functions
# ==============================================================================


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


def ensure_utc_aware(dt: datetime | None) -> datetime | None:
    """Ensure datetime is UTC-aware (SQLite returns naive datetimes)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


def generate_slug(title: str) -> str:
    """Generate URL-friendly slug from title."""
    # Normalize unicode characters
    slug = unicodedata.normalize("NFKD", title)
    slug = slug.encode("ascii", "ignore").decode("ascii")
    slug = slug.lower().strip()
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"[^a-z0-9-]", "", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")


# ==============================================================================
# Tables
# ==============================================================================


class Content(Base):
    """Content item composed of ordered lessons.

    Attributes:
        id: Unique identifier (UUID)
        title: Content title
        slug: Unique URL-friendly identifier
        description: Free text description
        published: Whether learners can enroll
        created_at: Creation timestamp
        updated_at: Last update timestamp
    """

    __tablename__ = "learning_content"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    title: Mapped[str] = mapped_column(String(255))
    slug: Mapped[str] = mapped_column(String(255), unique=True)
    description: Mapped[str] = mapped_column(Text, default="")
    published: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    __table_args__ = (Index("idx_content_published", "published", "created_at"),)

    def __repr__(self) -> str:
        return f"<Content {self.slug} published={self.published}>"


class Lesson(Base):
    """Lesson entity, an ordered sub-unit of a content item.

    Attributes:
        id: Unique identifier (UUID)
        content_id: Owning content
        title: Lesson title
        body: Lesson body (opaque to the engine)
        order_index: Zero-based rank among sibling lessons
        estimated_minutes: Optional duration hint
        created_at: Creation timestamp
    """

    __tablename__ = "learning_lessons"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    content_id: Mapped[UUID] = mapped_column(
        ForeignKey("learning_content.id", ondelete="CASCADE")
    )
    title: Mapped[str] = mapped_column(String(255))
    body: Mapped[str] = mapped_column(Text)
    order_index: Mapped[int] = mapped_column(Integer)
    estimated_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )

    __table_args__ = (
        UniqueConstraint("content_id", "order_index", name="unique_content_order"),
        Index("idx_lessons_content_order", "content_id", "order_index"),
    )

    def __repr__(self) -> str:
        return f"<Lesson {self.id} content={self.content_id} #{self.order_index}>"
