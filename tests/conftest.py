"""Shared fixtures: in-memory SQLite store, services and API client."""

import os


os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("LOG_TO_FILE", "false")
os.environ.setdefault("LOG_REQUESTS", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from collections.abc import AsyncIterator, Iterator  # noqa: E402
from uuid import UUID  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncEngine  # noqa: E402

from learnhub.config import Settings  # noqa: E402
from learnhub.content.models import Content, Lesson  # noqa: E402
from learnhub.content.schemas import CreateContentRequest  # noqa: E402
from learnhub.content.service import ContentService  # noqa: E402
from learnhub.content.store import ContentStore  # noqa: E402
from learnhub.core.database import build_engine, create_tables  # noqa: E402
from learnhub.lessons.sequencer import InsertLesson, Sequencer  # noqa: E402
from learnhub.lessons.service import LessonService  # noqa: E402
from learnhub.main import create_app  # noqa: E402
from learnhub.progress.service import EnrollmentLedger  # noqa: E402


LEARNER = "learner-1"


# ==============================================================================
# Store and services
# ==============================================================================


@pytest_asyncio.fixture
async def engine() -> AsyncIterator[AsyncEngine]:
    engine = build_engine("sqlite+aiosqlite://")
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def store(engine: AsyncEngine) -> ContentStore:
    return ContentStore(engine)


@pytest.fixture
def sequencer(store: ContentStore) -> Sequencer:
    return Sequencer(store)


@pytest.fixture
def content_service(store: ContentStore) -> ContentService:
    return ContentService(store)


@pytest.fixture
def lesson_service(store: ContentStore, sequencer: Sequencer) -> LessonService:
    return LessonService(store, sequencer)


@pytest.fixture
def ledger(store: ContentStore) -> EnrollmentLedger:
    return EnrollmentLedger(store)


@pytest_asyncio.fixture
async def content(content_service: ContentService) -> Content:
    """Published content without lessons."""
    return await content_service.create_content(
        CreateContentRequest(title="Intro to Python", published=True)
    )


@pytest_asyncio.fixture
async def lessons(sequencer: Sequencer, content: Content) -> list[Lesson]:
    """Five lessons titled L0..L4 at positions 0..4."""
    return [
        await sequencer.apply(
            InsertLesson(content_id=content.id, title=f"L{i}", body=f"body {i}")
        )
        for i in range(5)
    ]


@pytest.fixture
def lesson_titles(store: ContentStore):
    """Titles in position order, asserting the positions are 0..n-1."""

    async def _titles(content_id: UUID) -> list[str]:
        async with store.transaction() as tx:
            ordered = await tx.list_lessons(content_id)
        assert [lesson.order_index for lesson in ordered] == list(range(len(ordered)))
        return [lesson.title for lesson in ordered]

    return _titles


# ==============================================================================
# HTTP
# ==============================================================================


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        environment="testing",
        database_url="sqlite+aiosqlite://",
        database_create_tables=True,
        log_to_file=False,
        log_requests=False,
    )


@pytest.fixture
def client(test_settings: Settings) -> Iterator[TestClient]:
    """API client; the app owns a fresh in-memory database."""
    app = create_app(test_settings)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def learner_headers() -> dict[str, str]:
    return {"X-User-Id": LEARNER}
