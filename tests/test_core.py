"""Tests for request context, log processors and error mapping."""

import pytest
import structlog
from structlog.testing import capture_logs

from learnhub.config import Settings
from learnhub.core.context import (
    RequestContext,
    clear_context,
    get_context,
    get_learner_id,
    get_request_id,
    set_request_id,
)
from learnhub.core.database import engine as engine_module
from learnhub.core.database.engine import DatabaseConnection
from learnhub.core.exceptions import (
    InvalidArgumentError,
    LearnHubError,
    StoreConflictError,
    status_code_for,
)
from learnhub.core.logging import add_context_processor, filter_sensitive_data
from learnhub.lessons.sequencer import InvalidPositionError, LessonNotFoundError
from learnhub.progress.service import NotEnrolledError


class TestRequestContext:
    """Tests for context variables."""

    def test_context_manager_restores_previous_values(self) -> None:
        clear_context()
        with RequestContext(request_id="req-1", learner_id="learner-1"):
            assert get_request_id() == "req-1"
            assert get_learner_id() == "learner-1"
            assert get_context() == {"request_id": "req-1", "learner_id": "learner-1"}

        assert get_learner_id() is None
        assert get_context() == {}

    def test_set_request_id_generates_when_missing(self) -> None:
        request_id = set_request_id()
        assert request_id
        assert get_request_id() == request_id
        clear_context()


class TestLogProcessors:
    """Tests for structlog processors."""

    def test_context_added_to_events(self) -> None:
        with RequestContext(request_id="req-2"):
            event = add_context_processor(None, "info", {"event": "lesson_moved"})
        assert event["request_id"] == "req-2"

    def test_sensitive_values_masked(self) -> None:
        event = filter_sensitive_data(
            None,
            "info",
            {
                "event": "database_connected",
                "database_url": "postgresql+asyncpg://user:secret@db/learnhub",
                "password": "abc",
                "lesson_id": "keep-me",
            },
        )
        assert "secret" not in event["database_url"]
        assert event["password"] == "***"
        assert event["lesson_id"] == "keep-me"


class TestErrorMapping:
    """Tests for status_code_for."""

    def test_categories(self) -> None:
        assert status_code_for(LessonNotFoundError()) == 404
        assert status_code_for(InvalidPositionError(7, 3)) == 400
        assert status_code_for(InvalidArgumentError()) == 400
        assert status_code_for(NotEnrolledError()) == 403
        assert status_code_for(StoreConflictError()) == 409
        assert status_code_for(LearnHubError("unexpected")) == 500

    def test_codes_are_stable(self) -> None:
        assert LessonNotFoundError().code == "lesson_not_found"
        assert InvalidPositionError(7, 3).code == "invalid_position"
        assert StoreConflictError().code == "store_conflict"


class TestDatabaseConnection:
    """Tests for the process-wide engine manager."""

    @pytest.fixture(autouse=True)
    def _fresh_connection(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(DatabaseConnection, "_engine", None)
        monkeypatch.setattr(DatabaseConnection, "_sessionmaker", None)
        monkeypatch.setattr(DatabaseConnection, "_url", None)
        monkeypatch.setattr(engine_module, "logger", structlog.get_logger("engine"))

    def test_connect_reuses_engine(self, test_settings: Settings) -> None:
        with capture_logs() as logs:
            first = DatabaseConnection.connect(test_settings)
            second = DatabaseConnection.connect(test_settings)

        assert second is first
        assert DatabaseConnection.get_sessionmaker() is not None
        assert not [log for log in logs if log["event"] == "database_engine_reused"]

    def test_connect_with_other_url_warns(self, test_settings: Settings) -> None:
        other = test_settings.model_copy(
            update={"database_url": "sqlite+aiosqlite:///other.db"}
        )
        with capture_logs() as logs:
            first = DatabaseConnection.connect(test_settings)
            second = DatabaseConnection.connect(other)

        assert second is first
        assert str(second.url) == "sqlite+aiosqlite://"
        reused = [log for log in logs if log["event"] == "database_engine_reused"]
        assert len(reused) == 1
        assert reused[0]["log_level"] == "warning"

    def test_get_sessionmaker_connects_lazily(self, test_settings: Settings) -> None:
        DatabaseConnection.connect(test_settings)
        DatabaseConnection._sessionmaker = None

        sessionmaker = DatabaseConnection.get_sessionmaker()

        assert sessionmaker is DatabaseConnection.get_sessionmaker()
        assert sessionmaker.kw["bind"] is DatabaseConnection.get_engine()
