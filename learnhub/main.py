"""learnhub API - Main Application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from learnhub.config import Settings, get_settings
from learnhub.content.router import router as content_router
from learnhub.content.service import ContentService
from learnhub.content.store import ContentStore
from learnhub.core.context import get_request_id
from learnhub.core.database import (
    DatabaseConnection,
    init_database,
    shutdown_database,
)
from learnhub.core.exceptions import LearnHubError, status_code_for
from learnhub.core.logging import configure_structlog, get_logger
from learnhub.core.middleware import RequestContextMiddleware
from learnhub.health import router as health_router
from learnhub.lessons.router import router as lessons_router
from learnhub.lessons.sequencer import Sequencer
from learnhub.lessons.service import LessonService
from learnhub.progress.router import router as learning_router
from learnhub.progress.service import EnrollmentLedger


# Configure logging early (before creating logger)
settings = get_settings()
configure_structlog(settings, log_dir=Path(settings.log_dir))

logger = get_logger(__name__)


def init_services(app: FastAPI, store: ContentStore) -> None:
    """Build the services around ``store`` and expose them on app state."""
    sequencer = Sequencer(store)
    app.state.content_store = store
    app.state.content_service = ContentService(store)
    app.state.lesson_service = LessonService(store, sequencer)
    app.state.enrollment_ledger = EnrollmentLedger(store)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    app_settings: Settings = app.state.settings
    logger.info(
        "starting_application",
        app_name=app_settings.app_name,
        version=app_settings.app_version,
        environment=app_settings.environment,
    )

    sessionmaker = await init_database(app_settings)
    store = ContentStore(DatabaseConnection.get_engine(), sessionmaker)
    init_services(app, store)
    logger.info("services_initialized", dialect=store.dialect)

    yield

    # Shutdown
    logger.info("shutting_down_application")
    await shutdown_database()
    app.state.content_store = None


def create_app(app_settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    app_settings = app_settings or get_settings()

    # Never expose stack traces in responses; handlers below log the details
    app = FastAPI(
        title=app_settings.app_name,
        version=app_settings.app_version,
        description="Ordered lessons and learner progress API",
        debug=False,
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
        docs_url="/docs" if app_settings.is_development else None,
        redoc_url="/redoc" if app_settings.is_development else None,
        openapi_url="/openapi.json" if app_settings.is_development else None,
    )
    app.state.settings = app_settings
    app.state.content_store = None

    # Request context middleware (must be added first - outermost)
    app.add_middleware(
        RequestContextMiddleware,
        log_requests=app_settings.log_requests,
        exclude_paths=app_settings.log_exclude_paths,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins,
        allow_credentials=app_settings.cors_allow_credentials,
        allow_methods=app_settings.cors_allow_methods,
        allow_headers=app_settings.cors_allow_headers,
        max_age=app_settings.cors_max_age,
    )

    def _get_request_id_safe(request: Request) -> str | None:
        """Get request_id from request state or context."""
        if hasattr(request.state, "request_id"):
            return request.state.request_id
        return get_request_id()

    @app.exception_handler(LearnHubError)
    async def learnhub_error_handler(
        request: Request, exc: LearnHubError
    ) -> ORJSONResponse:
        """Map domain errors to their HTTP status."""
        status_code = status_code_for(exc)

        logger.warning(
            "domain_error",
            code=exc.code,
            status_code=status_code,
            detail=exc.message,
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=status_code,
            content={
                "error": True,
                "message": exc.message,
                "code": exc.code,
                "status_code": status_code,
                "request_id": _get_request_id_safe(request),
            },
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> ORJSONResponse:
        """Handle HTTP exceptions with safe error messages."""
        logger.warning(
            "http_exception",
            status_code=exc.status_code,
            detail=str(exc.detail),
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=exc.status_code,
            content={
                "error": True,
                "message": str(exc.detail)
                if exc.status_code < status.HTTP_500_INTERNAL_SERVER_ERROR
                else "Internal server error",
                "code": "http_error",
                "status_code": exc.status_code,
                "request_id": _get_request_id_safe(request),
            },
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> ORJSONResponse:
        """Handle validation errors with safe error messages."""
        logger.warning(
            "validation_error",
            errors=exc.errors(),
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "error": True,
                "message": "Validation error",
                "code": "validation_error",
                "status_code": 422,
                "request_id": _get_request_id_safe(request),
                "details": [
                    {
                        "field": ".".join(str(loc) for loc in err.get("loc", [])),
                        "message": err.get("msg", "Invalid value"),
                    }
                    for err in exc.errors()
                ],
            },
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request, exc: Exception
    ) -> ORJSONResponse:
        """Catch-all handler for unhandled exceptions.

        The full traceback is logged; the response carries a generic message.
        """
        logger.exception(
            "unhandled_exception",
            error_type=type(exc).__name__,
            error_message=str(exc),
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": True,
                "message": "An unexpected error occurred. Please try again later.",
                "code": "internal_error",
                "status_code": 500,
                "request_id": _get_request_id_safe(request),
            },
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(content_router)
    app.include_router(lessons_router)
    app.include_router(learning_router)

    @app.get("/", include_in_schema=False)
    async def root(request: Request) -> dict[str, str]:
        """Root endpoint."""
        return {
            "message": "learnhub API",
            "version": app_settings.app_version,
            "docs": f"{request.url}docs",
        }

    return app


app = create_app()
