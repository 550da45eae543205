"""Health check endpoints."""

from fastapi import APIRouter, Request, Response, status

from learnhub.core.database import ping


router = APIRouter(prefix="/health", tags=["health"])


@router.get("/live")
async def liveness() -> dict[str, str]:
    """Liveness probe - checks if the application is running."""
    return {"status": "alive"}


@router.get("/ready")
async def readiness(request: Request, response: Response) -> dict[str, str | bool]:
    """Readiness probe - checks that the database answers queries."""
    settings = request.app.state.settings
    store = getattr(request.app.state, "content_store", None)
    database_ok = store is not None and await ping(store.engine)

    if not database_ok:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return {
        "status": "ready" if database_ok else "not_ready",
        "database": database_ok,
        "environment": settings.environment,
        "debug": settings.debug,
    }


@router.get("")
async def health(request: Request) -> dict[str, str]:
    """General health check endpoint."""
    settings = request.app.state.settings
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }
