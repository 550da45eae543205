"""FastAPI dependencies for lesson management."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .service import LessonService


async def get_lesson_service(request: Request) -> LessonService:
    """Get lesson service from app state."""
    service = getattr(request.app.state, "lesson_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Lesson service not available",
        )
    return service


# Type alias for dependency injection
LessonServiceDep = Annotated[LessonService, Depends(get_lesson_service)]
