"""FastAPI dependencies for content administration."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .service import ContentService


async def get_content_service(request: Request) -> ContentService:
    """Get content service from app state."""
    service = getattr(request.app.state, "content_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Content service not available",
        )
    return service


# Type alias for dependency injection
ContentServiceDep = Annotated[ContentService, Depends(get_content_service)]
