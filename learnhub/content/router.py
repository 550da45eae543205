"""Content administration API endpoints.

Admin privileges are enforced by the upstream gateway.
"""

from uuid import UUID

from fastapi import APIRouter, status

from .dependencies import ContentServiceDep
from .schemas import (
    ContentDetailResponse,
    ContentResponse,
    CreateContentRequest,
    PublishContentRequest,
)


router = APIRouter(prefix="/v1/admin/content", tags=["admin-content"])


@router.post(
    "",
    response_model=ContentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create content",
)
async def create_content(
    data: CreateContentRequest,
    content_service: ContentServiceDep,
) -> ContentResponse:
    content = await content_service.create_content(data)
    return ContentResponse.from_entity(content)


@router.get(
    "/{content_id}",
    response_model=ContentDetailResponse,
    summary="Get content with ordered lessons",
)
async def get_content(
    content_id: UUID,
    content_service: ContentServiceDep,
) -> ContentDetailResponse:
    content, lessons = await content_service.get_content_with_lessons(content_id)
    return ContentDetailResponse.from_entities(content, lessons)


@router.patch(
    "/{content_id}/publish",
    response_model=ContentResponse,
    summary="Publish or unpublish content",
)
async def set_published(
    content_id: UUID,
    data: PublishContentRequest,
    content_service: ContentServiceDep,
) -> ContentResponse:
    content = await content_service.set_published(content_id, data.published)
    return ContentResponse.from_entity(content)


@router.delete(
    "/{content_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete content and its lessons",
)
async def delete_content(
    content_id: UUID,
    content_service: ContentServiceDep,
) -> None:
    await content_service.delete_content(content_id)
