"""Lesson management API endpoints.

Provides admin routes for:
- Creating a lesson (appended or inserted at a position)
- Updating fields and position of a lesson
- Deleting a lesson
"""

from uuid import UUID

from fastapi import APIRouter, status

from .dependencies import LessonServiceDep
from .schemas import CreateLessonRequest, LessonResponse, UpdateLessonRequest


router = APIRouter(prefix="/v1/admin", tags=["admin-lessons"])


@router.post(
    "/content/{content_id}/lessons",
    response_model=LessonResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create lesson",
)
async def create_lesson(
    content_id: UUID,
    data: CreateLessonRequest,
    lesson_service: LessonServiceDep,
) -> LessonResponse:
    """Create a lesson in a content item.

    Without ``order_index`` the lesson is appended; with it, lessons from
    that position onward move down by one.
    """
    lesson = await lesson_service.create_lesson(content_id, data)
    return LessonResponse.from_entity(lesson)


@router.get(
    "/lessons/{lesson_id}",
    response_model=LessonResponse,
    summary="Get lesson",
)
async def get_lesson(
    lesson_id: UUID,
    lesson_service: LessonServiceDep,
) -> LessonResponse:
    lesson = await lesson_service.get_lesson(lesson_id)
    return LessonResponse.from_entity(lesson)


@router.put(
    "/lessons/{lesson_id}",
    response_model=LessonResponse,
    summary="Update lesson",
)
async def update_lesson(
    lesson_id: UUID,
    data: UpdateLessonRequest,
    lesson_service: LessonServiceDep,
) -> LessonResponse:
    lesson = await lesson_service.update_lesson(lesson_id, data)
    return LessonResponse.from_entity(lesson)


@router.delete(
    "/lessons/{lesson_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete lesson",
)
async def delete_lesson(
    lesson_id: UUID,
    lesson_service: LessonServiceDep,
) -> None:
    await lesson_service.delete_lesson(lesson_id)
