"""Learner progress API endpoints.

Provides routes for:
- Browsing published content
- Content enrollment
- Lesson completion
- Progress queries (library and per-content)
"""

from uuid import UUID

from fastapi import APIRouter, Response, status

from learnhub.content.dependencies import ContentServiceDep
from learnhub.content.schemas import (
    ContentDetailResponse,
    ContentListResponse,
    ContentResponse,
)

from .dependencies import CurrentLearner, EnrollmentLedgerDep
from .schemas import (
    ContentProgressResponse,
    EnrollmentListResponse,
    EnrollmentResponse,
    EnrollResponse,
    LessonCompleteResponse,
)


router = APIRouter(prefix="/v1/learning", tags=["learning"])


# ==============================================================================
# Catalog Endpoints
# ==============================================================================


@router.get(
    "/content",
    response_model=ContentListResponse,
    summary="List published content",
)
async def list_content(content_service: ContentServiceDep) -> ContentListResponse:
    contents = await content_service.list_published()
    return ContentListResponse(
        items=[ContentResponse.from_entity(c) for c in contents],
        total=len(contents),
    )


@router.get(
    "/content/{slug}",
    response_model=ContentDetailResponse,
    summary="Get published content with ordered lessons",
)
async def get_content(
    slug: str, content_service: ContentServiceDep
) -> ContentDetailResponse:
    content, lessons = await content_service.get_published_with_lessons(slug)
    return ContentDetailResponse.from_entities(content, lessons)


# ==============================================================================
# Enrollment Endpoints
# ==============================================================================


@router.post(
    "/content/{content_id}/enroll",
    response_model=EnrollResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Enroll in content",
)
async def enroll(
    content_id: UUID,
    response: Response,
    ledger: EnrollmentLedgerDep,
    learner_id: CurrentLearner,
) -> EnrollResponse:
    """Enroll the current learner in published content.

    Returns 201 for a new enrollment and 200 when already enrolled.
    """
    result = await ledger.enroll(learner_id, content_id)
    if not result.created:
        response.status_code = status.HTTP_200_OK

    return EnrollResponse(
        message="Enrolled successfully" if result.created else "Already enrolled",
        created=result.created,
        enrollment=EnrollmentResponse.from_entity(result.enrollment),
    )


# ==============================================================================
# Lesson Completion Endpoints
# ==============================================================================


@router.post(
    "/lessons/{lesson_id}/complete",
    response_model=LessonCompleteResponse,
    summary="Mark lesson as complete",
)
async def complete_lesson(
    lesson_id: UUID,
    ledger: EnrollmentLedgerDep,
    learner_id: CurrentLearner,
) -> LessonCompleteResponse:
    """Mark a lesson complete and return the updated content progress.

    Repeating the call is harmless.
    """
    result = await ledger.complete_lesson(learner_id, lesson_id)
    return LessonCompleteResponse.from_result(result)


# ==============================================================================
# Progress Queries
# ==============================================================================


@router.get(
    "/my-library",
    response_model=EnrollmentListResponse,
    summary="List my enrollments",
)
async def my_library(
    ledger: EnrollmentLedgerDep,
    learner_id: CurrentLearner,
) -> EnrollmentListResponse:
    entries = await ledger.list_enrollments(learner_id)
    return EnrollmentListResponse(
        items=[
            EnrollmentResponse.from_entity(entry.enrollment, entry.content)
            for entry in entries
        ],
        total=len(entries),
    )


@router.get(
    "/content/{content_id}/progress",
    response_model=ContentProgressResponse,
    summary="Get my progress in content",
)
async def content_progress(
    content_id: UUID,
    ledger: EnrollmentLedgerDep,
    learner_id: CurrentLearner,
) -> ContentProgressResponse:
    progress = await ledger.get_content_progress(learner_id, content_id)
    return ContentProgressResponse.from_progress(progress)
