"""Course catalog API endpoints.

Reads are public. Every mutation requires an authenticated admin.
"""

from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, status

from procoin.api.dependencies import require_admin
from procoin.errors import CourseNotFoundError, DuplicateCourseCodeError, not_found, validation_error
from procoin.models.catalog import (
    Assignment,
    AssignmentCreate,
    AssignmentUpdate,
    Course,
    CourseCreate,
    CourseUpdate,
    Lesson,
    LessonCreate,
    LessonUpdate,
    MessageResponse,
)
from procoin.models.user import User
from procoin.services.catalog_service import CatalogService

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["Catalog"])


def _duplicate_code(code: str):
    return validation_error(f"Course code '{code}' already in use")


# ---------------------------------------------------------------------------
# Courses
# ---------------------------------------------------------------------------


@router.post("/courses", status_code=status.HTTP_201_CREATED)
async def create_course(
    body: CourseCreate,
    current_user: User = Depends(require_admin),
) -> Course:
    service = CatalogService()
    try:
        return await service.create_course(body.name, body.code, created_by=current_user.id)
    except DuplicateCourseCodeError:
        raise _duplicate_code(body.code)


@router.get("/courses")
async def list_courses() -> list[Course]:
    """List all courses with lessons and assignments inline."""
    return await CatalogService().list_courses()


@router.get("/courses/{course_id}")
async def get_course(course_id: UUID) -> Course:
    course = await CatalogService().get_course(course_id)
    if course is None:
        raise not_found("Course not found")
    return course


@router.put("/courses/{course_id}")
async def update_course(
    course_id: UUID,
    body: CourseUpdate,
    current_user: User = Depends(require_admin),
) -> Course:
    try:
        course = await CatalogService().update_course(course_id, name=body.name, code=body.code)
    except DuplicateCourseCodeError:
        raise _duplicate_code(body.code or "")
    if course is None:
        raise not_found("Course not found")
    return course


@router.delete("/courses/{course_id}")
async def delete_course(
    course_id: UUID,
    current_user: User = Depends(require_admin),
) -> MessageResponse:
    """Delete a course. Its lessons and assignments are not deleted."""
    if not await CatalogService().delete_course(course_id):
        raise not_found("Course not found")
    logger.info("course_delete_requested", course_id=str(course_id), user_id=str(current_user.id))
    return MessageResponse(message="Course deleted")


# ---------------------------------------------------------------------------
# Lessons
# ---------------------------------------------------------------------------


@router.post("/courses/{course_id}/lessons", status_code=status.HTTP_201_CREATED)
async def create_lesson(
    course_id: UUID,
    body: LessonCreate,
    current_user: User = Depends(require_admin),
) -> Lesson:
    try:
        return await CatalogService().create_lesson(course_id, body.title, body.youtube_link)
    except CourseNotFoundError:
        raise not_found("Course not found")


@router.put("/lessons/{lesson_id}")
async def update_lesson(
    lesson_id: UUID,
    body: LessonUpdate,
    current_user: User = Depends(require_admin),
) -> Lesson:
    lesson = await CatalogService().update_lesson(lesson_id, title=body.title, youtube_link=body.youtube_link)
    if lesson is None:
        raise not_found("Lesson not found")
    return lesson


@router.delete("/lessons/{lesson_id}")
async def delete_lesson(
    lesson_id: UUID,
    current_user: User = Depends(require_admin),
) -> MessageResponse:
    if not await CatalogService().delete_lesson(lesson_id):
        raise not_found("Lesson not found")
    return MessageResponse(message="Lesson deleted")


# ---------------------------------------------------------------------------
# Assignments
# ---------------------------------------------------------------------------


@router.post("/courses/{course_id}/assignments", status_code=status.HTTP_201_CREATED)
async def create_assignment(
    course_id: UUID,
    body: AssignmentCreate,
    current_user: User = Depends(require_admin),
) -> Assignment:
    try:
        return await CatalogService().create_assignment(course_id, body.title, body.link)
    except CourseNotFoundError:
        raise not_found("Course not found")


@router.put("/assignments/{assignment_id}")
async def update_assignment(
    assignment_id: UUID,
    body: AssignmentUpdate,
    current_user: User = Depends(require_admin),
) -> Assignment:
    assignment = await CatalogService().update_assignment(assignment_id, title=body.title, link=body.link)
    if assignment is None:
        raise not_found("Assignment not found")
    return assignment


@router.delete("/assignments/{assignment_id}")
async def delete_assignment(
    assignment_id: UUID,
    current_user: User = Depends(require_admin),
) -> MessageResponse:
    if not await CatalogService().delete_assignment(assignment_id):
        raise not_found("Assignment not found")
    return MessageResponse(message="Assignment deleted")
