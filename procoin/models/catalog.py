"""Course catalog models."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import Field

from procoin.models.base import CamelModel


class Lesson(CamelModel):
    """A video lesson belonging to a course."""

    id: UUID
    title: str
    youtube_link: str
    course: UUID


class Assignment(CamelModel):
    """An assignment link belonging to a course."""

    id: UUID
    title: str
    link: str
    course: UUID


class Course(CamelModel):
    """A course with its lessons and assignments resolved inline.

    ``lessons`` and ``assignments`` follow the order of the course's
    reference lists. Ids whose rows no longer exist are skipped.
    """

    id: UUID
    name: str
    code: str
    created_by: Optional[UUID] = None
    created_at: datetime
    lessons: list[Lesson] = Field(default_factory=list)
    assignments: list[Assignment] = Field(default_factory=list)


class CourseCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    code: str = Field(..., min_length=1, max_length=64)


class CourseUpdate(CamelModel):
    """Partial course update; only provided fields change."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    code: Optional[str] = Field(default=None, min_length=1, max_length=64)


class LessonCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=255)
    youtube_link: str = Field(..., min_length=1)


class LessonUpdate(CamelModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    youtube_link: Optional[str] = Field(default=None, min_length=1)


class AssignmentCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=255)
    link: str = Field(..., min_length=1)


class AssignmentUpdate(CamelModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    link: Optional[str] = Field(default=None, min_length=1)


class MessageResponse(CamelModel):
    message: str
