"""Course catalog persistence: courses, lessons and assignments."""

from datetime import datetime, timezone
from typing import Any, Optional
from uuid import UUID, uuid4

import asyncpg
import structlog

from procoin.database import get_pool
from procoin.errors import CourseNotFoundError, DuplicateCourseCodeError
from procoin.models.catalog import Assignment, Course, Lesson

logger = structlog.get_logger(__name__)

_COURSE_COLUMNS = "id, name, code, lesson_ids, assignment_ids, created_by, created_at"


def _row_to_lesson(row) -> Lesson:
    return Lesson(
        id=row["id"],
        title=row["title"],
        youtube_link=row["youtube_link"],
        course=row["course_id"],
    )


def _row_to_assignment(row) -> Assignment:
    return Assignment(
        id=row["id"],
        title=row["title"],
        link=row["link"],
        course=row["course_id"],
    )


# kind -> (child table, parent array column, child columns, row converter)
_CHILDREN = {
    "lesson": ("lessons", "lesson_ids", ("title", "youtube_link"), _row_to_lesson),
    "assignment": ("assignments", "assignment_ids", ("title", "link"), _row_to_assignment),
}


def _build_set_clause(fields: dict[str, Any]) -> tuple[str, list]:
    """Build a SET clause for the non-None entries of ``fields``.

    Column names come from code, never from request input.

    Returns:
        (clause, params) where placeholders start at $1
    """
    set_clauses = []
    params = []
    for column, value in fields.items():
        if value is None:
            continue
        params.append(value)
        set_clauses.append(f"{column} = ${len(params)}")
    return ", ".join(set_clauses), params


class CatalogService:
    """Service for course, lesson and assignment CRUD."""

    # -- courses ----------------------------------------------------------

    async def create_course(self, name: str, code: str, created_by: UUID) -> Course:
        """Create an empty course owned by ``created_by``.

        Raises:
            DuplicateCourseCodeError: If the code is already taken
        """
        course_id = uuid4()
        now = datetime.now(timezone.utc)

        pool = await get_pool()

        async with pool.acquire() as conn:
            try:
                await conn.execute(
                    """
                    INSERT INTO courses (id, name, code, lesson_ids, assignment_ids, created_by, created_at)
                    VALUES ($1, $2, $3, '{}', '{}', $4, $5)
                    """,
                    course_id,
                    name,
                    code,
                    created_by,
                    now,
                )
            except asyncpg.UniqueViolationError:
                raise DuplicateCourseCodeError(code)

        logger.info("course_created", course_id=str(course_id), code=code, created_by=str(created_by))

        return Course(id=course_id, name=name, code=code, created_by=created_by, created_at=now)

    async def list_courses(self) -> list[Course]:
        """Return all courses with lessons and assignments populated."""
        pool = await get_pool()

        async with pool.acquire() as conn:
            rows = await conn.fetch(f"SELECT {_COURSE_COLUMNS} FROM courses ORDER BY created_at ASC")
            return await self._populate(conn, rows)

    async def get_course(self, course_id: UUID) -> Optional[Course]:
        pool = await get_pool()

        async with pool.acquire() as conn:
            row = await conn.fetchrow(f"SELECT {_COURSE_COLUMNS} FROM courses WHERE id = $1", course_id)
            if row is None:
                return None
            courses = await self._populate(conn, [row])

        return courses[0]

    async def update_course(
        self,
        course_id: UUID,
        name: Optional[str] = None,
        code: Optional[str] = None,
    ) -> Optional[Course]:
        """Update the provided course fields.

        Returns:
            The updated, populated course, or None if it does not exist

        Raises:
            DuplicateCourseCodeError: If the new code is already taken
        """
        set_clause, params = _build_set_clause({"name": name, "code": code})
        if not set_clause:
            return await self.get_course(course_id)

        params.append(course_id)
        pool = await get_pool()

        async with pool.acquire() as conn:
            try:
                row = await conn.fetchrow(
                    f"UPDATE courses SET {set_clause} WHERE id = ${len(params)} RETURNING {_COURSE_COLUMNS}",
                    *params,
                )
            except asyncpg.UniqueViolationError:
                raise DuplicateCourseCodeError(code)
            if row is None:
                return None
            courses = await self._populate(conn, [row])

        logger.info("course_updated", course_id=str(course_id))
        return courses[0]

    async def delete_course(self, course_id: UUID) -> bool:
        """Delete a course row.

        Lessons and assignments that point at it are left in place.
        """
        pool = await get_pool()

        async with pool.acquire() as conn:
            result = await conn.execute("DELETE FROM courses WHERE id = $1", course_id)

        deleted = result == "DELETE 1"
        if deleted:
            logger.info("course_deleted", course_id=str(course_id))
        return deleted

    # -- lessons ----------------------------------------------------------

    async def create_lesson(self, course_id: UUID, title: str, youtube_link: str) -> Lesson:
        return await self._create_child("lesson", course_id, (title, youtube_link))

    async def update_lesson(
        self,
        lesson_id: UUID,
        title: Optional[str] = None,
        youtube_link: Optional[str] = None,
    ) -> Optional[Lesson]:
        return await self._update_child("lesson", lesson_id, {"title": title, "youtube_link": youtube_link})

    async def delete_lesson(self, lesson_id: UUID) -> bool:
        return await self._delete_child("lesson", lesson_id)

    # -- assignments ------------------------------------------------------

    async def create_assignment(self, course_id: UUID, title: str, link: str) -> Assignment:
        return await self._create_child("assignment", course_id, (title, link))

    async def update_assignment(
        self,
        assignment_id: UUID,
        title: Optional[str] = None,
        link: Optional[str] = None,
    ) -> Optional[Assignment]:
        return await self._update_child("assignment", assignment_id, {"title": title, "link": link})

    async def delete_assignment(self, assignment_id: UUID) -> bool:
        return await self._delete_child("assignment", assignment_id)

    # -- shared child handling ---------------------------------------------

    async def _create_child(self, kind: str, course_id: UUID, values: tuple):
        """Insert a child row and append its id to the parent course.

        Both writes share one transaction: either the child exists and is
        referenced exactly once by its course, or nothing was written.

        Raises:
            CourseNotFoundError: If the parent course does not exist
        """
        table, array_column, columns, convert = _CHILDREN[kind]
        child_id = uuid4()
        now = datetime.now(timezone.utc)

        pool = await get_pool()

        async with pool.acquire() as conn:
            async with conn.transaction():
                result = await conn.execute(
                    f"UPDATE courses SET {array_column} = array_append({array_column}, $1) WHERE id = $2",
                    child_id,
                    course_id,
                )
                if result != "UPDATE 1":
                    raise CourseNotFoundError(str(course_id))

                row = await conn.fetchrow(
                    f"""
                    INSERT INTO {table} (id, {columns[0]}, {columns[1]}, course_id, created_at)
                    VALUES ($1, $2, $3, $4, $5)
                    RETURNING id, {columns[0]}, {columns[1]}, course_id
                    """,
                    child_id,
                    values[0],
                    values[1],
                    course_id,
                    now,
                )

        logger.info(f"{kind}_created", **{f"{kind}_id": str(child_id)}, course_id=str(course_id))
        return convert(row)

    async def _update_child(self, kind: str, child_id: UUID, fields: dict[str, Any]):
        table, _, columns, convert = _CHILDREN[kind]
        returning = f"id, {columns[0]}, {columns[1]}, course_id"
        set_clause, params = _build_set_clause(fields)

        pool = await get_pool()

        async with pool.acquire() as conn:
            if not set_clause:
                row = await conn.fetchrow(f"SELECT {returning} FROM {table} WHERE id = $1", child_id)
            else:
                params.append(child_id)
                row = await conn.fetchrow(
                    f"UPDATE {table} SET {set_clause} WHERE id = ${len(params)} RETURNING {returning}",
                    *params,
                )

        return convert(row) if row is not None else None

    async def _delete_child(self, kind: str, child_id: UUID) -> bool:
        """Delete a child row; the parent's reference list is left untouched."""
        table = _CHILDREN[kind][0]
        pool = await get_pool()

        async with pool.acquire() as conn:
            result = await conn.execute(f"DELETE FROM {table} WHERE id = $1", child_id)

        deleted = result == "DELETE 1"
        if deleted:
            logger.info(f"{kind}_deleted", **{f"{kind}_id": str(child_id)})
        return deleted

    async def _populate(self, conn, rows) -> list[Course]:
        """Resolve lesson and assignment ids for a batch of course rows."""
        lesson_ids = [i for row in rows for i in (row["lesson_ids"] or [])]
        assignment_ids = [i for row in rows for i in (row["assignment_ids"] or [])]

        lessons: dict[UUID, Lesson] = {}
        assignments: dict[UUID, Assignment] = {}

        if lesson_ids:
            for child in await conn.fetch(
                "SELECT id, title, youtube_link, course_id FROM lessons WHERE id = ANY($1::uuid[])",
                lesson_ids,
            ):
                lessons[child["id"]] = _row_to_lesson(child)

        if assignment_ids:
            for child in await conn.fetch(
                "SELECT id, title, link, course_id FROM assignments WHERE id = ANY($1::uuid[])",
                assignment_ids,
            ):
                assignments[child["id"]] = _row_to_assignment(child)

        return [
            Course(
                id=row["id"],
                name=row["name"],
                code=row["code"],
                created_by=row["created_by"],
                created_at=row["created_at"],
                lessons=[lessons[i] for i in (row["lesson_ids"] or []) if i in lessons],
                assignments=[assignments[i] for i in (row["assignment_ids"] or []) if i in assignments],
            )
            for row in rows
        ]
