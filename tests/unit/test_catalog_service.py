"""Unit tests for CatalogService with a mocked asyncpg pool."""

from datetime import datetime, timezone
from uuid import uuid4
from unittest.mock import AsyncMock, patch

import asyncpg
import pytest

from procoin.errors import CourseNotFoundError, DuplicateCourseCodeError
from procoin.services.catalog_service import CatalogService, _build_set_clause


@pytest.fixture
def patched_pool(mock_pool):
    pool, conn = mock_pool
    with patch("procoin.services.catalog_service.get_pool", AsyncMock(return_value=pool)):
        yield conn


def _course_row(lesson_ids=(), assignment_ids=(), **overrides):
    row = {
        "id": uuid4(),
        "name": "Bitcoin 101",
        "code": "BTC101",
        "lesson_ids": list(lesson_ids),
        "assignment_ids": list(assignment_ids),
        "created_by": None,
        "created_at": datetime.now(timezone.utc),
    }
    row.update(overrides)
    return row


def _lesson_row(lesson_id, course_id, title="Lesson"):
    return {"id": lesson_id, "title": title, "youtube_link": "https://youtu.be/x", "course_id": course_id}


def test_build_set_clause_skips_none():
    clause, params = _build_set_clause({"name": None, "code": "NEW", "title": "T"})

    assert clause == "code = $1, title = $2"
    assert params == ["NEW", "T"]


def test_build_set_clause_empty():
    assert _build_set_clause({"name": None}) == ("", [])


class TestCourses:

    @pytest.mark.asyncio
    async def test_create_course_starts_empty(self, patched_pool):
        owner = uuid4()

        course = await CatalogService().create_course("Bitcoin 101", "BTC101", created_by=owner)

        assert course.created_by == owner
        assert course.lessons == [] and course.assignments == []
        args = patched_pool.execute.call_args[0]
        assert "INSERT INTO courses" in args[0]
        assert args[2:5] == ("Bitcoin 101", "BTC101", owner)

    @pytest.mark.asyncio
    async def test_create_course_duplicate_code(self, patched_pool):
        patched_pool.execute.side_effect = asyncpg.UniqueViolationError("duplicate key")

        with pytest.raises(DuplicateCourseCodeError):
            await CatalogService().create_course("Again", "BTC101", created_by=uuid4())

    @pytest.mark.asyncio
    async def test_update_without_fields_reads_course(self, patched_pool):
        row = _course_row()
        patched_pool.fetchrow.return_value = row

        course = await CatalogService().update_course(row["id"])

        assert course.id == row["id"]
        assert patched_pool.fetchrow.call_args[0][0].lstrip().startswith("SELECT")

    @pytest.mark.asyncio
    async def test_update_missing_course(self, patched_pool):
        patched_pool.fetchrow.return_value = None

        assert await CatalogService().update_course(uuid4(), name="X") is None

    @pytest.mark.asyncio
    async def test_delete_course_leaves_children(self, patched_pool):
        patched_pool.execute.return_value = "DELETE 1"

        assert await CatalogService().delete_course(uuid4()) is True
        assert patched_pool.execute.call_count == 1
        assert "DELETE FROM courses" in patched_pool.execute.call_args[0][0]

    @pytest.mark.asyncio
    async def test_delete_missing_course(self, patched_pool):
        patched_pool.execute.return_value = "DELETE 0"

        assert await CatalogService().delete_course(uuid4()) is False


class TestCreateChild:

    @pytest.mark.asyncio
    async def test_lesson_appended_exactly_once_in_transaction(self, patched_pool):
        course_id = uuid4()
        patched_pool.execute.return_value = "UPDATE 1"
        patched_pool.fetchrow.side_effect = lambda sql, *args: _lesson_row(args[0], args[3], args[1])

        lesson = await CatalogService().create_lesson(course_id, "Keys", "https://youtu.be/k")

        patched_pool.transaction.assert_called_once()
        patched_pool.execute.assert_awaited_once()
        sql, child_id, parent_id = patched_pool.execute.call_args[0]
        assert "array_append(lesson_ids" in sql
        assert child_id == lesson.id
        assert parent_id == course_id
        assert lesson.course == course_id
        assert lesson.title == "Keys"

    @pytest.mark.asyncio
    async def test_assignment_uses_assignment_list(self, patched_pool):
        course_id = uuid4()
        patched_pool.execute.return_value = "UPDATE 1"
        patched_pool.fetchrow.side_effect = lambda sql, *args: {
            "id": args[0], "title": args[1], "link": args[2], "course_id": args[3],
        }

        assignment = await CatalogService().create_assignment(course_id, "Quiz", "https://example.com/q")

        assert "array_append(assignment_ids" in patched_pool.execute.call_args[0][0]
        assert "INSERT INTO assignments" in patched_pool.fetchrow.call_args[0][0]
        assert assignment.link == "https://example.com/q"

    @pytest.mark.asyncio
    async def test_missing_course_writes_no_child(self, patched_pool):
        patched_pool.execute.return_value = "UPDATE 0"

        with pytest.raises(CourseNotFoundError):
            await CatalogService().create_lesson(uuid4(), "Keys", "https://youtu.be/k")

        patched_pool.fetchrow.assert_not_called()


class TestChildUpdateDelete:

    @pytest.mark.asyncio
    async def test_update_lesson(self, patched_pool):
        lesson_id, course_id = uuid4(), uuid4()
        patched_pool.fetchrow.return_value = _lesson_row(lesson_id, course_id, "Renamed")

        lesson = await CatalogService().update_lesson(lesson_id, title="Renamed")

        sql, *params = patched_pool.fetchrow.call_args[0]
        assert sql.startswith("UPDATE lessons SET title = $1 WHERE id = $2")
        assert params == ["Renamed", lesson_id]
        assert lesson.title == "Renamed"

    @pytest.mark.asyncio
    async def test_update_missing_assignment(self, patched_pool):
        patched_pool.fetchrow.return_value = None

        assert await CatalogService().update_assignment(uuid4(), link="https://x") is None

    @pytest.mark.asyncio
    async def test_delete_lesson_does_not_touch_course(self, patched_pool):
        patched_pool.execute.return_value = "DELETE 1"

        assert await CatalogService().delete_lesson(uuid4()) is True
        assert patched_pool.execute.call_count == 1
        assert "courses" not in patched_pool.execute.call_args[0][0]


class TestPopulate:

    @pytest.mark.asyncio
    async def test_children_follow_reference_order_and_skip_dangling(self, patched_pool):
        first, second, dangling = uuid4(), uuid4(), uuid4()
        row = _course_row(lesson_ids=[second, dangling, first])
        patched_pool.fetchrow.return_value = row
        # rows come back from the database in arbitrary order
        patched_pool.fetch.return_value = [
            _lesson_row(first, row["id"], "First"),
            _lesson_row(second, row["id"], "Second"),
        ]

        course = await CatalogService().get_course(row["id"])

        assert [lesson.title for lesson in course.lessons] == ["Second", "First"]
        assert course.assignments == []
        # no assignment ids means no assignment query
        patched_pool.fetch.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_get_missing_course(self, patched_pool):
        patched_pool.fetchrow.return_value = None

        assert await CatalogService().get_course(uuid4()) is None

    @pytest.mark.asyncio
    async def test_list_courses_batches_child_queries(self, patched_pool):
        a, b = uuid4(), uuid4()
        rows = [_course_row(lesson_ids=[a], code="A"), _course_row(lesson_ids=[b], code="B")]

        async def fetch(sql, *args):
            if sql.startswith("SELECT id, name"):
                return rows
            return [_lesson_row(a, rows[0]["id"]), _lesson_row(b, rows[1]["id"])]

        patched_pool.fetch.side_effect = fetch

        courses = await CatalogService().list_courses()

        assert [c.code for c in courses] == ["A", "B"]
        assert [c.lessons[0].id for c in courses] == [a, b]
        assert patched_pool.fetch.await_count == 2
