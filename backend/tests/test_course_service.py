"""
DevCamper Backend — Course Service Unit Tests
==============================================

What:  Tests for CourseService and the bootcamp average_cost it maintains.
How:   Mock DB session; bootcamp lookups are patched on the shared
       bootcamp_service instance.
"""

from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest

from devcamper.exceptions import NotFoundError
from devcamper.models.bootcamp import Bootcamp
from devcamper.models.course import Course
from devcamper.schemas.course import CourseCreate, CourseUpdate
from devcamper.services.bootcamp_service import bootcamp_service
from devcamper.services.course_service import (
    BOOTCAMP_SUMMARY,
    CourseService,
    round_average_cost,
)


def make_course(**overrides) -> Course:
    values = {
        "id": uuid4(),
        "title": "Front End Web Development",
        "description": "HTML, CSS and JavaScript",
        "weeks": "8",
        "tuition": 8000.0,
        "minimum_skill": "beginner",
        "scholarship_available": True,
        "bootcamp_id": uuid4(),
    }
    values.update(overrides)
    return Course(**values)


def average_result(mock_db_session, value):
    result = MagicMock()
    result.scalar.return_value = value
    mock_db_session.execute.return_value = result


@pytest.mark.parametrize(
    "average,expected",
    [(10000, 10000.0), (12345.6, 12350.0), (0.5, 10.0), (0, 0.0), (None, None)],
)
def test_round_average_cost(average, expected):
    assert round_average_cost(average) == expected


class TestListCourses:

    def setup_method(self):
        self.service = CourseService()

    @pytest.mark.asyncio
    async def test_all_courses_use_advanced_results(self, mock_db_session):
        sentinel = object()
        with patch(
            "devcamper.services.course_service.advanced_results",
            AsyncMock(return_value=sentinel),
        ) as mock_results:
            result = await self.service.list_courses(mock_db_session, {"page": "2"})

        assert result is sentinel
        args, kwargs = mock_results.await_args
        assert args[1] == {"page": "2"}
        assert kwargs["populate"] == BOOTCAMP_SUMMARY

    @pytest.mark.asyncio
    async def test_courses_of_one_bootcamp(self, mock_db_session):
        bootcamp_id = uuid4()
        course = make_course(bootcamp_id=bootcamp_id)
        result = MagicMock()
        result.scalars.return_value.all.return_value = [course]
        mock_db_session.execute.return_value = result

        with patch.object(bootcamp_service, "get_or_404", AsyncMock()):
            response = await self.service.list_courses(mock_db_session, {}, bootcamp_id)

        assert response.count == 1
        assert response.data[0]["title"] == "Front End Web Development"
        assert "pagination" not in response.model_dump()

    @pytest.mark.asyncio
    async def test_unknown_bootcamp(self, mock_db_session):
        missing = uuid4()
        with patch.object(
            bootcamp_service,
            "get_or_404",
            AsyncMock(side_effect=NotFoundError("Bootcamp", str(missing))),
        ):
            with pytest.raises(NotFoundError):
                await self.service.list_courses(mock_db_session, {}, missing)

        mock_db_session.execute.assert_not_called()


class TestGetCourse:

    @pytest.mark.asyncio
    async def test_includes_bootcamp_summary(self, mock_db_session):
        bootcamp = Bootcamp(id=uuid4(), name="Devworks", description="Full stack", city="Boston")
        course = make_course(bootcamp_id=bootcamp.id, bootcamp=bootcamp)
        result = MagicMock()
        result.scalar_one_or_none.return_value = course
        mock_db_session.execute.return_value = result

        data = await CourseService().get_course(mock_db_session, course.id)

        assert data["bootcamp"] == {
            "id": bootcamp.id,
            "name": "Devworks",
            "description": "Full stack",
        }

    @pytest.mark.asyncio
    async def test_not_found(self, mock_db_session):
        result = MagicMock()
        result.scalar_one_or_none.return_value = None
        mock_db_session.execute.return_value = result
        missing = uuid4()

        with pytest.raises(NotFoundError, match=f"Course not found with id of {missing}"):
            await CourseService().get_course(mock_db_session, missing)


class TestAverageCost:

    @pytest.mark.asyncio
    async def test_recompute_writes_rounded_average(self, mock_db_session):
        average_result(mock_db_session, 12345.0)
        bootcamp_id = uuid4()

        value = await CourseService().recompute_average_cost(mock_db_session, bootcamp_id)

        assert value == 12350.0
        assert mock_db_session.execute.await_count == 2
        update_statement = mock_db_session.execute.await_args_list[1].args[0]
        assert str(update_statement).startswith("UPDATE bootcamps SET average_cost")

    @pytest.mark.asyncio
    async def test_no_courses_clears_average(self, mock_db_session):
        average_result(mock_db_session, None)

        assert await CourseService().recompute_average_cost(mock_db_session, uuid4()) is None


class TestCourseWrites:

    def setup_method(self):
        self.service = CourseService()

    @pytest.mark.asyncio
    async def test_create_attaches_bootcamp_and_recomputes(self, mock_db_session):
        bootcamp_id = uuid4()
        average_result(mock_db_session, 8000.0)
        payload = CourseCreate(
            title="Full Stack",
            description="MERN",
            weeks="12",
            tuition=8000,
            minimum_skill="intermediate",
        )

        with patch.object(bootcamp_service, "get_or_404", AsyncMock()) as mock_lookup:
            data = await self.service.create_course(mock_db_session, bootcamp_id, payload)

        mock_lookup.assert_awaited_once_with(mock_db_session, bootcamp_id)
        added = mock_db_session.add.call_args.args[0]
        assert added.bootcamp_id == bootcamp_id
        assert data["scholarship_available"] is False
        assert mock_db_session.execute.await_count == 2

    @pytest.mark.asyncio
    async def test_create_for_unknown_bootcamp(self, mock_db_session):
        payload = CourseCreate(
            title="Full Stack",
            description="MERN",
            weeks="12",
            tuition=8000,
            minimum_skill="advanced",
        )
        with patch.object(
            bootcamp_service, "get_or_404", AsyncMock(side_effect=NotFoundError("Bootcamp"))
        ):
            with pytest.raises(NotFoundError):
                await self.service.create_course(mock_db_session, uuid4(), payload)

        mock_db_session.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_tuition_change_recomputes(self, mock_db_session):
        course = make_course()
        average_result(mock_db_session, 9000.0)

        with patch.object(self.service, "get_or_404", AsyncMock(return_value=course)):
            data = await self.service.update_course(
                mock_db_session, course.id, CourseUpdate(tuition=9000)
            )

        assert data["tuition"] == 9000.0
        assert mock_db_session.execute.await_count == 2

    @pytest.mark.asyncio
    async def test_title_change_does_not_recompute(self, mock_db_session):
        course = make_course()

        with patch.object(self.service, "get_or_404", AsyncMock(return_value=course)):
            data = await self.service.update_course(
                mock_db_session, course.id, CourseUpdate(title="Renamed")
            )

        assert data["title"] == "Renamed"
        mock_db_session.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_delete_recomputes_owner(self, mock_db_session):
        course = make_course()
        average_result(mock_db_session, None)

        with patch.object(self.service, "get_or_404", AsyncMock(return_value=course)):
            data = await self.service.delete_course(mock_db_session, course.id)

        assert data == {}
        mock_db_session.delete.assert_awaited_once_with(course)
        avg_statement = mock_db_session.execute.await_args_list[0].args[0]
        assert "avg(courses.tuition)" in str(avg_statement)
