"""
DevCamper Backend — Course Service
===================================

What:  Business logic for courses and the bootcamp `average_cost` they feed.
Who:   Called by routes/courses.py and the nested bootcamp course routes.

Average cost:
    After every create/update/delete the owning bootcamp's average_cost is
    recomputed from its remaining courses: ceil(avg(tuition) / 10) * 10, or
    null once the bootcamp has no courses.
"""

import logging
import math
import uuid
from typing import Any, Dict, Mapping, Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from devcamper.exceptions import DatabaseError, NotFoundError
from devcamper.models.bootcamp import Bootcamp
from devcamper.models.course import Course
from devcamper.schemas.common import AdvancedResults, ListResponse
from devcamper.schemas.course import CourseCreate, CourseUpdate
from devcamper.services.advanced_results import Include, advanced_results
from devcamper.services.bootcamp_service import bootcamp_service
from devcamper.services.collection import (
    SqlCollection,
    apply_changes,
    flush_changes,
    serialize_record,
)

logger = logging.getLogger(__name__)

BOOTCAMP_SUMMARY = Include("bootcamp", ("name", "description"))

_REQUIRED_FIELDS = (
    "title",
    "description",
    "weeks",
    "tuition",
    "minimum_skill",
    "scholarship_available",
)


def round_average_cost(average: Optional[float]) -> Optional[float]:
    """Round an average tuition up to the next multiple of 10."""
    if average is None:
        return None
    return float(math.ceil(average / 10) * 10)


class CourseService:

    async def list_courses(
        self,
        db: AsyncSession,
        params: Mapping[str, Any],
        bootcamp_id: Optional[uuid.UUID] = None,
    ):
        """
        Without a bootcamp: paginated advanced results, each course carrying
        its bootcamp's name and description.

        With a bootcamp: every course of that bootcamp, unpaginated.

        Returns:
            AdvancedResults, or ListResponse when `bootcamp_id` is given.
        """
        if bootcamp_id is None:
            return await advanced_results(
                SqlCollection(db, Course), params, populate=BOOTCAMP_SUMMARY
            )

        await bootcamp_service.get_or_404(db, bootcamp_id)
        try:
            result = await db.execute(
                select(Course)
                .where(Course.bootcamp_id == bootcamp_id)
                .order_by(Course.created_at.desc())
            )
            courses = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error("Database error listing courses of %s: %s", bootcamp_id, str(e))
            raise DatabaseError(
                message="Could not retrieve courses. Please try again.",
                context={"bootcamp_id": str(bootcamp_id)},
            )
        data = [serialize_record(course) for course in courses]
        return ListResponse(success=True, count=len(data), data=data)

    async def get_or_404(self, db: AsyncSession, course_id: uuid.UUID) -> Course:
        try:
            result = await db.execute(
                select(Course)
                .where(Course.id == course_id)
                .options(selectinload(Course.bootcamp))
            )
            course = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error fetching course %s: %s", course_id, str(e))
            raise DatabaseError(
                message="Could not retrieve the course. Please try again.",
                context={"course_id": str(course_id)},
            )
        if course is None:
            raise NotFoundError(resource="Course", resource_id=str(course_id))
        return course

    async def get_course(self, db: AsyncSession, course_id: uuid.UUID) -> Dict[str, Any]:
        course = await self.get_or_404(db, course_id)
        return serialize_record(course, includes=(BOOTCAMP_SUMMARY,))

    async def create_course(
        self,
        db: AsyncSession,
        bootcamp_id: uuid.UUID,
        payload: CourseCreate,
    ) -> Dict[str, Any]:
        await bootcamp_service.get_or_404(db, bootcamp_id)

        course = Course(**payload.model_dump(), bootcamp_id=bootcamp_id)
        db.add(course)
        await flush_changes(db, Course.__tablename__)
        await self.recompute_average_cost(db, bootcamp_id)

        logger.info("Course created: %s (bootcamp %s)", course.id, bootcamp_id)
        return serialize_record(course)

    async def update_course(
        self,
        db: AsyncSession,
        course_id: uuid.UUID,
        payload: CourseUpdate,
    ) -> Dict[str, Any]:
        course = await self.get_or_404(db, course_id)
        changed = apply_changes(
            course, payload.model_dump(exclude_unset=True), required=_REQUIRED_FIELDS
        )
        await flush_changes(db, Course.__tablename__)
        if "tuition" in changed:
            await self.recompute_average_cost(db, course.bootcamp_id)

        logger.info("Course %s updated: %s", course.id, ", ".join(changed) or "no changes")
        return serialize_record(course)

    async def delete_course(self, db: AsyncSession, course_id: uuid.UUID) -> Dict[str, Any]:
        course = await self.get_or_404(db, course_id)
        bootcamp_id = course.bootcamp_id
        await db.delete(course)
        await flush_changes(db, Course.__tablename__)
        await self.recompute_average_cost(db, bootcamp_id)

        logger.info("Course %s deleted (bootcamp %s)", course_id, bootcamp_id)
        return {}

    async def recompute_average_cost(
        self, db: AsyncSession, bootcamp_id: uuid.UUID
    ) -> Optional[float]:
        """Write the rounded average tuition of the bootcamp's courses back to it."""
        try:
            result = await db.execute(
                select(func.avg(Course.tuition)).where(Course.bootcamp_id == bootcamp_id)
            )
            average_cost = round_average_cost(result.scalar())
            await db.execute(
                update(Bootcamp)
                .where(Bootcamp.id == bootcamp_id)
                .values(average_cost=average_cost)
                .execution_options(synchronize_session="fetch")
            )
        except SQLAlchemyError as e:
            logger.error("Could not recompute average cost for %s: %s", bootcamp_id, str(e))
            raise DatabaseError(
                message="Could not update the bootcamp's average cost.",
                context={"bootcamp_id": str(bootcamp_id)},
            )
        logger.debug("Bootcamp %s average_cost → %s", bootcamp_id, average_cost)
        return average_cost


course_service = CourseService()
