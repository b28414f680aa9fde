"""
DevCamper Backend — Course Route Handlers
==========================================

What:  /api/v1/courses and the nested /api/v1/bootcamps/{id}/courses routes.
How:   The flat listing goes through the advanced-results builder (each
       course carries its bootcamp's name and description); the nested
       listing returns every course of one bootcamp without pagination.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from devcamper.database import get_db_session
from devcamper.dependencies import get_current_user
from devcamper.models.user import User
from devcamper.schemas.common import AdvancedResults, ErrorResponse, ListResponse, RecordResponse
from devcamper.schemas.course import CourseCreate, CourseUpdate
from devcamper.services.course_service import course_service

router = APIRouter(prefix="/api/v1", tags=["Courses"])

_NOT_FOUND = {"description": "Course or bootcamp not found", "model": ErrorResponse}
_UNAUTHORIZED = {"description": "Not authorized", "model": ErrorResponse}


@router.get(
    "/courses",
    response_model=AdvancedResults,
    responses={400: {"description": "Malformed filter", "model": ErrorResponse}},
    summary="List courses",
)
async def list_courses(
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> AdvancedResults:
    return await course_service.list_courses(db, request.query_params)


@router.get(
    "/bootcamps/{bootcamp_id}/courses",
    response_model=ListResponse,
    responses={404: _NOT_FOUND},
    summary="List the courses of one bootcamp",
)
async def list_bootcamp_courses(
    bootcamp_id: UUID,
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> ListResponse:
    return await course_service.list_courses(db, request.query_params, bootcamp_id=bootcamp_id)


@router.post(
    "/bootcamps/{bootcamp_id}/courses",
    response_model=RecordResponse,
    status_code=status.HTTP_201_CREATED,
    responses={401: _UNAUTHORIZED, 404: _NOT_FOUND},
    summary="Add a course to a bootcamp",
)
async def create_course(
    bootcamp_id: UUID,
    payload: CourseCreate,
    db: AsyncSession = Depends(get_db_session),
    current_user: User = Depends(get_current_user),
) -> RecordResponse:
    return RecordResponse(data=await course_service.create_course(db, bootcamp_id, payload))


@router.get(
    "/courses/{course_id}",
    response_model=RecordResponse,
    responses={404: _NOT_FOUND},
    summary="Get a single course",
)
async def get_course(
    course_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> RecordResponse:
    return RecordResponse(data=await course_service.get_course(db, course_id))


@router.put(
    "/courses/{course_id}",
    response_model=RecordResponse,
    responses={401: _UNAUTHORIZED, 404: _NOT_FOUND},
    summary="Update a course",
)
async def update_course(
    course_id: UUID,
    payload: CourseUpdate,
    db: AsyncSession = Depends(get_db_session),
    current_user: User = Depends(get_current_user),
) -> RecordResponse:
    return RecordResponse(data=await course_service.update_course(db, course_id, payload))


@router.delete(
    "/courses/{course_id}",
    response_model=RecordResponse,
    responses={401: _UNAUTHORIZED, 404: _NOT_FOUND},
    summary="Delete a course",
)
async def delete_course(
    course_id: UUID,
    db: AsyncSession = Depends(get_db_session),
    current_user: User = Depends(get_current_user),
) -> RecordResponse:
    return RecordResponse(data=await course_service.delete_course(db, course_id))
