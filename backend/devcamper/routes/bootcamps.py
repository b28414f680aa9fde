"""
DevCamper Backend — Bootcamp Route Handlers
============================================

What:  /api/v1/bootcamps CRUD plus radius search.
How:   Thin handlers: pull path/query/body, call BootcampService, wrap the
       result in the standard envelope. Listing forwards the raw query string
       to the advanced-results builder, so any model field can be filtered.

Access:
    GET                          public
    POST / PUT / DELETE          Bearer token or `token` cookie
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from devcamper.database import get_db_session
from devcamper.dependencies import get_current_user
from devcamper.models.user import User
from devcamper.schemas.bootcamp import BootcampCreate, BootcampUpdate
from devcamper.schemas.common import AdvancedResults, ErrorResponse, ListResponse, RecordResponse
from devcamper.services.bootcamp_service import bootcamp_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/bootcamps", tags=["Bootcamps"])


@router.get(
    "",
    response_model=AdvancedResults,
    responses={400: {"description": "Malformed filter", "model": ErrorResponse}},
    summary="List bootcamps",
    description=(
        "Filter with `field=value` or `field[gt|gte|lt|lte|in]=value`, project with "
        "`select=a,b`, order with `sort=a,-b` (default `-created_at`) and paginate "
        "with `page` / `limit` (defaults 1 and 100). Each bootcamp includes its courses."
    ),
)
async def list_bootcamps(
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> AdvancedResults:
    return await bootcamp_service.list_bootcamps(db, request.query_params)


@router.get(
    "/radius/{zipcode}/{distance}",
    response_model=ListResponse,
    responses={503: {"description": "Geocoder unavailable", "model": ErrorResponse}},
    summary="Bootcamps within a distance (miles) of a zipcode",
)
async def get_bootcamps_in_radius(
    zipcode: str = Path(min_length=1, max_length=20),
    distance: float = Path(ge=0, description="Radius in miles"),
    db: AsyncSession = Depends(get_db_session),
) -> ListResponse:
    return await bootcamp_service.get_bootcamps_in_radius(db, zipcode, distance)


@router.get(
    "/{bootcamp_id}",
    response_model=RecordResponse,
    responses={404: {"description": "Bootcamp not found", "model": ErrorResponse}},
    summary="Get a single bootcamp",
)
async def get_bootcamp(
    bootcamp_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> RecordResponse:
    return RecordResponse(data=await bootcamp_service.get_bootcamp(db, bootcamp_id))


@router.post(
    "",
    response_model=RecordResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Duplicate name or address not found", "model": ErrorResponse},
        401: {"description": "Not authorized", "model": ErrorResponse},
        503: {"description": "Geocoder unavailable", "model": ErrorResponse},
    },
    summary="Create a bootcamp",
)
async def create_bootcamp(
    payload: BootcampCreate,
    db: AsyncSession = Depends(get_db_session),
    current_user: User = Depends(get_current_user),
) -> RecordResponse:
    logger.info("User %s creating bootcamp '%s'", current_user.id, payload.name)
    return RecordResponse(data=await bootcamp_service.create_bootcamp(db, payload))


@router.put(
    "/{bootcamp_id}",
    response_model=RecordResponse,
    responses={
        401: {"description": "Not authorized", "model": ErrorResponse},
        404: {"description": "Bootcamp not found", "model": ErrorResponse},
    },
    summary="Update a bootcamp",
)
async def update_bootcamp(
    bootcamp_id: UUID,
    payload: BootcampUpdate,
    db: AsyncSession = Depends(get_db_session),
    current_user: User = Depends(get_current_user),
) -> RecordResponse:
    return RecordResponse(data=await bootcamp_service.update_bootcamp(db, bootcamp_id, payload))


@router.delete(
    "/{bootcamp_id}",
    response_model=RecordResponse,
    responses={
        401: {"description": "Not authorized", "model": ErrorResponse},
        404: {"description": "Bootcamp not found", "model": ErrorResponse},
    },
    summary="Delete a bootcamp and its courses",
)
async def delete_bootcamp(
    bootcamp_id: UUID,
    db: AsyncSession = Depends(get_db_session),
    current_user: User = Depends(get_current_user),
) -> RecordResponse:
    logger.info("User %s deleting bootcamp %s", current_user.id, bootcamp_id)
    return RecordResponse(data=await bootcamp_service.delete_bootcamp(db, bootcamp_id))
