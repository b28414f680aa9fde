"""
DevCamper Backend — Bootcamp Service
=====================================

What:  Business logic for bootcamps: listing, lookup, create/update with
       geocoding, delete with its courses, and radius search.
Who:   Called by routes/bootcamps.py; calls the geocoder, the advanced-results
       builder and the database layer.

Side effects are explicit calls made here rather than ORM lifecycle hooks:
    create  → slug from name, geocode address
    update  → re-slug when the name changes, re-geocode when an address is sent
    delete  → delete the bootcamp's courses, then the bootcamp

Radius search:
    The central angle between two points is compared against
    distance / 3963 (Earth radius in miles), using the haversine formula in
    SQL so filtering happens in the database.
"""

import logging
import uuid
from typing import Any, Dict, Mapping, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from devcamper.exceptions import DatabaseError, NotFoundError, ValidationError
from devcamper.models.bootcamp import Bootcamp
from devcamper.models.course import Course
from devcamper.schemas.bootcamp import BootcampCreate, BootcampUpdate
from devcamper.schemas.common import AdvancedResults, ListResponse
from devcamper.services.advanced_results import advanced_results
from devcamper.services.collection import (
    SqlCollection,
    apply_changes,
    flush_changes,
    serialize_record,
)
from devcamper.services.geocoder_base import GeoLocation
from devcamper.services.geocoder_service import geocoder_service

logger = logging.getLogger(__name__)

EARTH_RADIUS_MILES = 3963

# Columns a partial update may not set to null
_REQUIRED_FIELDS = (
    "name",
    "description",
    "careers",
    "photo",
    "housing",
    "job_assistance",
    "job_guarantee",
    "accept_gi",
)


def slugify(value: str) -> str:
    """`"Devworks Bootcamp!"` → `"devworks-bootcamp"`."""
    out = []
    prev_dash = False
    for ch in value.strip().lower():
        if ch.isascii() and ch.isalnum():
            out.append(ch)
            prev_dash = False
        elif not prev_dash:
            out.append("-")
            prev_dash = True
    return "".join(out).strip("-")


def apply_location(bootcamp: Bootcamp, location: GeoLocation) -> None:
    """Store a geocoder result as a flattened GeoJSON point."""
    bootcamp.location_type = "Point"
    bootcamp.longitude = location.longitude
    bootcamp.latitude = location.latitude
    bootcamp.formatted_address = location.formatted_address
    bootcamp.street = location.street
    bootcamp.city = location.city
    bootcamp.state = location.state
    bootcamp.zipcode = location.zipcode
    bootcamp.country = location.country


def central_angle(latitude: float, longitude: float):
    """SQL expression: great-circle angle (radians) from a point to each bootcamp."""
    lat1 = func.radians(latitude)
    lat2 = func.radians(Bootcamp.latitude)
    d_lat = func.radians(Bootcamp.latitude - latitude)
    d_lng = func.radians(Bootcamp.longitude - longitude)
    a = func.power(func.sin(d_lat / 2), 2) + func.cos(lat1) * func.cos(lat2) * func.power(
        func.sin(d_lng / 2), 2
    )
    return 2 * func.asin(func.sqrt(func.least(1.0, a)))


class BootcampService:
    """
    Stateless; every method receives the request's session.

    Error Handling Strategy:
        Missing records → NotFoundError (404)
        Unique name clash → ValidationError "Duplicate field value entered" (400)
        Geocoder failures propagate as GeocoderError / CircuitBreakerOpenError (503)
        Other driver failures → DatabaseError (500)
    """

    async def list_bootcamps(
        self, db: AsyncSession, params: Mapping[str, Any]
    ) -> AdvancedResults:
        return await advanced_results(SqlCollection(db, Bootcamp), params, populate="courses")

    async def get_or_404(self, db: AsyncSession, bootcamp_id: uuid.UUID) -> Bootcamp:
        try:
            result = await db.execute(select(Bootcamp).where(Bootcamp.id == bootcamp_id))
            bootcamp = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error fetching bootcamp %s: %s", bootcamp_id, str(e))
            raise DatabaseError(
                message="Could not retrieve the bootcamp. Please try again.",
                context={"bootcamp_id": str(bootcamp_id)},
            )
        if bootcamp is None:
            raise NotFoundError(resource="Bootcamp", resource_id=str(bootcamp_id))
        return bootcamp

    async def get_bootcamp(self, db: AsyncSession, bootcamp_id: uuid.UUID) -> Dict[str, Any]:
        return serialize_record(await self.get_or_404(db, bootcamp_id))

    async def create_bootcamp(self, db: AsyncSession, payload: BootcampCreate) -> Dict[str, Any]:
        """
        Insert a bootcamp after slugging its name and geocoding its address.

        Geocoding happens before the insert, so an unreachable provider
        leaves nothing behind.
        """
        location = await geocoder_service.geocode(payload.address)

        data = payload.model_dump(exclude={"address"}, exclude_none=True)
        bootcamp = Bootcamp(**data)
        bootcamp.slug = slugify(payload.name)
        apply_location(bootcamp, location)

        db.add(bootcamp)
        await flush_changes(db, Bootcamp.__tablename__)
        logger.info("Bootcamp created: %s (%s)", bootcamp.id, bootcamp.slug)
        return serialize_record(bootcamp)

    async def update_bootcamp(
        self,
        db: AsyncSession,
        bootcamp_id: uuid.UUID,
        payload: BootcampUpdate,
    ) -> Dict[str, Any]:
        bootcamp = await self.get_or_404(db, bootcamp_id)

        changes = payload.model_dump(exclude_unset=True)
        address: Optional[str] = changes.pop("address", None)
        changed = apply_changes(bootcamp, changes, required=_REQUIRED_FIELDS)

        if "name" in changed:
            bootcamp.slug = slugify(bootcamp.name)
        if address:
            apply_location(bootcamp, await geocoder_service.geocode(address))
            changed.append("location")

        await flush_changes(db, Bootcamp.__tablename__)
        logger.info("Bootcamp %s updated: %s", bootcamp.id, ", ".join(changed) or "no changes")
        return serialize_record(bootcamp)

    async def delete_bootcamp(self, db: AsyncSession, bootcamp_id: uuid.UUID) -> Dict[str, Any]:
        """Delete the bootcamp's courses, then the bootcamp itself."""
        bootcamp = await self.get_or_404(db, bootcamp_id)
        try:
            result = await db.execute(delete(Course).where(Course.bootcamp_id == bootcamp.id))
            await db.delete(bootcamp)
        except SQLAlchemyError as e:
            logger.error("Database error deleting bootcamp %s: %s", bootcamp_id, str(e))
            raise DatabaseError(
                message="Could not delete the bootcamp. Please try again.",
                context={"bootcamp_id": str(bootcamp_id)},
            )
        await flush_changes(db, Bootcamp.__tablename__)
        logger.info(
            "Bootcamp %s deleted with %d course(s)", bootcamp_id, result.rowcount or 0
        )
        return {}

    async def get_bootcamps_in_radius(
        self,
        db: AsyncSession,
        zipcode: str,
        distance: float,
    ) -> ListResponse:
        """
        Bootcamps within `distance` miles of `zipcode`, nearest first.

        Raises:
            ValidationError: Negative distance, or a zipcode the geocoder
                cannot resolve (→ 400).
        """
        if distance < 0:
            raise ValidationError(message="Distance must not be negative", field="distance")

        location = await geocoder_service.geocode(zipcode)
        radius = distance / EARTH_RADIUS_MILES
        angle = central_angle(location.latitude, location.longitude)

        stmt = (
            select(Bootcamp)
            .where(Bootcamp.latitude.is_not(None), Bootcamp.longitude.is_not(None))
            .where(angle <= radius)
            .order_by(angle)
        )
        try:
            result = await db.execute(stmt)
            bootcamps = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error("Radius query failed: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not retrieve bootcamps. Please try again.",
                context={"error_type": type(e).__name__},
            )

        logger.info(
            "Radius search %s / %.1f mi → %d bootcamp(s)", zipcode, distance, len(bootcamps)
        )
        data = [serialize_record(bootcamp) for bootcamp in bootcamps]
        return ListResponse(success=True, count=len(data), data=data)


bootcamp_service = BootcampService()
