"""
DevCamper Backend — Bootcamp SQLAlchemy Model
==============================================

What:  ORM model representing the `bootcamps` table in PostgreSQL.
Who:   Queried through SqlCollection by the advanced-results builder, written
       by BootcampService, tracked by Alembic.

Table Design:
    - UUID primary key, unique `name`, `slug` derived from the name
    - Location is a GeoJSON point flattened into columns (longitude/latitude
      plus the normalized address components returned by the geocoder).
      The raw address submitted by the client is not stored.
    - `careers` is a PostgreSQL text array; list filters treat equality as
      "contains" and `in` as "overlaps".
    - `average_cost` is recomputed by CourseService whenever courses change.
"""

import uuid
from datetime import datetime, timezone
from typing import List, Optional, TYPE_CHECKING

from sqlalchemy import Boolean, Float, Index, String, Text, text
from sqlalchemy.dialects.postgresql import ARRAY, TIMESTAMP, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from devcamper.database import Base

if TYPE_CHECKING:
    from devcamper.models.course import Course


class Bootcamp(Base):
    """
    A bootcamp listing.

    Lifecycle:
        1. Created by BootcampService.create_bootcamp (slug + geocoding applied)
        2. Updated partially; a new name re-slugs, a new address re-geocodes
        3. Deleted together with its courses (explicit cascade in the service,
           ON DELETE CASCADE as the database-level backstop)
    """

    __tablename__ = "bootcamps"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=text("gen_random_uuid()"),
    )
    name: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    slug: Mapped[Optional[str]] = mapped_column(String(60), nullable=True, index=True)
    description: Mapped[str] = mapped_column(String(500), nullable=False)
    website: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # ── Location (GeoJSON Point) ──────────────────────────────────────────
    location_type: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    formatted_address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    street: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    state: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    zipcode: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    country: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    careers: Mapped[List[str]] = mapped_column(ARRAY(String(50)), nullable=False)
    average_rating: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    average_cost: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    photo: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        default="no-photo.jpg",
        server_default=text("'no-photo.jpg'"),
    )
    housing: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )
    job_assistance: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )
    job_guarantee: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )
    accept_gi: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    courses: Mapped[List["Course"]] = relationship(
        back_populates="bootcamp",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("idx_bootcamps_created_at", created_at.desc()),
    )

    def __repr__(self) -> str:
        return f"<Bootcamp(id={self.id}, name='{self.name}')>"
