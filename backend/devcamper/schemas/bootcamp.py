"""
DevCamper Backend — Bootcamp Request Schemas
=============================================

What:  Pydantic models validating bootcamp create/update bodies.
How:   Field constraints mirror the table limits; URL and email formats are
       checked with the same patterns the listing site has always accepted.
       Responses are plain dicts (see schemas/common.py), so only inputs are
       modelled here.
"""

import re
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

Career = Literal[
    "Web Development",
    "Mobile Development",
    "UI/UX",
    "Data Science",
    "Business",
    "Others",
]

URL_PATTERN = re.compile(
    r"https?://(www\.)?[-a-zA-Z0-9@:%._+~#=]{1,256}\.[a-zA-Z0-9()]{1,6}\b([-a-zA-Z0-9()@:%_+.~#?&/=]*)"
)
EMAIL_PATTERN = re.compile(r"^\w+([.-]?\w+)*@\w+([.-]?\w+)*(\.\w{2,3})+$")


def _check_url(value: Optional[str]) -> Optional[str]:
    if value is not None and not URL_PATTERN.match(value):
        raise ValueError("Please use a valid URL with http or https")
    return value


def _check_email(value: Optional[str]) -> Optional[str]:
    if value is not None and not EMAIL_PATTERN.match(value):
        raise ValueError("Please enter a valid email")
    return value


def _check_name(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    value = value.strip()
    if not value:
        raise ValueError("Please add a name")
    if len(value) > 50:
        raise ValueError("Name can not be more than 50 characters")
    return value


class BootcampCreate(BaseModel):
    """
    Body of POST /api/v1/bootcamps.

    `address` is geocoded into the location columns and then discarded.
    """
    name: str = Field(description="Unique bootcamp name (trimmed, max 50 chars)")
    description: str = Field(min_length=1, max_length=500)
    website: Optional[str] = None
    phone: Optional[str] = Field(default=None, max_length=20)
    email: Optional[str] = None
    address: str = Field(min_length=1, description="Free-form address to geocode")
    careers: List[Career] = Field(min_length=1)
    average_rating: Optional[float] = Field(default=None, ge=1, le=10)
    average_cost: Optional[float] = Field(default=None, ge=0)
    photo: Optional[str] = None
    housing: bool = False
    job_assistance: bool = False
    job_guarantee: bool = False
    accept_gi: bool = False

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        return _check_name(v)

    @field_validator("website")
    @classmethod
    def validate_website(cls, v: Optional[str]) -> Optional[str]:
        return _check_url(v)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: Optional[str]) -> Optional[str]:
        return _check_email(v)


class BootcampUpdate(BaseModel):
    """Body of PUT /api/v1/bootcamps/{id}; only the fields sent are applied."""
    name: Optional[str] = None
    description: Optional[str] = Field(default=None, min_length=1, max_length=500)
    website: Optional[str] = None
    phone: Optional[str] = Field(default=None, max_length=20)
    email: Optional[str] = None
    address: Optional[str] = Field(default=None, min_length=1)
    careers: Optional[List[Career]] = Field(default=None, min_length=1)
    average_rating: Optional[float] = Field(default=None, ge=1, le=10)
    average_cost: Optional[float] = Field(default=None, ge=0)
    photo: Optional[str] = None
    housing: Optional[bool] = None
    job_assistance: Optional[bool] = None
    job_guarantee: Optional[bool] = None
    accept_gi: Optional[bool] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        return _check_name(v)

    @field_validator("website")
    @classmethod
    def validate_website(cls, v: Optional[str]) -> Optional[str]:
        return _check_url(v)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: Optional[str]) -> Optional[str]:
        return _check_email(v)
