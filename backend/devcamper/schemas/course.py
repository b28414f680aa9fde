"""
DevCamper Backend — Course Request Schemas
===========================================

What:  Bodies of POST /api/v1/bootcamps/{id}/courses and PUT /api/v1/courses/{id}.
How:   The owning bootcamp comes from the URL, never from the body.
"""

from typing import Literal, Optional

from pydantic import BaseModel, Field

SkillLevel = Literal["beginner", "intermediate", "advanced"]


class CourseCreate(BaseModel):
    title: str = Field(min_length=1, max_length=100, description="Course title")
    description: str = Field(min_length=1)
    weeks: str = Field(min_length=1, max_length=20, description="Duration, e.g. '12'")
    tuition: float = Field(ge=0, description="Tuition cost in USD")
    minimum_skill: SkillLevel
    scholarship_available: bool = False


class CourseUpdate(BaseModel):
    """Partial update; fields left out keep their stored value."""
    title: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, min_length=1)
    weeks: Optional[str] = Field(default=None, min_length=1, max_length=20)
    tuition: Optional[float] = Field(default=None, ge=0)
    minimum_skill: Optional[SkillLevel] = None
    scholarship_available: Optional[bool] = None
