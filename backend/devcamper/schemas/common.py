"""
DevCamper Backend — Shared Response Schemas
============================================

What:  Pydantic models shared by every resource: the advanced-results
       envelope with its pagination descriptor, plain success envelopes,
       the error body and the health report.
How:   Record payloads are plain dicts produced by the collection layer, so
       `select=` projections serialize exactly the fields that were loaded.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, model_serializer


class PageLink(BaseModel):
    """Pointer to a neighbouring page."""
    page: int = Field(description="Page number (1-based)")
    limit: int = Field(description="Page size used to compute the link")


class Pagination(BaseModel):
    """
    Pagination descriptor.

    Invariant (startIndex = (page-1)*limit, endIndex = page*limit):
        next is present iff endIndex < total
        prev is present iff startIndex > 0

    Absent links are omitted from the JSON body instead of being null.
    """
    next: Optional[PageLink] = None
    prev: Optional[PageLink] = None

    @model_serializer(mode="wrap")
    def _omit_missing_links(self, handler):
        data = handler(self)
        return {key: value for key, value in data.items() if value is not None}


class AdvancedResults(BaseModel):
    """Envelope returned by every list endpoint built on the query builder."""
    success: bool = Field(default=True)
    count: int = Field(description="Number of records in this page")
    pagination: Pagination = Field(default_factory=Pagination)
    data: List[Dict[str, Any]] = Field(description="Ordered page of records")


class ListResponse(BaseModel):
    """Unpaginated list envelope (radius search, courses of one bootcamp)."""
    success: bool = Field(default=True)
    count: int
    data: List[Dict[str, Any]]


class RecordResponse(BaseModel):
    """Single-record envelope; `data` is `{}` after a delete."""
    success: bool = Field(default=True)
    data: Dict[str, Any]


class ErrorResponse(BaseModel):
    """
    Standardized error body produced by the exception handlers in main.py.

    Example:
        {
            "success": false,
            "error": "validation_error",
            "message": "Unsupported filter operator 'foo' on field 'average_cost'",
            "details": {"field": "average_cost"},
            "request_id": "1f2e3d4c"
        }
    """
    success: bool = Field(default=False)
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    geocoder: str = Field(description="Geocoder status: available, unavailable, circuit_open")
    uptime_seconds: float = Field(description="Seconds since service started")
