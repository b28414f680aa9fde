"""
DevCamper Backend — Authentication Schemas
===========================================

What:  Register/login bodies and the token envelope.
How:   Emails are lowercased and trimmed on the way in so the unique index on
       users.email is case-insensitive in practice. Login fields are optional
       at the schema level; AuthService reports a missing field as a 400
       with a single, stable message.
"""

from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from devcamper.schemas.bootcamp import EMAIL_PATTERN


def _normalize_email(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    return value.strip().lower()


class RegisterRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    email: str
    password: str = Field(min_length=6, description="At least 6 characters")
    role: Literal["user", "publisher"] = "user"

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        v = _normalize_email(v)
        if not EMAIL_PATTERN.match(v):
            raise ValueError("Please enter a valid email")
        return v


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: Optional[str]) -> Optional[str]:
        return _normalize_email(v)


class TokenResponse(BaseModel):
    """
    Returned by register and login. The same token is also set as the
    HTTP-only `token` cookie.
    """
    success: bool = Field(default=True)
    token: str
