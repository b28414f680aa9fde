"""
DevCamper Backend — Request Dependencies
=========================================

What:  `get_current_user` guards private routes.
How:   Reads the token from `Authorization: Bearer <token>`, falling back to
       the `token` cookie set by register/login. Any failure is an
       AuthenticationError (→ 401 "Not authorized to access this route").
"""

import uuid
from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from devcamper.database import get_db_session
from devcamper.exceptions import AuthenticationError, NotFoundError
from devcamper.models.user import User
from devcamper.security import decode_access_token
from devcamper.services.auth_service import auth_service

TOKEN_COOKIE = "token"


def extract_token(request: Request) -> Optional[str]:
    authorization = request.headers.get("Authorization", "")
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    return request.cookies.get(TOKEN_COOKIE) or None


async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> User:
    token = extract_token(request)
    if not token:
        raise AuthenticationError()

    payload = decode_access_token(token)
    try:
        user_id = uuid.UUID(payload["sub"])
    except ValueError:
        raise AuthenticationError(context={"reason": "token_subject_invalid"})

    try:
        return await auth_service.get_user(db, user_id)
    except NotFoundError:
        # Token outlived its user
        raise AuthenticationError(context={"reason": "user_missing"})
