"""
DevCamper Backend — Authentication Route Handlers
==================================================

What:  POST /api/v1/auth/register, POST /api/v1/auth/login, GET /api/v1/auth/me.
How:   Register and login return `{success, token}` and set the same token as
       an HTTP-only cookie, so browsers and API clients can both authenticate.
"""

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from devcamper.config import settings
from devcamper.database import get_db_session
from devcamper.dependencies import TOKEN_COOKIE, get_current_user
from devcamper.models.user import User
from devcamper.schemas.auth import LoginRequest, RegisterRequest, TokenResponse
from devcamper.schemas.common import ErrorResponse, RecordResponse
from devcamper.services.auth_service import auth_service

router = APIRouter(prefix="/api/v1/auth", tags=["Auth"])


def _send_token(response: Response, token: str) -> TokenResponse:
    response.set_cookie(
        key=TOKEN_COOKIE,
        value=token,
        max_age=settings.jwt_cookie_expire_days * 24 * 60 * 60,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
    )
    return TokenResponse(token=token)


@router.post(
    "/register",
    response_model=TokenResponse,
    responses={400: {"description": "Email already registered", "model": ErrorResponse}},
    summary="Register a user",
)
async def register(
    payload: RegisterRequest,
    response: Response,
    db: AsyncSession = Depends(get_db_session),
) -> TokenResponse:
    return _send_token(response, await auth_service.register(db, payload))


@router.post(
    "/login",
    response_model=TokenResponse,
    responses={
        400: {"description": "Missing email or password", "model": ErrorResponse},
        401: {"description": "Invalid credentials", "model": ErrorResponse},
    },
    summary="Log in",
)
async def login(
    payload: LoginRequest,
    response: Response,
    db: AsyncSession = Depends(get_db_session),
) -> TokenResponse:
    return _send_token(response, await auth_service.login(db, payload))


@router.get(
    "/me",
    response_model=RecordResponse,
    responses={401: {"description": "Not authorized", "model": ErrorResponse}},
    summary="Current user",
)
async def get_me(
    db: AsyncSession = Depends(get_db_session),
    current_user: User = Depends(get_current_user),
) -> RecordResponse:
    return RecordResponse(data=await auth_service.get_me(db, current_user.id))
