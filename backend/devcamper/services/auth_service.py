"""
DevCamper Backend — Authentication Service
===========================================

What:  Registration, login and current-user lookup.
How:   Passwords are hashed with passlib; successful register/login return a
       signed access token (see security.py). The route layer decides how the
       token is delivered (JSON body plus HTTP-only cookie).
"""

import logging
import uuid
from typing import Any, Dict

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from devcamper.exceptions import AuthenticationError, DatabaseError, NotFoundError, ValidationError
from devcamper.models.user import User
from devcamper.schemas.auth import LoginRequest, RegisterRequest
from devcamper.security import create_access_token, hash_password, verify_password
from devcamper.services.collection import flush_changes, serialize_record

logger = logging.getLogger(__name__)

PUBLIC_USER_FIELDS = ("name", "email", "role", "created_at")


class AuthService:

    async def register(self, db: AsyncSession, payload: RegisterRequest) -> str:
        """
        Create a user and return an access token for it.

        Raises:
            ValidationError: Email already registered (→ 400).
        """
        user = User(
            name=payload.name,
            email=payload.email,
            role=payload.role,
            password_hash=hash_password(payload.password),
        )
        db.add(user)
        await flush_changes(db, User.__tablename__)
        logger.info("User registered: %s (%s)", user.id, user.role)
        return create_access_token(str(user.id))

    async def login(self, db: AsyncSession, payload: LoginRequest) -> str:
        """
        Check credentials and return an access token.

        Unknown email and wrong password produce the same 401 so the response
        does not reveal which accounts exist.
        """
        if not payload.email or not payload.password:
            raise ValidationError(message="Please provide an email and password")

        user = await self._find_by_email(db, payload.email)
        if user is None or not verify_password(payload.password, user.password_hash):
            logger.info("Failed login for %s", payload.email)
            raise AuthenticationError(message="Invalid credentials")

        logger.info("User logged in: %s", user.id)
        return create_access_token(str(user.id))

    async def get_user(self, db: AsyncSession, user_id: uuid.UUID) -> User:
        try:
            result = await db.execute(select(User).where(User.id == user_id))
            user = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error fetching user %s: %s", user_id, str(e))
            raise DatabaseError(message="Could not retrieve the user. Please try again.")
        if user is None:
            raise NotFoundError(resource="User", resource_id=str(user_id))
        return user

    async def get_me(self, db: AsyncSession, user_id: uuid.UUID) -> Dict[str, Any]:
        user = await self.get_user(db, user_id)
        return serialize_record(user, PUBLIC_USER_FIELDS)

    async def _find_by_email(self, db: AsyncSession, email: str):
        try:
            result = await db.execute(select(User).where(User.email == email))
        except SQLAlchemyError as e:
            logger.error("Database error looking up user by email: %s", str(e))
            raise DatabaseError(message="Could not retrieve the user. Please try again.")
        return result.scalar_one_or_none()


auth_service = AuthService()
