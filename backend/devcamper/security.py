"""
DevCamper Backend — Password Hashing & Tokens
==============================================

What:  Password hashing (passlib) and signed access tokens (PyJWT, HS256).
Who:   AuthService for register/login, the `get_current_user` dependency for
       private routes.

Token claims:
    sub  user id (string UUID)
    iat  issued-at (UTC)
    exp  expiry, settings.jwt_expire_minutes after issue
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from passlib.context import CryptContext

from devcamper.config import settings
from devcamper.exceptions import AuthenticationError

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password, password_hash)


def create_access_token(subject: str, expires_minutes: Optional[int] = None) -> str:
    """Sign a token whose `sub` claim is `subject`."""
    now = datetime.now(timezone.utc)
    minutes = expires_minutes if expires_minutes is not None else settings.jwt_expire_minutes
    payload = {
        "sub": str(subject),
        "iat": now,
        "exp": now + timedelta(minutes=minutes),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> Dict[str, Any]:
    """
    Verify signature and expiry.

    Raises:
        AuthenticationError: The token is expired, tampered with, or has no
            subject (→ 401).
    """
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        raise AuthenticationError(context={"reason": "token_expired"})
    except jwt.InvalidTokenError:
        raise AuthenticationError(context={"reason": "token_invalid"})
    if not payload.get("sub"):
        raise AuthenticationError(context={"reason": "token_without_subject"})
    return payload
