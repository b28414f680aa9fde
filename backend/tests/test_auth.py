"""
DevCamper Backend — Authentication Unit Tests
==============================================

What:  Password hashing, access tokens, AuthService and token extraction.
How:   Mock DB session; real passlib/PyJWT calls (both are local and fast).
"""

from unittest.mock import MagicMock
from uuid import uuid4

import jwt
import pytest
from pydantic import ValidationError as SchemaValidationError
from sqlalchemy.exc import IntegrityError
from starlette.requests import Request

from devcamper.config import settings
from devcamper.dependencies import extract_token
from devcamper.exceptions import AuthenticationError, NotFoundError, ValidationError
from devcamper.models.user import User
from devcamper.schemas.auth import LoginRequest, RegisterRequest
from devcamper.security import (
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)
from devcamper.services.auth_service import AuthService


def make_request(headers=None) -> Request:
    raw = [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()]
    return Request({"type": "http", "method": "GET", "path": "/", "headers": raw})


def user_lookup(mock_db_session, user):
    result = MagicMock()
    result.scalar_one_or_none.return_value = user
    mock_db_session.execute.return_value = result


class TestPasswords:

    def test_hash_is_not_plaintext(self):
        hashed = hash_password("123456")

        assert hashed != "123456"
        assert verify_password("123456", hashed) is True
        assert verify_password("654321", hashed) is False


class TestTokens:

    def test_round_trip(self):
        token = create_access_token("user-1")

        assert decode_access_token(token)["sub"] == "user-1"

    def test_expired(self):
        token = create_access_token("user-1", expires_minutes=-1)

        with pytest.raises(AuthenticationError) as exc_info:
            decode_access_token(token)
        assert exc_info.value.context["reason"] == "token_expired"

    def test_wrong_signature(self):
        token = jwt.encode({"sub": "user-1"}, "another-secret", algorithm=settings.jwt_algorithm)

        with pytest.raises(AuthenticationError):
            decode_access_token(token)

    def test_garbage(self):
        with pytest.raises(AuthenticationError):
            decode_access_token("not.a.token")

    def test_missing_subject(self):
        token = jwt.encode({"role": "user"}, settings.jwt_secret, algorithm=settings.jwt_algorithm)

        with pytest.raises(AuthenticationError):
            decode_access_token(token)


class TestSchemas:

    def test_register_normalizes_email(self):
        body = RegisterRequest(name="Jane", email="  Jane@Example.COM ", password="123456")

        assert body.email == "jane@example.com"
        assert body.role == "user"

    def test_register_rejects_bad_email(self):
        with pytest.raises(SchemaValidationError):
            RegisterRequest(name="Jane", email="jane-at-example", password="123456")

    def test_register_rejects_short_password(self):
        with pytest.raises(SchemaValidationError):
            RegisterRequest(name="Jane", email="jane@example.com", password="123")

    def test_register_rejects_admin_role(self):
        with pytest.raises(SchemaValidationError):
            RegisterRequest(name="Jane", email="jane@example.com", password="123456", role="admin")


class TestAuthService:

    def setup_method(self):
        self.service = AuthService()

    @pytest.mark.asyncio
    async def test_register_hashes_and_returns_token(self, mock_db_session):
        user_id = uuid4()
        mock_db_session.add.side_effect = lambda user: setattr(user, "id", user_id)
        payload = RegisterRequest(
            name="Jane", email="jane@example.com", password="123456", role="publisher"
        )

        token = await self.service.register(mock_db_session, payload)

        user = mock_db_session.add.call_args.args[0]
        assert user.password_hash != "123456"
        assert verify_password("123456", user.password_hash)
        assert user.role == "publisher"
        assert decode_access_token(token)["sub"] == str(user_id)

    @pytest.mark.asyncio
    async def test_register_duplicate_email(self, mock_db_session):
        mock_db_session.flush.side_effect = IntegrityError("INSERT", {}, Exception("unique"))
        payload = RegisterRequest(name="Jane", email="jane@example.com", password="123456")

        with pytest.raises(ValidationError, match="Duplicate field value entered"):
            await self.service.register(mock_db_session, payload)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [{}, {"email": "jane@example.com"}, {"password": "123456"}, {"email": "", "password": "x"}],
    )
    async def test_login_missing_field(self, mock_db_session, body):
        with pytest.raises(ValidationError, match="Please provide an email and password"):
            await self.service.login(mock_db_session, LoginRequest(**body))

        mock_db_session.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_login_unknown_email(self, mock_db_session):
        user_lookup(mock_db_session, None)

        with pytest.raises(AuthenticationError, match="Invalid credentials"):
            await self.service.login(
                mock_db_session, LoginRequest(email="nobody@example.com", password="123456")
            )

    @pytest.mark.asyncio
    async def test_login_wrong_password(self, mock_db_session):
        user_lookup(mock_db_session, User(id=uuid4(), password_hash=hash_password("123456")))

        with pytest.raises(AuthenticationError, match="Invalid credentials"):
            await self.service.login(
                mock_db_session, LoginRequest(email="jane@example.com", password="wrong!")
            )

    @pytest.mark.asyncio
    async def test_login_success(self, mock_db_session):
        user = User(id=uuid4(), email="jane@example.com", password_hash=hash_password("123456"))
        user_lookup(mock_db_session, user)

        token = await self.service.login(
            mock_db_session, LoginRequest(email="JANE@example.com", password="123456")
        )

        assert decode_access_token(token)["sub"] == str(user.id)

    @pytest.mark.asyncio
    async def test_get_me_hides_password_hash(self, mock_db_session):
        user = User(
            id=uuid4(),
            name="Jane",
            email="jane@example.com",
            role="user",
            password_hash=hash_password("123456"),
        )
        user_lookup(mock_db_session, user)

        data = await self.service.get_me(mock_db_session, user.id)

        assert data["email"] == "jane@example.com"
        assert "password_hash" not in data

    @pytest.mark.asyncio
    async def test_get_user_missing(self, mock_db_session):
        user_lookup(mock_db_session, None)

        with pytest.raises(NotFoundError):
            await self.service.get_user(mock_db_session, uuid4())


class TestExtractToken:

    def test_bearer_header(self):
        assert extract_token(make_request({"Authorization": "Bearer abc.def"})) == "abc.def"

    def test_cookie_fallback(self):
        assert extract_token(make_request({"Cookie": "token=from-cookie"})) == "from-cookie"

    def test_header_wins_over_cookie(self):
        request = make_request({"Authorization": "Bearer header", "Cookie": "token=cookie"})

        assert extract_token(request) == "header"

    def test_other_scheme_is_ignored(self):
        assert extract_token(make_request({"Authorization": "Basic dXNlcjpwYXNz"})) is None

    def test_nothing(self):
        assert extract_token(make_request()) is None
