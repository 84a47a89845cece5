from types import SimpleNamespace
from datetime import timedelta
from time import sleep

import pytest
from jose import jwt, JWTError

from core.config import settings
from core.exceptions import UnauthorizedError
from services.token_service import TokenService

USER = SimpleNamespace(
    id="6f1c2a9e-9a43-4c4e-8a55-1d2b3c4d5e6f",
    email="user@example.com",
    username="user",
    full_name="Some User",
)


def test_access_token_creation():
    token = TokenService.create_access_token(USER)
    assert token

    payload = jwt.decode(token, key=settings.ACCESS_TOKEN_SECRET, algorithms=[settings.ALGORITHM])
    assert payload["sub"] == USER.id
    assert payload["email"] == "user@example.com"
    assert payload["username"] == "user"
    assert payload["full_name"] == "Some User"
    assert payload["type"] == "access"
    assert payload["exp"]


def test_refresh_token_creation():
    token = TokenService.create_refresh_token(USER.id)
    assert token

    payload = jwt.decode(token, key=settings.REFRESH_TOKEN_SECRET, algorithms=[settings.ALGORITHM])
    assert payload["sub"] == USER.id
    assert payload["type"] == "refresh"
    assert payload["jti"]
    assert payload["exp"]
    # only the subject id is embedded
    assert "email" not in payload
    assert "username" not in payload


def test_refresh_tokens_are_unique():
    assert TokenService.create_refresh_token(USER.id) != TokenService.create_refresh_token(USER.id)


def test_tokens_use_independent_secrets():
    access_token = TokenService.create_access_token(USER)
    refresh_token = TokenService.create_refresh_token(USER.id)

    with pytest.raises(JWTError):
        jwt.decode(access_token, key=settings.REFRESH_TOKEN_SECRET, algorithms=[settings.ALGORITHM])

    with pytest.raises(JWTError):
        jwt.decode(refresh_token, key=settings.ACCESS_TOKEN_SECRET, algorithms=[settings.ALGORITHM])


def test_verify_access_returns_identity():
    identity = TokenService.verify_access(TokenService.create_access_token(USER))

    assert identity == {
        "user_id": USER.id,
        "email": USER.email,
        "username": USER.username,
        "full_name": USER.full_name,
    }


def test_verify_access_rejects_refresh_token():
    refresh_token = TokenService.create_refresh_token(USER.id)

    with pytest.raises(UnauthorizedError):
        TokenService.verify_access(refresh_token)


def test_verify_access_rejects_garbage():
    with pytest.raises(UnauthorizedError) as exc_info:
        TokenService.verify_access("not-a-jwt")

    assert exc_info.value.status_code == 401


def test_token_expiration():
    access_token = TokenService.create_access_token(USER, expires_delta=timedelta(seconds=1))

    sleep(2)  # ensure expiration

    with pytest.raises(UnauthorizedError):
        TokenService.verify_access(access_token)
