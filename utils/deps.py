from functools import lru_cache
from core.database import SessionLocal
from typing import Annotated
from fastapi import Depends, Request
from sqlalchemy.orm import Session
from core.exceptions import UnauthorizedError
from services.media_service import MediaService
from services.token_service import TokenService

ACCESS_TOKEN_COOKIE = "access_token"
REFRESH_TOKEN_COOKIE = "refresh_token"


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

db_dependency = Annotated[Session, Depends(get_db)]


@lru_cache
def get_media_service() -> MediaService:
    return MediaService()

media_dependency = Annotated[MediaService, Depends(get_media_service)]


def extract_access_token(request: Request) -> str:
    """
    Access token of a request: the access_token cookie wins, otherwise an
    "Authorization: Bearer <token>" header.

    Raises:
        UnauthorizedError: neither is present, or the header is not a bearer header
    """
    token = request.cookies.get(ACCESS_TOKEN_COOKIE)
    if token:
        return token

    header = request.headers.get("Authorization")
    if header:
        scheme, _, credentials = header.partition(" ")
        if scheme.lower() == "bearer" and credentials.strip():
            return credentials.strip()

    raise UnauthorizedError("Unauthorized request")


def get_current_user(request: Request) -> dict:
    """
    Identity of the caller, taken from the access token alone. Nothing is read
    from or written to the database.
    """
    token = extract_access_token(request)
    return TokenService.verify_access(token)


user_dependency = Annotated[dict, Depends(get_current_user)]
