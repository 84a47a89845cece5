from fastapi import APIRouter, Request, Response, Form, File, UploadFile
from starlette import status
from utils.deps import (db_dependency, user_dependency, media_dependency,
                        ACCESS_TOKEN_COOKIE, REFRESH_TOKEN_COOKIE)
from schemas.auth_schemas import LoginRequest, RefreshTokenRequest, ChangePasswordRequest
from schemas.user_schemas import UserPublic
from schemas.responses import ApiResponse
from services.auth_service import AuthService
from services.token_service import TokenService
from middleware.rate_limiter import limiter
from core.config import settings
from utils.uploads import save_upload, discard_staged
from utils.logger import get_logger

# Setup logger
logger = get_logger(__name__)


router = APIRouter(
    prefix="/api/v1/users",
    tags=["auth"]
)


def set_auth_cookies(response: Response, tokens: dict):
    options = {"httponly": True, "secure": settings.COOKIE_SECURE}
    response.set_cookie(ACCESS_TOKEN_COOKIE, tokens["access_token"], **options)
    response.set_cookie(REFRESH_TOKEN_COOKIE, tokens["refresh_token"], **options)


def clear_auth_cookies(response: Response):
    options = {"httponly": True, "secure": settings.COOKIE_SECURE}
    response.delete_cookie(ACCESS_TOKEN_COOKIE, **options)
    response.delete_cookie(REFRESH_TOKEN_COOKIE, **options)


@router.post("/register", status_code=status.HTTP_201_CREATED, response_model=ApiResponse)
@limiter.limit("3/minute")
def register_user(
    request: Request,
    db: db_dependency,
    media: media_dependency,
    full_name: str = Form(""),
    email: str = Form(""),
    username: str = Form(""),
    password: str = Form(""),
    avatar: UploadFile | None = File(None),
    cover_image: UploadFile | None = File(None),
):
    avatar_path = save_upload(avatar)
    cover_image_path = save_upload(cover_image)
    try:
        user = AuthService.register_user(
            full_name, email, username, password,
            avatar_path, cover_image_path, db, media
        )
    finally:
        discard_staged(avatar_path, cover_image_path)

    logger.info(
        "User registered successfully",
        extra={"user_id": user.id, "username": user.username}
    )

    return ApiResponse.of(
        status.HTTP_201_CREATED,
        UserPublic.model_validate(user),
        "User registered successfully"
    )


@router.post("/login", response_model=ApiResponse)
@limiter.limit("5/minute")
def login_user(request: Request, response: Response, body: LoginRequest, db: db_dependency):
    user, tokens = AuthService.login(body, db)

    set_auth_cookies(response, tokens)

    logger.info(
        "User logged in successfully",
        extra={"user_id": user.id}
    )

    return ApiResponse.of(
        status.HTTP_200_OK,
        {
            "user": UserPublic.model_validate(user),
            "access_token": tokens["access_token"],
            "refresh_token": tokens["refresh_token"],
        },
        "User logged in successfully"
    )


@router.post("/logout", response_model=ApiResponse)
@limiter.limit("10/minute")
def logout_user(request: Request, response: Response, user: user_dependency, db: db_dependency):
    """
    Revoke the stored refresh token and clear the auth cookies. The access
    token stays valid until it expires.
    """
    TokenService.revoke(user["user_id"], db)

    clear_auth_cookies(response)

    logger.info("User logged out", extra={"user_id": user["user_id"]})

    return ApiResponse.of(status.HTTP_200_OK, {}, "User logged out")


@router.post("/refresh-token", response_model=ApiResponse)
@limiter.limit("10/minute")
def refresh_access_token(request: Request, response: Response, db: db_dependency,
                               body: RefreshTokenRequest | None = None):
    """
    Exchange a refresh token (cookie first, then body) for a new pair.
    """
    presented = request.cookies.get(REFRESH_TOKEN_COOKIE) or (body.refresh_token if body else None)

    tokens = TokenService.rotate(presented, db)

    set_auth_cookies(response, tokens)

    logger.info("Access token refreshed")

    return ApiResponse.of(
        status.HTTP_200_OK,
        {"access_token": tokens["access_token"], "refresh_token": tokens["refresh_token"]},
        "Access token refreshed successfully"
    )


@router.post("/change-password", response_model=ApiResponse)
@limiter.limit("2/minute")
def change_current_password(request: Request, body: ChangePasswordRequest,
                                  user: user_dependency, db: db_dependency):
    AuthService.change_password(user["user_id"], body, db)

    logger.info("Password changed", extra={"user_id": user["user_id"]})

    return ApiResponse.of(status.HTTP_200_OK, {}, "Password changed successfully")
