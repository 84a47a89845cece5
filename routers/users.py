from fastapi import APIRouter, Request, File, UploadFile
from starlette import status
from utils.deps import user_dependency, db_dependency, media_dependency
from schemas.user_schemas import UserPublic, UpdateAccountRequest
from schemas.responses import ApiResponse
from services.user_service import UserService
from services.aggregation_service import AggregationService
from middleware.rate_limiter import limiter
from utils.uploads import save_upload, discard_staged
from utils.logger import get_logger

# Setup logger
logger = get_logger(__name__)


router = APIRouter(
    prefix="/api/v1/users",
    tags=["users"]
)


@router.get("/current-user", response_model=ApiResponse)
@limiter.limit("30/minute")
def get_current_user(request: Request, user: user_dependency, db: db_dependency):
    model = UserService.get_user_by_id(user["user_id"], db)

    return ApiResponse.of(
        status.HTTP_200_OK,
        UserPublic.model_validate(model),
        "User details fetched successfully"
    )


@router.patch("/update-account", response_model=ApiResponse)
@limiter.limit("10/minute")
def update_account_details(request: Request, body: UpdateAccountRequest,
                                 user: user_dependency, db: db_dependency):
    model = UserService.update_account(user["user_id"], body, db)

    return ApiResponse.of(
        status.HTTP_200_OK,
        UserPublic.model_validate(model),
        "Account details updated successfully"
    )


@router.patch("/avatar", response_model=ApiResponse)
@limiter.limit("10/minute")
def update_user_avatar(request: Request, user: user_dependency, db: db_dependency,
                             media: media_dependency, avatar: UploadFile | None = File(None)):
    avatar_path = save_upload(avatar)
    try:
        model = UserService.update_avatar(user["user_id"], avatar_path, db, media)
    finally:
        discard_staged(avatar_path)

    logger.info("Avatar updated", extra={"user_id": model.id})

    return ApiResponse.of(
        status.HTTP_200_OK,
        UserPublic.model_validate(model),
        "Avatar updated successfully"
    )


@router.patch("/cover-image", response_model=ApiResponse)
@limiter.limit("10/minute")
def update_user_cover_image(request: Request, user: user_dependency, db: db_dependency,
                                  media: media_dependency, cover_image: UploadFile | None = File(None)):
    cover_image_path = save_upload(cover_image)
    try:
        model = UserService.update_cover_image(user["user_id"], cover_image_path, db, media)
    finally:
        discard_staged(cover_image_path)

    logger.info("Cover image updated", extra={"user_id": model.id})

    return ApiResponse.of(
        status.HTTP_200_OK,
        UserPublic.model_validate(model),
        "Cover image updated successfully"
    )


@router.get("/c/{username}", response_model=ApiResponse)
@limiter.limit("60/minute")
def get_user_channel_profile(request: Request, username: str, user: user_dependency, db: db_dependency):
    channel = AggregationService.channel_profile(username, user["user_id"], db)

    return ApiResponse.of(
        status.HTTP_200_OK,
        channel,
        f"{channel['username']}'s profile fetched successfully"
    )


@router.get("/history", response_model=ApiResponse)
@limiter.limit("30/minute")
def get_watch_history(request: Request, user: user_dependency, db: db_dependency):
    history = AggregationService.watch_history(user["user_id"], db)

    return ApiResponse.of(
        status.HTTP_200_OK,
        history,
        "Watch history fetched successfully"
    )
