from fastapi import APIRouter, Depends, Request, Form, File, UploadFile
from starlette import status
from utils.deps import user_dependency, db_dependency, media_dependency, get_current_user
from schemas.video_schemas import VideoPublic, UpdateVideoRequest
from schemas.responses import ApiResponse
from services.video_service import VideoService
from services.aggregation_service import AggregationService
from middleware.rate_limiter import limiter
from utils.uploads import save_upload, discard_staged
from utils.logger import get_logger

# Setup logger
logger = get_logger(__name__)


# Every video route requires an authenticated caller. Handlers are plain def:
# staging, media uploads and DB calls block, so they run in the thread pool
router = APIRouter(
    prefix="/api/v1/videos",
    tags=["videos"],
    dependencies=[Depends(get_current_user)]
)


@router.get("/", response_model=ApiResponse)
@limiter.limit("60/minute")
def get_all_videos(
    request: Request,
    db: db_dependency,
    page: int = 1,
    limit: int = 10,
    query: str | None = None,
    sort_by: str | None = None,
    sort_type: str | None = None,
    user_id: str | None = None,
):
    result = AggregationService.list_videos(
        db, page=page, limit=limit, query=query,
        sort_by=sort_by, sort_type=sort_type, user_id=user_id
    )

    return ApiResponse.of(status.HTTP_200_OK, result.to_dict(), "Videos fetched successfully")


@router.post("/", status_code=status.HTTP_201_CREATED, response_model=ApiResponse)
@limiter.limit("10/minute")
def publish_a_video(
    request: Request,
    user: user_dependency,
    db: db_dependency,
    media: media_dependency,
    title: str = Form(""),
    description: str = Form(""),
    video_file: UploadFile | None = File(None),
    thumbnail: UploadFile | None = File(None),
):
    video_file_path = save_upload(video_file)
    thumbnail_path = save_upload(thumbnail)
    try:
        video = VideoService.publish_video(
            title, description, video_file_path, thumbnail_path,
            user["user_id"], db, media
        )
    finally:
        discard_staged(video_file_path, thumbnail_path)

    return ApiResponse.of(
        status.HTTP_201_CREATED,
        VideoPublic.model_validate(video),
        "Video published successfully"
    )


@router.get("/{video_id}", response_model=ApiResponse)
@limiter.limit("120/minute")
def get_video_by_id(request: Request, video_id: str, user: user_dependency, db: db_dependency):
    video = AggregationService.video_detail(video_id, user["user_id"], db)

    return ApiResponse.of(status.HTTP_200_OK, video, "Video fetched successfully")


@router.patch("/{video_id}", response_model=ApiResponse)
@limiter.limit("20/minute")
def update_video_details(request: Request, video_id: str, body: UpdateVideoRequest,
                               user: user_dependency, db: db_dependency):
    video = VideoService.update_details(video_id, user["user_id"], body, db)

    return ApiResponse.of(
        status.HTTP_200_OK,
        VideoPublic.model_validate(video),
        "Video details updated successfully"
    )


@router.delete("/{video_id}", response_model=ApiResponse)
@limiter.limit("20/minute")
def delete_video(request: Request, video_id: str, user: user_dependency,
                       db: db_dependency, media: media_dependency):
    VideoService.delete_video(video_id, user["user_id"], db, media)

    return ApiResponse.of(status.HTTP_200_OK, {}, "Video deleted successfully")


@router.patch("/update-thumbnail/{video_id}", response_model=ApiResponse)
@limiter.limit("10/minute")
def update_video_thumbnail(request: Request, video_id: str, user: user_dependency,
                                 db: db_dependency, media: media_dependency,
                                 thumbnail: UploadFile | None = File(None)):
    thumbnail_path = save_upload(thumbnail)
    try:
        video = VideoService.update_thumbnail(video_id, user["user_id"], thumbnail_path, db, media)
    finally:
        discard_staged(thumbnail_path)

    return ApiResponse.of(
        status.HTTP_200_OK,
        VideoPublic.model_validate(video),
        "Video thumbnail updated successfully"
    )


@router.patch("/toggle-publish/{video_id}", response_model=ApiResponse)
@limiter.limit("20/minute")
def toggle_publish_status(request: Request, video_id: str, user: user_dependency, db: db_dependency):
    video = VideoService.toggle_publish_status(video_id, user["user_id"], db)

    return ApiResponse.of(
        status.HTTP_200_OK,
        VideoPublic.model_validate(video),
        "Video publish status toggled successfully"
    )
