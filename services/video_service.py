from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from models.videos import Video
from models.likes import Like
from models.comments import Comment
from models.watch_history import WatchHistory
from schemas.video_schemas import UpdateVideoRequest
from services.media_service import MediaService, discard_media
from core.exceptions import ValidationError, NotFoundError, ForbiddenError, InternalServerError
from utils.ids import parse_object_id
from utils.logger import get_logger

logger = get_logger(__name__)


class VideoService:
    """
    Owner-side video workflows. Ids and ownership are checked before any
    write; non-owners get ForbiddenError (401).
    """

    @staticmethod
    def publish_video(
        title: str,
        description: str,
        video_file_path: str | None,
        thumbnail_path: str | None,
        owner_id: str,
        db: Session,
        media: MediaService,
    ) -> Video:
        if not (title or "").strip():
            raise ValidationError("Title is required")
        if not (description or "").strip():
            raise ValidationError("Description is required")
        if not video_file_path:
            raise ValidationError("Video is required")

        uploaded_video = media.upload(video_file_path)
        uploaded_thumbnail = media.upload(thumbnail_path)

        if not uploaded_video:
            raise InternalServerError("Could not upload the video to cloud, please try again")

        video = Video(
            owner_id=owner_id,
            video_file=uploaded_video["url"],
            thumbnail=uploaded_thumbnail["url"] if uploaded_thumbnail else "",
            title=title.strip(),
            description=description.strip(),
            duration=uploaded_video.get("duration") or 0,
        )
        db.add(video)
        db.commit()
        db.refresh(video)

        logger.info("Video published", extra={"video_id": video.id, "owner_id": owner_id})
        return video

    @staticmethod
    def get_owned_video(video_id: str, user_id: str, db: Session) -> Video:
        """
        Raises:
            ValidationError: malformed id
            NotFoundError: no such video
            ForbiddenError: user_id does not own it
        """
        video_id = parse_object_id(video_id, "video id")

        video = db.get(Video, video_id)
        if not video:
            raise NotFoundError("Video not found")

        if video.owner_id != user_id:
            logger.warning(
                "Video mutation attempted by non-owner",
                extra={"video_id": video.id, "user_id": user_id}
            )
            raise ForbiddenError("Unauthorized request")

        return video

    @staticmethod
    def update_details(video_id: str, user_id: str, body: UpdateVideoRequest, db: Session) -> Video:
        video = VideoService.get_owned_video(video_id, user_id, db)

        video.title = body.title
        video.description = body.description
        db.commit()
        db.refresh(video)

        return video

    @staticmethod
    def update_thumbnail(video_id: str, user_id: str, thumbnail_path: str | None,
                         db: Session, media: MediaService) -> Video:
        """
        Replace the thumbnail; the previous one is removed from media storage
        afterwards (best effort).
        """
        video = VideoService.get_owned_video(video_id, user_id, db)

        if not thumbnail_path:
            raise ValidationError("Thumbnail is missing")

        uploaded = media.upload(thumbnail_path)
        if not uploaded:
            raise InternalServerError("Something went wrong while uploading the thumbnail, please try again")

        old_thumbnail = video.thumbnail
        video.thumbnail = uploaded["url"]
        db.commit()
        db.refresh(video)

        if old_thumbnail and old_thumbnail.strip() != uploaded["url"].strip():
            discard_media(media, old_thumbnail, "image")

        return video

    @staticmethod
    def toggle_publish_status(video_id: str, user_id: str, db: Session) -> Video:
        video = VideoService.get_owned_video(video_id, user_id, db)

        video.is_published = not video.is_published
        db.commit()
        db.refresh(video)

        logger.info(
            "Video publish status toggled",
            extra={"video_id": video.id, "is_published": video.is_published}
        )
        return video

    @staticmethod
    def delete_video(video_id: str, user_id: str, db: Session, media: MediaService):
        """
        Delete a video with its likes, comments and watch-history entries in
        one transaction, then remove its media objects.

        Media removal runs after the commit and is best effort, so a failure
        there can leave an orphaned remote object but never orphaned rows.

        Raises:
            InternalServerError: the database delete failed (nothing was deleted)
        """
        video = VideoService.get_owned_video(video_id, user_id, db)
        video_id, video_file, thumbnail = video.id, video.video_file, video.thumbnail

        try:
            db.execute(delete(Like).where(Like.video_id == video_id))
            db.execute(delete(Comment).where(Comment.video_id == video_id))
            db.execute(delete(WatchHistory).where(WatchHistory.video_id == video_id))
            db.delete(video)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(
                f"Video delete failed: {str(e)}",
                extra={"video_id": video_id},
                exc_info=True
            )
            raise InternalServerError("Something went wrong while deleting the video")

        discard_media(media, video_file, "video")
        if thumbnail:
            discard_media(media, thumbnail, "image")

        logger.info("Video deleted", extra={"video_id": video_id, "owner_id": user_id})
