from sqlalchemy.orm import Session
from models.users import User
from schemas.user_schemas import UpdateAccountRequest
from services.media_service import MediaService, discard_media
from core.exceptions import ValidationError, ConflictError, NotFoundError, UnauthorizedError, InternalServerError
from utils.logger import get_logger

logger = get_logger(__name__)


class UserService:

    @staticmethod
    def get_user_by_id(user_id: str, db: Session) -> User:
        user = db.get(User, user_id)
        if not user:
            # The token outlived its user
            raise UnauthorizedError("Invalid access token")
        return user

    @staticmethod
    def update_account(user_id: str, body: UpdateAccountRequest, db: Session) -> User:
        user = UserService.get_user_by_id(user_id, db)

        taken = db.query(User).filter(User.email == body.email, User.id != user.id).first()
        if taken:
            raise ConflictError("Email is already in use")

        user.full_name = body.full_name
        user.email = body.email
        db.commit()
        db.refresh(user)

        logger.info("Account details updated", extra={"user_id": user.id})
        return user

    @staticmethod
    def update_avatar(user_id: str, avatar_path: str | None, db: Session, media: MediaService) -> User:
        return UserService._replace_image(user_id, "avatar", avatar_path, db, media,
                                          missing_message="Avatar is missing")

    @staticmethod
    def update_cover_image(user_id: str, cover_image_path: str | None, db: Session, media: MediaService) -> User:
        return UserService._replace_image(user_id, "cover_image", cover_image_path, db, media,
                                          missing_message="Cover image is missing")

    @staticmethod
    def _replace_image(user_id: str, field: str, local_path: str | None, db: Session,
                       media: MediaService, missing_message: str) -> User:
        """
        Upload a new image, point the user at it, then remove the previous
        image from media storage (best effort).
        """
        if not local_path:
            raise ValidationError(missing_message)

        user = db.get(User, user_id)
        if not user:
            raise NotFoundError("User not found")

        uploaded = media.upload(local_path)
        if not uploaded:
            raise InternalServerError(f"Something went wrong while uploading the {field.replace('_', ' ')}")

        old_url = getattr(user, field)
        setattr(user, field, uploaded["url"])
        db.commit()
        db.refresh(user)

        if old_url and old_url != uploaded["url"]:
            discard_media(media, old_url, "image")

        return user
