from email_validator import validate_email, EmailNotValidError
from sqlalchemy import or_
from sqlalchemy.orm import Session
from utils.hashing import verify_password, get_password_hash
from models.users import User
from schemas.auth_schemas import LoginRequest, ChangePasswordRequest
from services.media_service import MediaService
from services.token_service import TokenService
from core.exceptions import ValidationError, ConflictError, NotFoundError, UnauthorizedError, InternalServerError
from utils.logger import get_logger

logger = get_logger(__name__)

class AuthService:

    @staticmethod
    def register_user(
        full_name: str,
        email: str,
        username: str,
        password: str,
        avatar_path: str | None,
        cover_image_path: str | None,
        db: Session,
        media: MediaService,
    ):
        """
        Creates a new user.

        Flow:
        1. Every text field must be non-blank, email well-formed
        2. Username and email must both be unused
        3. Avatar is required; avatar and cover image go to media storage
        4. Password is hashed and the user stored
        """
        if any(not (field or "").strip() for field in (full_name, email, username, password)):
            raise ValidationError("All fields are compulsory")

        username = username.strip().lower()
        try:
            email = validate_email(email.strip(), check_deliverability=False).normalized.lower()
        except EmailNotValidError as e:
            raise ValidationError(f"Invalid email: {str(e)}")

        existing_user = db.query(User).filter(
            or_(User.username == username, User.email == email)
        ).first()
        if existing_user:
            logger.warning(
                "Registration attempt with existing username or email",
                extra={"username": username, "email": email}
            )
            raise ConflictError("User with email or username already exists")

        if not avatar_path:
            raise ValidationError("Avatar is required")

        avatar = media.upload(avatar_path)
        cover_image = media.upload(cover_image_path)

        if not avatar:
            raise InternalServerError("Something went wrong while uploading the avatar")

        model = User(
            full_name=full_name.strip(),
            email=email,
            username=username,
            hashed_password=get_password_hash(password),
            avatar=avatar["url"],
            cover_image=cover_image["url"] if cover_image else "",
        )

        db.add(model)
        db.commit()
        db.refresh(model)

        return model

    @staticmethod
    def authenticate_user(body: LoginRequest, db: Session):
        if body.username:
            user = db.query(User).filter(User.username == body.username).first()
        else:
            user = db.query(User).filter(User.email == body.email).first()

        if not user:
            logger.warning(
                "Login failed - user not found",
                extra={"username": body.username, "email": body.email}
            )
            raise NotFoundError("User does not exist")

        if not verify_password(body.password, user.hashed_password):
            logger.warning(
                "Login failed - invalid password",
                extra={"user_id": user.id}
            )
            raise UnauthorizedError("Invalid user credentials")

        logger.debug(
            "User authenticated successfully",
            extra={"user_id": user.id}
        )

        return user

    @staticmethod
    def login(body: LoginRequest, db: Session):
        """
        Returns:
            Tuple of (user, token dictionary)
        """
        user = AuthService.authenticate_user(body, db)
        tokens = TokenService.issue(user.id, db)
        db.refresh(user)
        return user, tokens

    @staticmethod
    def change_password(user_id: str, body: ChangePasswordRequest, db: Session):
        """
        Replaces the password after checking the old one. The stored refresh
        token is cleared, so other sessions must log in again.
        """
        user = db.get(User, user_id)
        if not user:
            raise NotFoundError("User not found")

        if not verify_password(body.old_password, user.hashed_password):
            logger.warning(
                "Password change failed - incorrect old password",
                extra={"user_id": user.id}
            )
            raise ValidationError("Old password is incorrect")

        user.hashed_password = get_password_hash(body.new_password)
        db.commit()

        TokenService.revoke(user.id, db)

        return user
