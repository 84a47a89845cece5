import secrets
from datetime import datetime, timezone, timedelta
from sqlalchemy.orm import Session
from jose import jwt, JWTError
from models.users import User
from core.config import settings
from core.exceptions import UnauthorizedError
from utils.hashing import hash_refresh_token, refresh_token_matches
from utils.logger import get_logger

logger = get_logger(__name__)


class TokenService:
    """
    Issues, verifies, rotates and revokes the access/refresh token pair.

    Access tokens are stateless. A refresh token is only honoured while it is
    the one recorded on its user: issuing a new pair overwrites the record,
    revoking clears it.

    Two concurrent rotations presenting the same refresh token can both pass
    the comparison before either writes; each then installs its own token and
    the last write wins, silently invalidating the other client's pair.
    """

    @staticmethod
    def create_access_token(user: User, expires_delta: timedelta = None):
        """
        Creates a JWT access token carrying the user's display fields, so
        authenticated requests need no user lookup.

        Args:
            user: Token subject
            expires_delta: Token lifetime (default: ACCESS_TOKEN_EXPIRE_MINUTES)

        Returns:
            JWT access token string
        """
        if expires_delta is None:
            expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

        expire = datetime.now(timezone.utc) + expires_delta

        payload = {
            "sub": user.id,
            "email": user.email,
            "username": user.username,
            "full_name": user.full_name,
            "type": "access",
            "exp": expire
        }

        return jwt.encode(payload, settings.ACCESS_TOKEN_SECRET, algorithm=settings.ALGORITHM)

    @staticmethod
    def create_refresh_token(user_id: str, expires_delta: timedelta = None):
        """
        Creates a JWT refresh token. Only the subject id is embedded; the jti
        makes every token unique, even two issued within the same second.

        Returns:
            JWT refresh token string
        """
        if expires_delta is None:
            expires_delta = timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)

        expire = datetime.now(timezone.utc) + expires_delta

        payload = {
            "sub": user_id,
            "jti": secrets.token_urlsafe(16),
            "type": "refresh",
            "exp": expire
        }

        return jwt.encode(payload, settings.REFRESH_TOKEN_SECRET, algorithm=settings.ALGORITHM)

    @staticmethod
    def issue(user_id: str, db: Session):
        """
        Creates a new token pair and records the refresh token on the user,
        replacing whatever was recorded before.

        Returns:
            Dictionary with access_token, refresh_token and token_type

        Raises:
            UnauthorizedError: the user does not exist
        """
        user = db.get(User, user_id)
        if user is None:
            raise UnauthorizedError("Invalid refresh token")

        access_token = TokenService.create_access_token(user)
        refresh_token = TokenService.create_refresh_token(user.id)

        user.refresh_token_hash = hash_refresh_token(refresh_token)
        db.commit()

        return {
            "access_token": access_token,
            "refresh_token": refresh_token,
            "token_type": "bearer"
        }

    @staticmethod
    def verify_access(token: str) -> dict:
        """
        Checks signature, expiry and token type of an access token. Persisted
        state is not consulted, so an access token outlives logout until it
        expires.

        Returns:
            Identity dict: user_id, email, username, full_name

        Raises:
            UnauthorizedError: on any verification failure
        """
        try:
            payload = jwt.decode(token, settings.ACCESS_TOKEN_SECRET, algorithms=[settings.ALGORITHM])
        except JWTError:
            raise UnauthorizedError("Invalid access token")

        if payload.get("type") != "access":
            raise UnauthorizedError("Invalid token type. Access token required.")

        user_id = payload.get("sub")
        if not user_id:
            raise UnauthorizedError("Invalid access token")

        return {
            "user_id": user_id,
            "email": payload.get("email"),
            "username": payload.get("username"),
            "full_name": payload.get("full_name"),
        }

    @staticmethod
    def rotate(presented_token: str, db: Session):
        """
        Exchanges a refresh token for a new pair. The presented token must be
        the one currently recorded on its user; a superseded or revoked token
        fails even when its signature and expiry are fine.

        Raises:
            UnauthorizedError: on any verification failure
        """
        if not presented_token:
            raise UnauthorizedError("Unauthorized request")

        try:
            payload = jwt.decode(
                presented_token,
                settings.REFRESH_TOKEN_SECRET,
                algorithms=[settings.ALGORITHM]
            )
        except JWTError:
            raise UnauthorizedError("Invalid refresh token")

        if payload.get("type") != "refresh":
            raise UnauthorizedError("Invalid refresh token")

        user = db.get(User, payload.get("sub")) if payload.get("sub") else None
        if user is None:
            raise UnauthorizedError("Invalid refresh token")

        if not refresh_token_matches(presented_token, user.refresh_token_hash):
            logger.warning(
                "Refresh token reuse or revoked token presented",
                extra={"user_id": user.id}
            )
            raise UnauthorizedError("Refresh token is expired or used")

        return TokenService.issue(user.id, db)

    @staticmethod
    def revoke(user_id: str, db: Session):
        """
        Clears the recorded refresh token, so no outstanding refresh token of
        this user can be rotated any more.
        """
        user = db.get(User, user_id)
        if user is None:
            return

        user.refresh_token_hash = None
        db.commit()
