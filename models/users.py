from core.database import Base
from sqlalchemy import Column, String
from sqlalchemy.orm import relationship
from .mixins import UUIDPrimaryKeyMixin, CreatedAtMixin, UpdatedAtMixin

class User(Base, UUIDPrimaryKeyMixin, CreatedAtMixin, UpdatedAtMixin):
    __tablename__ = "users"

    #relationships
    videos = relationship("Video", back_populates="owner")

    username = Column(String(64), unique=True, nullable=False, index=True)
    email = Column(String(320), unique=True, nullable=False, index=True)
    full_name = Column(String(128), nullable=False, index=True)
    avatar = Column(String(512), nullable=False)
    cover_image = Column(String(512), nullable=False, default="")
    hashed_password = Column(String(255), nullable=False)
    # SHA-256 of the only refresh token currently accepted for this user.
    # NULL after logout; overwritten on every login/rotation.
    refresh_token_hash = Column(String(64), nullable=True)
