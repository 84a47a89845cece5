from core.database import Base
from sqlalchemy import Column, String, Text, Float, Integer, Boolean, ForeignKey
from sqlalchemy.orm import relationship
from .mixins import UUIDPrimaryKeyMixin, CreatedAtMixin, UpdatedAtMixin

class Video(Base, UUIDPrimaryKeyMixin, CreatedAtMixin, UpdatedAtMixin):
    __tablename__ = "videos"

    #fk
    owner_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)

    #relationships
    owner = relationship("User", back_populates="videos")
    likes = relationship("Like", back_populates="video")
    comments = relationship("Comment", back_populates="video")

    video_file = Column(String(512), nullable=False)
    thumbnail = Column(String(512), nullable=False, default="")
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    duration = Column(Float, nullable=False, default=0)
    views = Column(Integer, nullable=False, default=0)
    is_published = Column(Boolean, nullable=False, default=True)
