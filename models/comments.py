from core.database import Base
from sqlalchemy import Column, String, Text, ForeignKey
from sqlalchemy.orm import relationship
from .mixins import UUIDPrimaryKeyMixin, CreatedAtMixin, UpdatedAtMixin

class Comment(Base, UUIDPrimaryKeyMixin, CreatedAtMixin, UpdatedAtMixin):
    __tablename__ = "comments"

    #fk
    video_id = Column(String(36), ForeignKey("videos.id"), nullable=False, index=True)
    owner_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)

    #relationships
    video = relationship("Video", back_populates="comments")

    content = Column(Text, nullable=False)
