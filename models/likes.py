from core.database import Base
from sqlalchemy import Column, String, ForeignKey
from sqlalchemy.orm import relationship
from .mixins import UUIDPrimaryKeyMixin, CreatedAtMixin

class Like(Base, UUIDPrimaryKeyMixin, CreatedAtMixin):
    __tablename__ = "likes"

    #fk
    video_id = Column(String(36), ForeignKey("videos.id"), nullable=False, index=True)
    liked_by_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)

    #relationships
    video = relationship("Video", back_populates="likes")
