from core.database import Base
from sqlalchemy import Column, Integer, String, ForeignKey, UniqueConstraint
from .mixins import CreatedAtMixin

class WatchHistory(Base, CreatedAtMixin):
    """
    One entry per (user, video) pair; the autoincrement id keeps the order in
    which videos were first watched.
    """
    __tablename__ = "watch_history"
    __table_args__ = (UniqueConstraint("user_id", "video_id"),)

    #pk
    id = Column(Integer, primary_key=True, autoincrement=True)

    #fk
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    video_id = Column(String(36), ForeignKey("videos.id"), nullable=False, index=True)
