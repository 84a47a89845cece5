from core.database import Base
from sqlalchemy import Column, String, ForeignKey, UniqueConstraint
from .mixins import UUIDPrimaryKeyMixin, CreatedAtMixin, UpdatedAtMixin

class Subscription(Base, UUIDPrimaryKeyMixin, CreatedAtMixin, UpdatedAtMixin):
    """Directed edge: subscriber follows channel. Both ends are users."""
    __tablename__ = "subscriptions"
    __table_args__ = (UniqueConstraint("subscriber_id", "channel_id"),)

    #fk
    subscriber_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    channel_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
