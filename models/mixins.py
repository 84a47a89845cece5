import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, DateTime, String


def utcnow():
    return datetime.now(timezone.utc)


def new_object_id() -> str:
    return str(uuid.uuid4())


class UUIDPrimaryKeyMixin:
    id = Column(String(36), primary_key=True, default=new_object_id, index=True)


# Timestamps are set client-side so they keep sub-second precision on SQLite;
# listings rely on created_at for their newest-first order
class CreatedAtMixin:
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)


class UpdatedAtMixin:
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
