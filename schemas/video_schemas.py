from datetime import datetime
from pydantic import BaseModel, ConfigDict, field_validator


class VideoPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    owner_id: str
    video_file: str
    thumbnail: str = ""
    title: str
    description: str
    duration: float
    views: int
    is_published: bool
    created_at: datetime
    updated_at: datetime


class UpdateVideoRequest(BaseModel):
    title: str
    description: str

    @field_validator('title', 'description')
    @classmethod
    def validate_not_empty(cls, value):
        if not value or not value.strip():
            raise ValueError('Title and description are required')
        return value.strip()
