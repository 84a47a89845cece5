from datetime import datetime
from pydantic import BaseModel, ConfigDict, EmailStr, field_validator


class UserPublic(BaseModel):
    """A user as it may leave the server: no password hash, no token digest."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    username: str
    email: str
    full_name: str
    avatar: str
    cover_image: str = ""
    created_at: datetime
    updated_at: datetime


class UpdateAccountRequest(BaseModel):
    full_name: str
    email: EmailStr

    @field_validator('full_name')
    @classmethod
    def validate_full_name(cls, value):
        if not value or not value.strip():
            raise ValueError('All fields are required')
        return value.strip()

    @field_validator('email')
    @classmethod
    def normalize_email(cls, value):
        return value.strip().lower()
