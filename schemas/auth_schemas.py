from pydantic import BaseModel, EmailStr, field_validator, model_validator


class Token(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str


class LoginRequest(BaseModel):
    username: str | None = None
    email: EmailStr | None = None
    password: str

    @field_validator('username')
    @classmethod
    def normalize_username(cls, value):
        if value is None:
            return value
        return value.strip().lower() or None

    @field_validator('email')
    @classmethod
    def normalize_email(cls, value):
        if value is None:
            return value
        return value.strip().lower()

    @field_validator('password')
    @classmethod
    def validate_password(cls, value):
        if not value:
            raise ValueError('Password is required')
        return value

    @model_validator(mode='after')
    def require_identifier(self):
        if not self.username and not self.email:
            raise ValueError('Username or email is required')
        return self


class RefreshTokenRequest(BaseModel):
    # Optional: browsers send the refresh_token cookie instead
    refresh_token: str | None = None


class ChangePasswordRequest(BaseModel):
    old_password: str
    new_password: str

    @field_validator('old_password', 'new_password')
    @classmethod
    def validate_not_empty(cls, value):
        if not value or not value.strip():
            raise ValueError('Old and new password are required')
        return value
