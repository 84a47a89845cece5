"""
Application error taxonomy.

Every error raised from services and dependencies is an ApiError subclass.
main.py renders them as {"status_code", "success": false, "message"}; only
the message given to the constructor reaches the client.
"""

from starlette import status


class ApiError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Something went wrong"

    def __init__(self, message: str | None = None, status_code: int | None = None):
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class ValidationError(ApiError):
    """Missing, empty or malformed client input."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class NotFoundError(ApiError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"


class UnauthorizedError(ApiError):
    """Missing, invalid, expired or superseded credential."""
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized request"


class ForbiddenError(ApiError):
    """
    Authenticated, but not the owner of the resource.

    Reported as 401, not 403.
    """
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized request"


class ConflictError(ApiError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Resource already exists"


class InternalServerError(ApiError):
    """Storage or media adapter failure."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal server error"
