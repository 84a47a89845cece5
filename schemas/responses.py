from typing import Any
from pydantic import BaseModel


class ApiResponse(BaseModel):
    """Envelope of every successful response."""
    status_code: int
    data: Any = None
    message: str = "Success"
    success: bool = True

    @classmethod
    def of(cls, status_code: int, data: Any = None, message: str = "Success") -> "ApiResponse":
        return cls(status_code=status_code, data=data, message=message, success=status_code < 400)
