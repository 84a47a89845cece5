from slowapi import Limiter
from slowapi.util import get_remote_address
from fastapi import Request
from core.config import settings
from core.exceptions import UnauthorizedError
from services.token_service import TokenService
from utils.deps import extract_access_token

def get_user_id(request: Request):
    """
    Rate-limit key: the caller's user id when the request carries a valid
    access token (cookie or bearer), otherwise the client address.
    """
    try:
        identity = TokenService.verify_access(extract_access_token(request))
        return identity["user_id"]
    except UnauthorizedError:
        return get_remote_address(request)

limiter = Limiter(
    key_func=get_user_id,
    default_limits=["200/hour"],
    enabled=settings.ENV != "testing"
)
