"""
Request ID middleware.

Every request gets an id (the client's X-Request-ID, or a fresh UUID). It is
stored on request.state, echoed back in the response headers and attached to
every log record emitted while the request is being handled, so all log lines
of one request can be correlated.
"""

import uuid
import logging
from contextvars import ContextVar
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response


_request_id: ContextVar[str] = ContextVar("request_id", default="-")


class RequestIDLogFilter(logging.Filter):
    """Copies the current request id onto each log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = _request_id.get()
        return True


class RequestIDMiddleware(BaseHTTPMiddleware):

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())

        request.state.request_id = request_id

        # The context var is per-task, so concurrent requests never see
        # each other's id
        token = _request_id.set(request_id)
        try:
            response: Response = await call_next(request)
            response.headers["X-Request-ID"] = request_id
            return response
        finally:
            _request_id.reset(token)


def get_request_id(request: Request) -> str:
    """
    Request id of the current request, or "no-request-id" outside the
    middleware (e.g. in exception handlers that run before it).
    """
    return getattr(request.state, "request_id", "no-request-id")
