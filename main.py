# Essential imports
import time
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from routers import auth, users, videos
from contextlib import asynccontextmanager

# Import all models so every table is registered on Base.metadata
import models
from core.database import Base, engine

# Rate limiter imports
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from middleware.rate_limiter import limiter

# Logging imports
from core.logging_config import setup_logging
from middleware import RequestIDMiddleware, get_request_id
from core.config import settings
from core.exceptions import ApiError
from utils.logger import get_logger, log_request
from fastapi.responses import JSONResponse

# CORS imports
from fastapi.middleware.cors import CORSMiddleware

# Initialize logging
setup_logging(
    log_level=settings.LOG_LEVEL,
    log_dir=settings.LOG_DIR
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=engine)
    logger.info("Application startup complete", extra={"event": "startup"})
    yield
    logger.info("Application shutting down", extra={"event": "shutdown"})


app = FastAPI(
    title="VideoTube API",
    description="Backend API for a video-sharing platform",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)


# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,                    # auth cookies
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Access log for every request, with its duration."""
    start_time = time.time()

    response = await call_next(request)

    log_request(
        logger,
        request.method,
        request.url.path,
        response.status_code,
        (time.time() - start_time) * 1000,
        client_ip=request.client.host if request.client else None,
    )

    return response


# Added last so it wraps the access log and the id is set on its records
app.add_middleware(RequestIDMiddleware)


# Health check
@app.get("/health")
async def health_check():
    logger.debug("Health check requested")
    return {"status": "Healthy"}


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"status_code": status_code, "success": False, "message": message}
    )


@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError):
    if exc.status_code >= 500:
        logger.error(
            f"Request failed: {exc.message}",
            extra={"path": request.url.path, "method": request.method, "error_type": type(exc).__name__}
        )
    return error_response(exc.status_code, exc.message)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed or missing input is a 400 like every other validation failure."""
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ())[1:])
        detail = str(first.get("msg", "")).removeprefix("Value error, ")
        message = f"{field}: {detail}" if field else detail
    return error_response(status.HTTP_400_BAD_REQUEST, message)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return error_response(exc.status_code, str(exc.detail))


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Last resort for unhandled exceptions: log the full context and return a
    generic 500 without exposing internals.
    """
    logger.error(
        f"Unhandled exception: {str(exc)}",
        extra={
            "path": request.url.path,
            "method": request.method,
            "error_type": type(exc).__name__,
            "request_ref": get_request_id(request)
        },
        exc_info=True
    )

    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


# Including routers
app.include_router(auth.router)
app.include_router(users.router)
app.include_router(videos.router)


# Add rate limiter to the app
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
