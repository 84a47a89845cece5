import os
import tempfile

# Settings are read at import time, so the test environment goes first
os.environ["ENV"] = "testing"
os.environ.setdefault("ACCESS_TOKEN_SECRET", "test-access-token-secret")
os.environ.setdefault("REFRESH_TOKEN_SECRET", "test-refresh-token-secret")
os.environ.setdefault("UPLOAD_TEMP_DIR", tempfile.mkdtemp(prefix="videotube-uploads-"))
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="videotube-logs-"))

from pathlib import Path
from typing import Generator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session

from main import app
from core.database import Base
from models.users import User
from models.videos import Video
from services.media_service import extract_public_id
from services.token_service import TokenService
from utils.deps import get_db, get_media_service
from utils.hashing import get_password_hash

# SYNC SQLite for testing (matches sync service layer)
SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False}
)

TestingSessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine
)

TEST_PASSWORD = "password123"


class FakeMediaService:
    """
    In-memory stand-in for the Cloudinary adapter. Honours the same contract:
    consumes the staged file, returns None on failure, validates URLs on delete.
    """

    VIDEO_SUFFIXES = {".mp4", ".mov", ".webm", ".mkv"}

    def __init__(self):
        self.uploaded = []
        self.deleted = []
        self.fail_uploads = False
        self._counter = 0

    def upload(self, local_path):
        if not local_path:
            return None
        Path(local_path).unlink(missing_ok=True)
        if self.fail_uploads:
            return None

        self._counter += 1
        suffix = Path(local_path).suffix.lower() or ".png"
        kind = "video" if suffix in self.VIDEO_SUFFIXES else "image"
        url = f"https://res.cloudinary.com/demo/{kind}/upload/v1/media{self._counter}{suffix}"
        self.uploaded.append(url)
        return {"url": url, "duration": 42.5 if kind == "video" else None}

    def delete(self, url, kind):
        extract_public_id(url, kind)
        self.deleted.append((url, kind))


@pytest.fixture
def session() -> Generator[Session, None, None]:
    """
    Creates a fresh, empty database for each test.
    """
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()

    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def media() -> FakeMediaService:
    return FakeMediaService()


@pytest.fixture
async def client(session: Session, media: FakeMediaService):
    """
    Yields an HTTP client that talks to the app using the test database and
    the fake media adapter.
    """
    def override_get_db():
        try:
            yield session
        finally:
            pass  # Session cleanup handled by session fixture

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_media_service] = lambda: media

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def create_user(session: Session):
    """Factory for users stored directly in the database."""
    def _create_user(username: str, email: str | None = None, password: str = TEST_PASSWORD,
                     full_name: str | None = None) -> User:
        user = User(
            username=username,
            email=email or f"{username}@example.com",
            full_name=full_name or username.capitalize(),
            hashed_password=get_password_hash(password),
            avatar=f"https://res.cloudinary.com/demo/image/upload/v1/{username}-avatar.png",
        )
        session.add(user)
        session.commit()
        session.refresh(user)
        return user
    return _create_user


@pytest.fixture
def user(create_user) -> User:
    return create_user("alice", full_name="Alice Doe")


@pytest.fixture
def other_user(create_user) -> User:
    return create_user("bob", full_name="Bob Roe")


@pytest.fixture
def create_video(session: Session):
    """Factory for videos stored directly in the database."""
    def _create_video(owner: User, title: str = "A video", description: str = "Some description",
                      is_published: bool = True, views: int = 0, duration: float = 60.0) -> Video:
        video = Video(
            owner_id=owner.id,
            video_file="https://res.cloudinary.com/demo/video/upload/v1/clip.mp4",
            thumbnail="https://res.cloudinary.com/demo/image/upload/v1/thumb.png",
            title=title,
            description=description,
            duration=duration,
            views=views,
            is_published=is_published,
        )
        session.add(video)
        session.commit()
        session.refresh(video)
        return video
    return _create_video


def auth_headers(user: User) -> dict:
    """Bearer header with a fresh access token for user."""
    return {"Authorization": f"Bearer {TokenService.create_access_token(user)}"}


async def login(client, user: User, password: str = TEST_PASSWORD) -> dict:
    response = await client.post("/api/v1/users/login", json={
        "username": user.username,
        "password": password
    })
    assert response.status_code == 200
    return response.json()["data"]
