"""Pytest configuration and fixtures."""

import os
import tempfile
import uuid
from pathlib import Path

# Settings are cached on first import, so the test environment must be in place first
SQLALCHEMY_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite:///./test.db")
os.environ.setdefault("DATABASE_URL", SQLALCHEMY_DATABASE_URL)
os.environ.setdefault("ACCESS_TOKEN_SECRET", "test-access-secret")
os.environ.setdefault("REFRESH_TOKEN_SECRET", "test-refresh-secret")
os.environ.setdefault("CLOUDINARY_CLOUD_NAME", "test-cloud")
os.environ.setdefault("CLOUDINARY_API_KEY", "test-key")
os.environ.setdefault("CLOUDINARY_API_SECRET", "test-api-secret")
os.environ.setdefault("MEDIA_CLEANUP_ENABLED", "false")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="vidtube-uploads-"))

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from src import models  # noqa: E402, F401
from src.database import Base, engine_options, get_db, init_db  # noqa: E402
from src.main import app  # noqa: E402
from src.services.media import MediaService, discard_local_file, get_media_service  # noqa: E402

engine = create_engine(SQLALCHEMY_DATABASE_URL, **engine_options(SQLALCHEMY_DATABASE_URL))
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

DEFAULT_PASSWORD = "testpass123"  # noqa: S105
PNG_BYTES = b"\x89PNG\r\n\x1a\nfake-image"
FAILING_UPLOAD = b"FAIL-UPLOAD"


class AuthHeaders(dict):
    """Dict subclass that also stores the user and the issued tokens."""

    def __init__(self, *args, user_id=None, username=None, email=None, tokens=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.user_id = user_id
        self.username = username
        self.email = email
        self.tokens = tokens or {}


class FakeMediaService(MediaService):
    """Media host stand-in: files whose content starts with FAIL are rejected."""

    def __init__(self) -> None:
        super().__init__()
        self.uploaded: list[bytes] = []

    async def upload(self, local_path):
        if not local_path:
            return None
        path = Path(local_path)
        content = path.read_bytes()
        discard_local_file(path)
        if content.startswith(FAILING_UPLOAD):
            return None
        self.uploaded.append(content)
        public_id = uuid.uuid4().hex
        return {
            "public_id": public_id,
            "url": f"http://res.cloudinary.com/test-cloud/image/upload/v1/{public_id}.png",
        }


@pytest.fixture(scope="session", autouse=True)
def setup_test_database():
    """Create test database schema once at the start of the test session."""
    init_db(engine)
    yield


@pytest.fixture(scope="function", autouse=True)
def db():
    """Create a fresh database session for each test with cleanup."""
    session = TestingSessionLocal()

    yield session

    # Clean up all data after test
    session.rollback()
    for table in reversed(Base.metadata.sorted_tables):
        session.execute(table.delete())
    session.commit()
    session.close()


@pytest.fixture
def media():
    return FakeMediaService()


@pytest.fixture(scope="function")
def client(db, media):
    """Create a test client with database and media host overrides."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_media_service] = lambda: media
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def register_user(
    client,
    username="ana",
    email=None,
    password=DEFAULT_PASSWORD,
    full_name="Ana A",
    avatar=PNG_BYTES,
    cover_image=None,
):
    """POST a multipart registration; ``avatar=None`` omits the file."""
    files = {}
    if avatar is not None:
        files["avatar"] = ("avatar.png", avatar, "image/png")
    if cover_image is not None:
        files["coverImage"] = ("cover.png", cover_image, "image/png")
    return client.post(
        "/api/v1/users/register",
        data={
            "fullName": full_name,
            "email": email or f"{username}@example.com",
            "username": username,
            "password": password,
        },
        files=files or None,
    )


def login_user(client, username="ana", password=DEFAULT_PASSWORD):
    return client.post(
        "/api/v1/users/login", json={"username": username, "password": password}
    )


def make_auth_headers(client, username="ana", **kwargs):
    """Register and log in a user, returning bearer headers."""
    response = register_user(client, username=username, **kwargs)
    assert response.status_code == 201, response.text
    password = kwargs.get("password", DEFAULT_PASSWORD)
    login = login_user(client, username=username, password=password)
    assert login.status_code == 200, login.text
    data = login.json()["data"]
    return AuthHeaders(
        {"Authorization": f"Bearer {data['accessToken']}"},
        user_id=data["user"]["id"],
        username=data["user"]["username"],
        email=data["user"]["email"],
        tokens={"access": data["accessToken"], "refresh": data["refreshToken"]},
    )


@pytest.fixture
def auth_headers(client):
    """Create a user and return auth headers with user info."""
    return make_auth_headers(client)


@pytest.fixture
def register(client):
    """Registration helper bound to the test client."""
    return lambda **kwargs: register_user(client, **kwargs)


@pytest.fixture
def login(client):
    """Login helper bound to the test client."""
    return lambda **kwargs: login_user(client, **kwargs)


@pytest.fixture
def make_user(client):
    """Register + login helper returning AuthHeaders."""
    return lambda username="ana", **kwargs: make_auth_headers(client, username=username, **kwargs)
