"""
Shared fixtures: the FastAPI app on an in-memory SQLite database, with
the Cloudinary uploader replaced by an ``AsyncMock``.
"""

import os
import tempfile

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("UPLOAD_TEMP_DIR", tempfile.mkdtemp(prefix="avatars-"))
os.environ.setdefault("TOKEN_ENCRYPTION_KEY", "")

import pytest
import pytest_asyncio
from unittest.mock import AsyncMock, patch

from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from connectors.cloudinary import UploadResult
from database.models import Base
from database.session import get_db_session
from main import app

AVATAR_URL = "https://res.cloudinary.com/demo/image/upload/v1/avatar.png"


@pytest_asyncio.fixture
async def session_factory():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    yield factory
    await engine.dispose()


@pytest_asyncio.fixture
async def client(session_factory):
    async def _override():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = _override
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="https://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def uploader():
    mock = AsyncMock(return_value=UploadResult(url=AVATAR_URL, public_id="avatar"))
    with patch("auth.routes.upload_on_cloudinary", mock):
        yield mock


def register_form(**overrides):
    data = {
        "userName": "Alice",
        "email": "alice@example.com",
        "fullName": "Alice Liddell",
        "password": "wonderland",
    }
    data.update(overrides)
    return {k: v for k, v in data.items() if v is not None}


def avatar_file(name="me.png"):
    return {"avatar": (name, b"\x89PNG\r\n\x1a\nfake-image-bytes", "image/png")}


@pytest.fixture
def register(client, uploader):
    async def _register(with_avatar=True, **overrides):
        return await client.post(
            "/api/v1/users/register",
            data=register_form(**overrides),
            files=avatar_file() if with_avatar else None,
        )

    return _register
