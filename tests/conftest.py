"""
Test infrastructure for the Blog API.

Strategy
--------
- SQLite in-memory via aiosqlite eliminates the need for a running Postgres
  instance in CI, keeping the suite fast and self-contained.
- StaticPool forces all async tasks to share the same in-memory database
  connection, which is required because SQLite in-memory databases are
  connection-scoped; a new connection would see an empty database.
- A fresh ``Database`` is built for every test and placed on
  ``app.state.db``, the same slot the production lifespan fills, so the
  real ``get_db`` dependency is exercised unchanged.
- Concurrency tests need independent connections and real locking, so they
  use the ``file_database`` fixture (a SQLite file under ``tmp_path``).
- bcrypt runs at 4 rounds here; the production default stays at 12.
"""
import os

os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("JWT_SECRET", "test-signing-key-not-for-production-use")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.pool import StaticPool

from blogapi.database import Database
from blogapi.main import app
from blogapi.media import LocalMediaStore, get_media_store

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture(autouse=True)
async def database():
    """Create all tables before each test, drop after to guarantee isolation."""
    db = Database(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await db.create_all()
    app.state.db = db
    yield db
    await db.drop_all()
    await db.dispose()


@pytest_asyncio.fixture
async def file_database(tmp_path):
    """A file-backed database whose sessions use separate connections."""
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'blog.db'}", connect_args={"timeout": 15})
    await db.create_all()
    yield db
    await db.dispose()


@pytest_asyncio.fixture
async def db_session(database: Database) -> AsyncSession:
    """
    Yield a live AsyncSession for tests that call services directly.
    """
    async with database.session_factory() as session:
        yield session


@pytest.fixture
def media_dir(tmp_path):
    path = tmp_path / "uploads"
    app.dependency_overrides[get_media_store] = lambda: LocalMediaStore(path)
    yield path
    app.dependency_overrides.pop(get_media_store, None)


@pytest_asyncio.fixture
async def async_client(media_dir) -> AsyncClient:
    """
    Yield an httpx.AsyncClient wired to the FastAPI app via ASGITransport.

    Uploaded images land in a per-test temporary directory.
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def register(async_client: AsyncClient):
    """
    Factory: register a user through the API and return ``(body, headers)``.
    """

    async def _register(username: str, role: str = "user", password: str = "pw123456"):
        resp = await async_client.post("/register", json={
            "username": username,
            "email": f"{username}@example.com",
            "password": password,
            "role": role,
        })
        assert resp.status_code == 201, resp.text
        body = resp.json()
        return body, {"Authorization": f"Bearer {body['token']}"}

    return _register


@pytest.fixture
def create_post(async_client: AsyncClient):
    """Factory: create a post (no images) as the holder of *headers*."""

    async def _create_post(headers: dict, title: str, content: str = "Post content"):
        resp = await async_client.post(
            "/posts", data={"title": title, "content": content}, headers=headers
        )
        assert resp.status_code == 201, resp.text
        return resp.json()

    return _create_post
