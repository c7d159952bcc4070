import asyncio
import os
import tempfile
import uuid

# Point the app at a throwaway SQLite file before anything reads core.config
_DB_DIR = tempfile.mkdtemp(prefix="farm-storage-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_DB_DIR, 'app.db')}"
os.environ["JWT_SECRET"] = "test-secret"

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker  # noqa: E402

from db import Base, User  # noqa: E402
from db.database import engine as app_engine, make_engine  # noqa: E402

PASSWORD = "correct-horse-battery"


@pytest_asyncio.fixture
async def engine(tmp_path):
    eng = make_engine(f"sqlite+aiosqlite:///{tmp_path / 'storage.db'}")
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest_asyncio.fixture
async def session_maker(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_maker):
    async with session_maker() as session:
        yield session


async def _create_user(session_maker, email: str) -> uuid.UUID:
    async with session_maker() as session:
        user = User(email=email, hashed_password="not-a-real-hash", is_active=True)
        session.add(user)
        await session.commit()
        return user.id


@pytest_asyncio.fixture
async def user_id(session_maker):
    return await _create_user(session_maker, "farmer@example.com")


@pytest_asyncio.fixture
async def other_user_id(session_maker):
    return await _create_user(session_maker, "neighbour@example.com")


async def _reset_app_db():
    async with app_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)


@pytest.fixture
def client():
    from main import app

    asyncio.run(_reset_app_db())
    with TestClient(app) as c:
        yield c


def register_and_login(client: TestClient, email: str = "farmer@example.com") -> dict:
    resp = client.post("/auth/register", json={"email": email, "password": PASSWORD})
    assert resp.status_code == 201, resp.text
    resp = client.post("/auth/jwt/login", data={"username": email, "password": PASSWORD})
    assert resp.status_code == 200, resp.text
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


@pytest.fixture
def auth_headers(client):
    return register_and_login(client)
