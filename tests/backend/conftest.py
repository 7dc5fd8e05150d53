import os
import uuid

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from tortoise import Tortoise

from app.core import db as db_module
from app.core.security import hash_password
from app.main import app, build_realtime
from app.models.user import User


TEST_DB_URL = "sqlite://:memory:?cache=shared"
os.environ["DATABASE_URL"] = TEST_DB_URL
db_module.DB_URL = TEST_DB_URL
db_module.TORTOISE_ORM["connections"]["default"] = TEST_DB_URL


async def _init_test_db() -> None:
    """
    Initialize a clean in-memory SQLite database for every test.
    Ensures tables are recreated from scratch.
    """
    if Tortoise._inited:
        await Tortoise.close_connections()
    await Tortoise.init(config=db_module.TORTOISE_ORM)
    await Tortoise.generate_schemas()


@pytest.fixture
def realtime(monkeypatch):
    """
    Fresh real-time core for the app, so no rooms leak between tests.
    """
    instance = build_realtime()
    monkeypatch.setattr(app.state, "realtime", instance)
    return instance


@pytest_asyncio.fixture
async def client(realtime):
    """
    Provide an HTTPX AsyncClient bound to the FastAPI app with a fresh DB.
    """
    await _init_test_db()
    try:
        transport = ASGITransport(app=app, lifespan="off")
    except TypeError:
        # Fallback for httpx versions that don't support lifespan parameter
        transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as async_client:
        yield async_client
    await Tortoise.close_connections()


@pytest_asyncio.fixture
async def create_user():
    """
    Factory fixture to create users directly via ORM.
    """

    async def _create_user(password: str = "UserPass!23") -> tuple[User, str]:
        name = f"user_{uuid.uuid4().hex[:6]}"
        user = await User.create(
            username=name,
            email=f"{name}@example.com",
            password_hash=hash_password(password),
        )
        return user, password

    return _create_user


@pytest_asyncio.fixture
async def login(client):
    """
    Log a user in through the API. Returns (Authorization headers, raw token).
    """

    async def _login(username: str, password: str) -> tuple[dict[str, str], str]:
        resp = await client.post(
            "/api/v1/auth/login",
            json={"username": username, "password": password},
        )
        assert resp.status_code == 200, resp.text
        token = resp.json()["data"]["accessToken"]
        return {"Authorization": f"Bearer {token}"}, token

    return _login


@pytest_asyncio.fixture
async def member(create_user, login):
    """
    Create a user and log them in. Returns (user, headers, token).
    """

    async def _member():
        user, password = await create_user()
        headers, token = await login(user.username, password)
        return user, headers, token

    return _member
