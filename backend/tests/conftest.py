import asyncio
import os
import tempfile
import uuid
from collections.abc import Generator
from pathlib import Path

import pytest

TEST_DB_PATH = Path(tempfile.gettempdir()) / f"inventory-ledger-tests-{os.getpid()}.sqlite3"
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{TEST_DB_PATH}"
os.environ["JWT_SECRET"] = "test-secret-" + "0123456789abcdef" * 3

from fastapi.testclient import TestClient  # noqa: E402

from core import items as item_service  # noqa: E402
from db.database import async_session_maker, create_db_and_tables, drop_db_and_tables  # noqa: E402
from main import app  # noqa: E402


async def _reset_database() -> None:
    await create_db_and_tables()
    await drop_db_and_tables()
    await create_db_and_tables()


@pytest.fixture(autouse=True)
def database() -> Generator[None, None, None]:
    asyncio.run(_reset_database())
    yield
    asyncio.run(drop_db_and_tables())


@pytest.fixture(name="run")
def run_fixture():
    """Run a coroutine to completion on a fresh event loop."""
    return asyncio.run


@pytest.fixture(name="session_factory")
def session_factory_fixture():
    return async_session_maker


@pytest.fixture(name="owner")
def owner_fixture() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture(name="make_item")
def make_item_fixture(run, owner):
    """Create an item (with its initial movement) for `owner` and return it."""

    def _make(name: str = "Blue Widget", quantity: int = 20, low_stock_threshold: int = 2, owner_id=None):
        async def _create():
            async with async_session_maker() as db:
                return await item_service.create_item(
                    db, owner_id or owner, name, quantity, low_stock_threshold
                )

        return run(_create())

    return _make


def _register_and_login(client: TestClient, email: str, password: str = "s3cret-pass") -> dict:
    response = client.post("/api/auth/register", json={"email": email, "password": password})
    assert response.status_code == 201, response.text
    response = client.post("/api/auth/jwt/login", data={"username": email, "password": password})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture(name="raw_client")
def raw_client_fixture() -> Generator[TestClient, None, None]:
    with TestClient(app) as client:
        yield client


@pytest.fixture(name="login")
def login_fixture(raw_client):
    def _login(email: str) -> dict:
        return _register_and_login(raw_client, email)

    return _login


@pytest.fixture(name="client")
def client_fixture(raw_client, login) -> TestClient:
    """TestClient authenticated as owner@example.com."""
    raw_client.headers.update(login("owner@example.com"))
    return raw_client
