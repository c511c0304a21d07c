"""Shared fixtures: a throwaway SQLite database per test and an app built on it."""

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import create_async_engine

from config import Settings
from main import create_app


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'posts.db'}"


@pytest.fixture
def settings(db_url):
    return Settings(_env_file=None, DB_URL=db_url, CREATE_TABLES=True)


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def count_posts(client):
    """Number of rows currently visible through the JSON listing."""

    def count() -> int:
        response = client.get("/api/posts")
        assert response.status_code == 200
        return len(response.json())

    return count


@pytest_asyncio.fixture
async def engine(db_url):
    engine = create_async_engine(db_url)
    yield engine
    await engine.dispose()
