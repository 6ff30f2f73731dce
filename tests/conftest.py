"""
Dogsfy Backend — Test Configuration (conftest.py)
===================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Every test that touches storage gets three fresh SQLite files under
       its own tmp_path (north, south, friends), so tests never share state.

Fixture Hierarchy (all function-scoped):
    partitions ─┬─ directory ─┬─ graph ── accounts
                │             └────────────┘
                └─ test_client (FastAPI app wired to the same partitions)
    user_payload: factory for UserCreate inputs
"""

import os

# Override settings for testing BEFORE any application imports
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["AUTO_CREATE_SCHEMA"] = "false"
os.environ["STORAGE_RETRY_MIN_WAIT"] = "0"
os.environ["STORAGE_RETRY_MAX_WAIT"] = "0.1"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from dogsfy.config import Settings
from dogsfy.database import open_partitions
from dogsfy.schema import create_schema
from dogsfy.schemas.user import UserCreate
from dogsfy.services.account_service import AccountService
from dogsfy.services.friendship_graph import FriendshipGraph
from dogsfy.services.user_directory import UserDirectory


@pytest.fixture
def test_settings(tmp_path):
    """Settings pointing the three partitions at files in tmp_path."""
    return Settings(
        north_database_url=f"sqlite+aiosqlite:///{tmp_path / 'dogsfy-n.db'}",
        south_database_url=f"sqlite+aiosqlite:///{tmp_path / 'dogsfy-s.db'}",
        friends_database_url=f"sqlite+aiosqlite:///{tmp_path / 'dogsfy-friends.db'}",
        storage_retry_max_attempts=2,
    )


@pytest_asyncio.fixture
async def partitions(test_settings):
    """Three empty partitions with their tables created."""
    registry = open_partitions(test_settings)
    await create_schema(registry)
    yield registry
    await registry.dispose()


@pytest.fixture
def directory(partitions):
    return UserDirectory(partitions.north, partitions.south)


@pytest.fixture
def graph(partitions, directory):
    return FriendshipGraph(partitions.friends, directory)


@pytest.fixture
def accounts(directory, graph):
    return AccountService(directory, graph, max_page_limit=50)


@pytest.fixture
def user_payload():
    """
    Factory for registration payloads.

    Usage:
        alice = user_payload("alice", lat=40.0, lng=-3.0)
    """

    def make(username: str, lat: float = 40.0, lng: float = -3.0, **overrides) -> UserCreate:
        data = {
            "username": username,
            "email": f"{username}@example.com",
            "password": "$2b$12$opaque.hash.value.for.tests.only",
            "lat": lat,
            "lng": lng,
            "language": "en",
        }
        data.update(overrides)
        return UserCreate(**data)

    return make


@pytest_asyncio.fixture
async def test_client(partitions):
    """
    HTTPX AsyncClient talking to an app wired to the test partitions.

    ASGITransport does not run the lifespan, so the app is built with the
    registry injected.
    """
    from dogsfy.main import create_app

    app = create_app(partitions=partitions)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
