"""Shared pytest fixtures for card tree tests."""

import pytest
from httpx import ASGITransport, AsyncClient

from cardtrees.db.connection import Database
from cardtrees.main import app
from cardtrees.trees.assembler import TreeAssembler
from cardtrees.trees.resolver import PayloadResolver
from cardtrees.trees.router import get_tree_service
from cardtrees.trees.service import CardTreeService
from cardtrees.trees.store import TreeStore


@pytest.fixture
async def db():
    """In-memory database for tests."""
    database = await Database.connect(":memory:")
    yield database
    await database.close()


@pytest.fixture
async def store(db):
    """TreeStore backed by in-memory database."""
    return TreeStore(db)


@pytest.fixture
async def resolver(db, store):
    """PayloadResolver sharing the store fixture."""
    return PayloadResolver(db, store)


@pytest.fixture
async def assembler(store):
    """TreeAssembler reading through the store fixture."""
    return TreeAssembler(store)


@pytest.fixture
async def client(db):
    """Async test client with in-memory DB wired into the app, acting as 'dana'."""
    service = CardTreeService.from_database(db)
    app.dependency_overrides[get_tree_service] = lambda: service
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={"X-Acting-User": "dana"},
    ) as client:
        yield client
    app.dependency_overrides.clear()
