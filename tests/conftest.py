"""Test fixtures for the link redirector."""

import os
import tempfile

# Settings are read at import time, so the environment is prepared first
os.environ["ENVIRONMENT"] = "testing"
os.environ["DEBUG"] = "false"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["LOG_DIR"] = tempfile.mkdtemp(prefix="linkgate-logs-")
os.environ["REQUEST_LOGGING_ENABLED"] = "false"
os.environ["OBJECT_STORE_BUCKET"] = ""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Generator

import pytest
import pytest_asyncio
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool
from sqlmodel import SQLModel

from linkgate.api.dependencies import get_interstitial_secret, get_object_store, get_visit_recorder
from linkgate.db.session import get_db
from linkgate.main import app as main_app
from linkgate.repositories.link_repository import LinkRepository
from linkgate.repositories.visit_repository import VisitRepository
from linkgate.services.visits import VisitRecorder
# Import models to ensure they're registered with SQLModel metadata
import linkgate.models  # noqa: F401

from tests.utils import DEFAULT_HOST, TEST_SECRET, FakeObjectStore


@pytest_asyncio.fixture
async def test_engine(tmp_path):
    """Create a file backed SQLite engine per test.

    NullPool hands out a fresh connection on every checkout, so the
    TestClient's event loop never reuses a connection opened by the
    test's own loop.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'linkgate.db'}",
        poolclass=NullPool,
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_maker(test_engine):
    return async_sessionmaker(bind=test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def test_db(session_maker) -> AsyncGenerator[AsyncSession, None]:
    """Session used by tests to seed and inspect data."""
    async with session_maker() as session:
        yield session


@pytest.fixture
def session_factory(session_maker):
    """Session factory with the same shape as linkgate.db.base.get_session."""
    @asynccontextmanager
    async def _session():
        async with session_maker() as session:
            yield session

    return _session


@pytest.fixture
def visit_recorder(session_factory) -> VisitRecorder:
    return VisitRecorder(
        visit_repository=VisitRepository(),
        link_repository=LinkRepository(),
        session_factory=session_factory,
    )


@pytest.fixture
def object_store() -> FakeObjectStore:
    return FakeObjectStore()


@pytest.fixture
def test_app(session_maker, visit_recorder, object_store) -> Generator[FastAPI, None, None]:
    """FastAPI app wired to the test database, object store and secret."""
    async def _override_get_db():
        async with session_maker() as session:
            yield session

    async def _override_get_visit_recorder():
        return visit_recorder

    async def _override_get_object_store():
        return object_store

    app = main_app
    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_visit_recorder] = _override_get_visit_recorder
    app.dependency_overrides[get_object_store] = _override_get_object_store
    app.dependency_overrides[get_interstitial_secret] = lambda: TEST_SECRET
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(test_app) -> Generator[TestClient, None, None]:
    """Return FastAPI TestClient instance that does not follow redirects."""
    with TestClient(test_app, base_url=f"http://{DEFAULT_HOST}", follow_redirects=False) as test_client:
        yield test_client


@pytest.fixture
def link_repository() -> LinkRepository:
    return LinkRepository()

