"""Engine and session factory for the async SQLModel database.

The engine URL comes from settings: PostgreSQL through asyncpg in
deployed environments, or any SQLAlchemy async URL given as DATABASE_URL.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Dict

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool
from sqlmodel import SQLModel

from linkgate.core.config import settings

logger = logging.getLogger(__name__)

_QUEUE_POOL = {
    "pool_size": settings.POSTGRES_POOL_SIZE,
    "max_overflow": settings.POSTGRES_POOL_MAX_OVERFLOW,
    "pool_timeout": settings.POSTGRES_POOL_TIMEOUT,
    "pool_recycle": settings.POSTGRES_POOL_RECYCLE,
    "pool_pre_ping": True,
}

# Engine keyword arguments per environment
ENGINE_CONFIGS: Dict[str, Dict] = {
    "development": {"echo": settings.DB_ECHO, **_QUEUE_POOL},
    "staging": {"echo": False, **_QUEUE_POOL},
    "production": {"echo": False, **_QUEUE_POOL},
    "testing": {"echo": False, "poolclass": NullPool},
}


def get_engine_config() -> Dict:
    """Engine keyword arguments for the current environment.

    SQLite drivers reject the queue pool options, so they are dropped
    for sqlite URLs.
    """
    config = dict(ENGINE_CONFIGS.get(settings.ENVIRONMENT.value, ENGINE_CONFIGS["development"]))
    if settings.SQLALCHEMY_DATABASE_URI.startswith("sqlite"):
        for option in _QUEUE_POOL:
            config.pop(option, None)
    return config


def get_engine() -> AsyncEngine:
    logger.info(f"Creating database engine for environment: {settings.ENVIRONMENT.value}")
    return create_async_engine(settings.SQLALCHEMY_DATABASE_URI, **get_engine_config())


engine = get_engine()

async_session_factory = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


@asynccontextmanager
async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Open a session and always close it, for work outside a request."""
    session = async_session_factory()
    try:
        yield session
    finally:
        await session.close()


async def create_db_and_tables() -> None:
    """Create any missing tables for the registered SQLModel models.

    Used for local development and SQLite deployments; managed databases
    are expected to carry the schema already.
    """
    # Registers the table models on SQLModel.metadata
    import linkgate.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    logger.info("Database tables ensured")
