"""Database configuration and session management"""

import uuid
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from .config import settings


def async_database_url(url: str) -> str:
    """Route plain sqlite URLs through the aiosqlite driver"""
    if url.startswith("sqlite:///"):
        return url.replace("sqlite:///", "sqlite+aiosqlite:///")
    return url


def create_engine_for(url: str):
    url = async_database_url(url)
    return create_async_engine(
        url,
        echo=False,
        future=True,
        connect_args={"check_same_thread": False} if "sqlite" in url else {},
    )


def create_session_factory(bind) -> async_sessionmaker:
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


def new_id() -> str:
    """Identity for catalog rows and the files stored under them"""
    return str(uuid.uuid4())


engine = create_engine_for(settings.DATABASE_URL)

AsyncSessionLocal = create_session_factory(engine)
Base = declarative_base()


async def init_db(bind=None):
    """
    Initialize database (create tables)
    Safe to call multiple times - only creates tables that don't exist
    """
    # Import all models to ensure they're registered with Base.metadata
    from . import models  # noqa: F401

    async with (bind or engine).begin() as conn:

        def create_tables(connection):
            # checkfirst=True makes create_all skip existing tables
            Base.metadata.create_all(connection, checkfirst=True)

        await conn.run_sync(create_tables)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
