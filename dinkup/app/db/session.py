"""
Database session configuration.

Async SQLAlchemy engine and session factory for the ledger. PostgreSQL
(asyncpg) in production; a SQLite URL is accepted for local runs, in which
case the connection pool sizing settings are ignored.
"""

from typing import Any, Dict

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from dinkup.app.core.config import settings


def _engine_options(database_url: str) -> Dict[str, Any]:
    options: Dict[str, Any] = {"echo": settings.db_echo, "future": True}
    if make_url(database_url).get_backend_name() != "sqlite":
        options["pool_size"] = settings.db_pool_size
        options["max_overflow"] = settings.db_max_overflow
        options["pool_pre_ping"] = True
    return options


engine = create_async_engine(settings.database_url, **_engine_options(settings.database_url))

# Sessions outlive their commit so endpoints can serialize what they just wrote
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

Base = declarative_base()


async def init_models() -> None:
    """Create any missing ledger tables."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_db():
    """
    FastAPI dependency for database sessions.

    Endpoints commit explicitly; anything left uncommitted when the
    request fails is rolled back so a half-applied ledger write never
    reaches the database.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
