import logging
from pathlib import Path
from typing import Any

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from app.models import Base
from settings import settings

logger = logging.getLogger(__name__)


def ensure_sqlite_directory(database_url: str) -> None:
    """Create the parent directory of a file-backed SQLite database."""
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite" or not url.database or url.database == ":memory:":
        return
    Path(url.database).expanduser().resolve().parent.mkdir(parents=True, exist_ok=True)


def engine_args(database_url: str) -> dict[str, Any]:
    """
    Engine keyword arguments for a SQLite database.

    Raises:
        ValueError: For any other backend. The single-statement open dedup relies on SQLite
            taking its write lock before the statement reads, which other backends don't do
            under their default isolation.
    """
    backend = make_url(database_url).get_backend_name()
    if backend != "sqlite":
        raise ValueError(f"Unsupported database backend: {backend}")

    return {
        "echo": settings.database.echo,
        # seconds a writer waits on another connection's write lock
        "connect_args": {"timeout": settings.database.busy_timeout},
    }


class DatabaseManager:
    """SQLAlchemy async engine owner for schema management outside the request cycle."""

    _engine: AsyncEngine | None

    def __init__(self) -> None:
        self._engine = None

    def init_db(self, database_url: str | None = None) -> None:
        """Initialize the database engine."""
        if self._engine is not None:
            return

        db_url = database_url or settings.database.url
        ensure_sqlite_directory(db_url)
        self._engine = create_async_engine(db_url, **engine_args(db_url))

        logger.info("Database engine initialized")

    async def create_tables(self) -> None:
        """Create all tables."""
        if not self._engine:
            raise RuntimeError("Database not initialized. Call init_db() first.")

        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        logger.info("Database tables created")

    async def drop_tables(self) -> None:
        """Drop all tables."""
        if not self._engine:
            raise RuntimeError("Database not initialized. Call init_db() first.")

        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

        logger.info("Database tables dropped")

    async def close(self) -> None:
        """Close the database engine."""
        if self._engine:
            await self._engine.dispose()
            self._engine = None
            logger.info("Database engine closed")
