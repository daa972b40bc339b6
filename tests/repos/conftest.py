import pytest_asyncio

from app.database import DatabaseManager


@pytest_asyncio.fixture
async def tables(database_url: str) -> str:
    """Create the schema in the per-test database and hand back its URL."""
    database_manager = DatabaseManager()
    database_manager.init_db(database_url)
    await database_manager.create_tables()
    await database_manager.close()
    return database_url
