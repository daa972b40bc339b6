from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi_async_sqlalchemy import SQLAlchemyMiddleware, db
from starlette.applications import Starlette

from app.database import engine_args, ensure_sqlite_directory
from settings import settings


@asynccontextmanager
async def fastapi_sqlalchemy_context(database_url: str | None = None) -> AsyncGenerator[None, None]:
    """Initialize fastapi_async_sqlalchemy for standalone scripts."""

    db_url = database_url or settings.database.url
    ensure_sqlite_directory(db_url)

    # Create a minimal Starlette app to initialize the middleware
    app = Starlette()
    SQLAlchemyMiddleware(app, db_url=db_url, engine_args=engine_args(db_url))

    async with db():
        yield
