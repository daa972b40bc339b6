"""
Middleware that closes the request's database transaction once the handler has answered.
"""

import logging
from typing import Awaitable, Callable

from fastapi import Request, Response
from fastapi_async_sqlalchemy import db
from fastapi_async_sqlalchemy.exceptions import MissingSessionError
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)


class AutoCommitMiddleware(BaseHTTPMiddleware):
    """
    Commits the request's transaction for successful responses and rolls it back for server errors.

    Writes on the beacon path commit inside the repository, so by the time this runs there is
    usually nothing left to flush; the middleware only guarantees no transaction is left open.
    """

    async def dispatch(self, request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        try:
            response = await call_next(request)
        except Exception as e:
            await self._rollback(reason=str(e))
            raise

        if response.status_code >= 500:
            await self._rollback(reason=f"status {response.status_code}")
            return response

        try:
            await db.session.commit()
            logger.debug("Database transaction committed successfully")
        except MissingSessionError:
            logger.debug("No database session found for request - skipping commit")
        except Exception as e:
            logger.warning(f"Failed to commit database transaction: {e}")

        return response

    async def _rollback(self, reason: str) -> None:
        try:
            await db.session.rollback()
            logger.error(f"Database transaction rolled back; reason: {reason}")
        except MissingSessionError:
            logger.debug("No database session found for rollback - skipping rollback")
        except Exception as e:
            logger.warning(f"Failed to rollback database transaction: {e}")
