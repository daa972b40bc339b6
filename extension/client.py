import asyncio
import logging
from typing import Any

import aiohttp
from pydantic import ValidationError

from app.api.payloads.emails import CreateEmailResponse
from settings import settings


class TrackerClientError(Exception):
    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class TrackerClient:
    """HTTP client for the tracking service, shared by every compose session on the page."""

    def __init__(self, api_base: str | None = None, timeout: float | None = None) -> None:
        self._logger = logging.getLogger(__name__)
        self._api_base = (api_base or settings.extension.api_base).rstrip("/")
        self._timeout = settings.extension.request_timeout if timeout is None else timeout
        self._http_session: aiohttp.ClientSession | None = None
        self._session_lock = asyncio.Lock()

    @property
    def api_base(self) -> str:
        return self._api_base

    async def init_session(self) -> aiohttp.ClientSession:
        async with self._session_lock:
            if self._http_session is None or self._http_session.closed:
                timeout = aiohttp.ClientTimeout(total=self._timeout)
                self._http_session = aiohttp.ClientSession(timeout=timeout)
            return self._http_session

    async def close(self) -> None:
        if self._http_session:
            await self._http_session.close()
            self._http_session = None

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        session = await self.init_session()
        url = f"{self._api_base}{path}"

        try:
            async with session.request(method, url, **kwargs) as response:
                if response.status >= 400:
                    self._logger.warning(f"Tracker API error; url: {url}, status: {response.status}")
                    raise TrackerClientError(f"API error: {response.status}", status=response.status)
                return await response.json()
        except asyncio.TimeoutError as e:
            raise TrackerClientError(f"Request to {url} timed out") from e
        except (aiohttp.ClientError, ValueError) as e:
            raise TrackerClientError(f"Request to {url} failed: {e}") from e

    async def create_tracked_email(self, recipient: str, subject: str, sender: str = "me") -> CreateEmailResponse:
        payload = await self._request(
            "POST", "/api/emails", json={"recipient": recipient, "subject": subject, "sender": sender}
        )

        try:
            created = CreateEmailResponse.model_validate(payload)
        except ValidationError as e:
            raise TrackerClientError(f"Unexpected response from tracker: {e}") from e

        self._logger.info(f"Created tracked email; email_id: {created.id}")
        return created

    async def health_check(self) -> dict[str, Any]:
        return await self._request("GET", "/health")
