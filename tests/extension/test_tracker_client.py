from typing import AsyncIterator

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from extension.client import TrackerClient, TrackerClientError

CREATED = {
    "id": "3f9a0c1d2b4e5f60718293a4b5c6d7e8",
    "recipient": "a@x.com, b@y.com",
    "subject": "Hi",
    "sender": "me",
    "created_at": "2026-01-15T09:30:00Z",
    "tracking_url": "http://tracker.test/track/3f9a0c1d2b4e5f60718293a4b5c6d7e8.png",
    "tracking_html": '<img src="http://tracker.test/track/3f9a0c1d2b4e5f60718293a4b5c6d7e8.png">',
}


def tracker_app(received: list) -> web.Application:
    async def create_email(request: web.Request) -> web.Response:
        received.append(await request.json())
        return web.json_response(CREATED, status=201)

    async def health(request: web.Request) -> web.Response:
        return web.json_response({"ok": True})

    async def broken(request: web.Request) -> web.Response:
        return web.json_response({"error": "internal_error"}, status=500)

    async def garbled(request: web.Request) -> web.Response:
        return web.json_response({"id": "only-an-id"}, status=201)

    app = web.Application()
    app.router.add_post("/api/emails", create_email)
    app.router.add_get("/health", health)
    app.router.add_post("/broken/api/emails", broken)
    app.router.add_post("/garbled/api/emails", garbled)
    return app


@pytest_asyncio.fixture
async def server() -> AsyncIterator[TestServer]:
    test_server = TestServer(tracker_app([]))
    await test_server.start_server()
    yield test_server
    await test_server.close()


@pytest.mark.asyncio
async def test_create_tracked_email():
    received: list = []
    server = TestServer(tracker_app(received))
    await server.start_server()
    client = TrackerClient(api_base=str(server.make_url("")))

    try:
        created = await client.create_tracked_email(recipient="a@x.com, b@y.com", subject="Hi")
    finally:
        await client.close()
        await server.close()

    assert received == [{"recipient": "a@x.com, b@y.com", "subject": "Hi", "sender": "me"}]
    assert created.id == CREATED["id"]
    assert created.tracking_url == CREATED["tracking_url"]


@pytest.mark.asyncio
async def test_health_check(server: TestServer):
    client = TrackerClient(api_base=str(server.make_url("/")))

    try:
        assert await client.health_check() == {"ok": True}
    finally:
        await client.close()


@pytest.mark.asyncio
async def test_server_error_raises(server: TestServer):
    client = TrackerClient(api_base=str(server.make_url("/broken")))

    with pytest.raises(TrackerClientError) as error:
        await client.create_tracked_email(recipient="a@x.com", subject="Hi")
    await client.close()

    assert error.value.status == 500


@pytest.mark.asyncio
async def test_unexpected_payload_raises(server: TestServer):
    client = TrackerClient(api_base=str(server.make_url("/garbled")))

    with pytest.raises(TrackerClientError):
        await client.create_tracked_email(recipient="a@x.com", subject="Hi")
    await client.close()


@pytest.mark.asyncio
async def test_unreachable_tracker_raises():
    client = TrackerClient(api_base="http://127.0.0.1:9", timeout=2)

    with pytest.raises(TrackerClientError):
        await client.create_tracked_email(recipient="a@x.com", subject="Hi")
    await client.close()


@pytest.mark.asyncio
async def test_session_is_shared_and_recreated_after_close(server: TestServer):
    client = TrackerClient(api_base=str(server.make_url("")))

    first = await client.init_session()
    assert await client.init_session() is first

    await client.close()
    second = await client.init_session()
    assert second is not first
    await client.close()
