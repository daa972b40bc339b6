import pytest
from fastapi.testclient import TestClient

from app.constants.beacon import TRANSPARENT_PNG
from app.controllers.tracking.tracking_controller import TrackingController


def create_email(client: TestClient) -> dict:
    response = client.post("/api/emails", json={"recipient": "a@x.com", "subject": "Hi"})
    assert response.status_code == 201
    return response.json()


def open_count(client: TestClient, email_id: str) -> int:
    response = client.get(f"/api/emails/{email_id}")
    assert response.status_code == 200
    return response.json()["open_count"]


def assert_pixel(response) -> None:
    assert response.status_code == 200
    assert response.content == TRANSPARENT_PNG
    assert response.headers["content-type"] == "image/png"
    assert response.headers["cache-control"] == "no-store, no-cache, must-revalidate, proxy-revalidate"
    assert response.headers["pragma"] == "no-cache"
    assert response.headers["expires"] == "0"


def test_pixel_is_a_png(client: TestClient):
    email = create_email(client)

    response = client.get(f"/track/{email['id']}.png")

    assert_pixel(response)
    assert response.content.startswith(b"\x89PNG\r\n\x1a\n")


def test_repeated_fetches_inside_window_count_once(client: TestClient, clock):
    email = create_email(client)
    tracking_path = email["tracking_url"].removeprefix("http://testserver")

    for _ in range(3):
        assert_pixel(client.get(tracking_path))
        clock.advance(5)

    assert open_count(client, email["id"]) == 1

    clock.advance(61)
    assert_pixel(client.get(tracking_path))

    assert open_count(client, email["id"]) == 2


def test_window_is_measured_from_the_recorded_open(client: TestClient, clock):
    email = create_email(client)

    client.get(f"/track/{email['id']}.png")
    clock.advance(59)
    client.get(f"/track/{email['id']}.png")
    clock.advance(2)
    client.get(f"/track/{email['id']}.png")

    assert open_count(client, email["id"]) == 2


def test_different_sources_count_separately(client: TestClient):
    email = create_email(client)

    client.get(f"/track/{email['id']}.png", headers={"X-Forwarded-For": "203.0.113.7, 10.0.0.1"})
    client.get(f"/track/{email['id']}.png", headers={"X-Forwarded-For": "198.51.100.2"})
    client.get(f"/track/{email['id']}.png", headers={"X-Forwarded-For": "203.0.113.7"})

    detail = client.get(f"/api/emails/{email['id']}").json()
    assert detail["open_count"] == 2
    assert {item["ip_address"] for item in detail["opens"]} == {"203.0.113.7", "198.51.100.2"}


def test_socket_peer_used_without_forwarded_header(client: TestClient):
    email = create_email(client)

    client.get(f"/track/{email['id']}.png")

    detail = client.get(f"/api/emails/{email['id']}").json()
    assert detail["opens"][0]["ip_address"] == "testclient"


def test_unknown_id_gets_identical_pixel(client: TestClient):
    email = create_email(client)
    known = client.get(f"/track/{email['id']}.png")

    unknown = client.get("/track/does-not-exist.png")

    assert_pixel(unknown)
    assert unknown.content == known.content
    assert unknown.headers["cache-control"] == known.headers["cache-control"]
    assert unknown.headers["content-length"] == known.headers["content-length"]
    assert client.get("/api/stats").json()["total_opens"] == 1


def test_storage_failure_still_returns_pixel(client: TestClient, monkeypatch: pytest.MonkeyPatch):
    email = create_email(client)

    async def broken_record_open(self, email_id, ip_address, user_agent):
        raise RuntimeError("database is locked")

    monkeypatch.setattr(TrackingController, "record_open", broken_record_open)

    assert_pixel(client.get(f"/track/{email['id']}.png"))
