import pytest
from compose_pages import COMPOSE_HTML, StubTrackerClient, page, settle

from extension.compose import ComposeMonitor, ComposeState
from extension.dom import SoupDocument
from extension.interceptor import BEACON_STYLE, NO_SUBJECT, SendInterceptor, inject_beacon
from extension.notifications import NOTIFICATION_CLASS, Notifier


def prepare(document: SoupDocument, tracker_client):
    interceptor = SendInterceptor(document, tracker_client, Notifier(document, ttl=5))
    monitor = ComposeMonitor(document, interceptor, settle_delay=0)
    monitor.start()
    session = monitor.registry.for_surface(document.query_selector('div[role="dialog"]'))
    return interceptor, session


def beacons(document: SoupDocument) -> list:
    return document.query_selector_all('div[aria-label="Message Body"] img')


def notifications(document: SoupDocument) -> list:
    return document.query_selector_all(f".{NOTIFICATION_CLASS}")


@pytest.mark.asyncio
async def test_send_click_injects_beacon(tracker_client):
    document = page(COMPOSE_HTML)
    interceptor, session = prepare(document, tracker_client)

    session.send_control.click()
    await interceptor.drain()

    assert tracker_client.calls == [{"recipient": "a@x.com, b@y.com", "subject": "Hi", "sender": "me"}]
    [pixel] = beacons(document)
    assert pixel.get_attribute("src") == "http://testserver/track/abc123.png"
    assert pixel.get_attribute("width") == "1"
    assert pixel.get_attribute("height") == "1"
    assert pixel.get_attribute("style") == BEACON_STYLE
    assert pixel.get_attribute("alt") == ""
    assert session.state == ComposeState.SENT_TRACKED
    assert session.tracked_email_id == "abc123"
    [notification] = notifications(document)
    assert notification.text_content == "Tracking enabled for: a@x.com"
    assert "mailtracker-notification-success" in notification.get_attribute("class")


@pytest.mark.asyncio
async def test_host_send_handler_is_never_blocked(tracker_client):
    document = page(COMPOSE_HTML)
    interceptor, session = prepare(document, tracker_client)
    seen_by_host = []

    def host_send(event):
        seen_by_host.append((interceptor.in_flight, len(tracker_client.calls)))

    session.send_control.add_event_listener("click", host_send)

    session.send_control.click()

    # The tracking call is in flight but has not run when the host sends
    assert seen_by_host == [(1, 0)]
    await interceptor.drain()
    assert len(beacons(document)) == 1


@pytest.mark.asyncio
async def test_capture_listener_runs_before_ancestor_bubble_listeners(tracker_client):
    document = page(COMPOSE_HTML)
    interceptor, session = prepare(document, tracker_client)
    order = []
    document.body.add_event_listener("click", lambda event: order.append(("body", interceptor.in_flight)))

    session.send_control.click()

    assert order == [("body", 1)]
    await interceptor.drain()


@pytest.mark.asyncio
async def test_disabled_tracking_leaves_message_alone(tracker_client):
    document = page(COMPOSE_HTML)
    interceptor, session = prepare(document, tracker_client)
    session.tracking_enabled = False

    assert interceptor.on_send(session) is None
    session.send_control.click()
    await interceptor.drain()

    assert tracker_client.calls == []
    assert beacons(document) == []
    assert notifications(document) == []
    assert session.state == ComposeState.SENT_UNTRACKED


@pytest.mark.asyncio
async def test_no_recipients_leaves_message_alone(tracker_client):
    document = page(
        """
        <div role="dialog">
          <input aria-label="To recipients" value="">
          <div aria-label="Message Body"></div>
          <div role="button" aria-label="Send">Send</div>
        </div>
        """
    )
    interceptor, session = prepare(document, tracker_client)

    session.send_control.click()
    await interceptor.drain()

    assert tracker_client.calls == []
    assert beacons(document) == []
    assert session.state == ComposeState.SENT_UNTRACKED


@pytest.mark.asyncio
async def test_missing_subject_uses_placeholder(tracker_client):
    document = page(
        """
        <div role="dialog">
          <input aria-label="To" value="c@z.com">
          <input name="subjectbox" value="">
          <div aria-label="Message Body"></div>
          <div role="button" aria-label="Send">Send</div>
        </div>
        """
    )
    interceptor, session = prepare(document, tracker_client)

    session.send_control.click()
    await interceptor.drain()

    assert tracker_client.calls == [{"recipient": "c@z.com", "subject": NO_SUBJECT, "sender": "me"}]


@pytest.mark.asyncio
async def test_tracker_failure_shows_error_and_keeps_message(failing_tracker_client):
    document = page(COMPOSE_HTML)
    interceptor, session = prepare(document, failing_tracker_client)

    session.send_control.click()
    await interceptor.drain()

    assert len(failing_tracker_client.calls) == 1
    assert beacons(document) == []
    assert session.state == ComposeState.SENT_UNTRACKED
    [notification] = notifications(document)
    assert notification.text_content == "Tracking failed - email will send without tracking"
    assert "mailtracker-notification-error" in notification.get_attribute("class")


@pytest.mark.asyncio
async def test_unexpected_client_error_takes_failure_path():
    document = page(COMPOSE_HTML)
    client = StubTrackerClient(error=RuntimeError("Session is closed"))
    interceptor, session = prepare(document, client)

    task = interceptor.on_send(session)
    await interceptor.drain()

    assert task.result() is False
    assert beacons(document) == []
    assert session.state == ComposeState.SENT_UNTRACKED
    [notification] = notifications(document)
    assert notification.text_content == "Tracking failed - email will send without tracking"


@pytest.mark.asyncio
async def test_injection_error_takes_failure_path(tracker_client, monkeypatch):
    def broken_inject(document, body, tracking_url):
        raise RuntimeError("Body is read-only")

    monkeypatch.setattr("extension.interceptor.inject_beacon", broken_inject)
    document = page(COMPOSE_HTML)
    interceptor, session = prepare(document, tracker_client)

    session.send_control.click()
    await interceptor.drain()

    assert len(tracker_client.calls) == 1
    assert session.state == ComposeState.SENT_UNTRACKED
    assert session.tracked_email_id is None
    [notification] = notifications(document)
    assert "mailtracker-notification-error" in notification.get_attribute("class")


@pytest.mark.asyncio
async def test_bind_is_once_per_session(tracker_client):
    document = page(COMPOSE_HTML)
    interceptor, session = prepare(document, tracker_client)

    assert interceptor.bind(session, session.send_control) is False

    session.send_control.click()
    await interceptor.drain()

    assert len(tracker_client.calls) == 1


@pytest.mark.asyncio
async def test_beacon_lands_after_compose_closes(tracker_client):
    document = page(COMPOSE_HTML)
    interceptor, session = prepare(document, tracker_client)
    body = document.query_selector('div[aria-label="Message Body"]')

    session.send_control.click()
    session.surface.remove()
    await settle()
    await interceptor.drain()

    # The race with the host's send is lost: the pixel goes into a detached body
    assert body.is_connected is False
    assert len(body.query_selector_all("img")) == 1
    assert session.state == ComposeState.SENT_TRACKED


def test_inject_beacon_appends_to_end_of_body():
    document = page('<div aria-label="Message Body"><p>Hello</p><p>Bye</p></div>')
    body = document.query_selector('div[aria-label="Message Body"]')

    pixel = inject_beacon(document, body, "http://testserver/track/x.png")

    assert body.children[-1] is pixel
    assert pixel.tag_name == "img"
