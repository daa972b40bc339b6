import pytest
from compose_pages import COMPOSE_HTML, SETTLE_DELAY, page, settle

from extension.compose import SESSION_ATTRIBUTE, TOGGLE_CLASS, ComposeMonitor, ComposeState, SessionRegistry
from extension.dom import Event, SoupDocument
from extension.interceptor import SendInterceptor
from extension.notifications import Notifier

BODYLESS_DIALOG = """
<div role="dialog" id="compose">
  <table><tr class="btC"><td class="gU"></td></tr></table>
  <span email="a@x.com"></span>
</div>
"""


def make_monitor(document: SoupDocument, tracker_client) -> ComposeMonitor:
    interceptor = SendInterceptor(document, tracker_client, Notifier(document, ttl=1))
    return ComposeMonitor(document, interceptor, settle_delay=SETTLE_DELAY)


def toggles(document: SoupDocument) -> list:
    return document.query_selector_all(f".{TOGGLE_CLASS}")


def test_registry_stamps_and_removes():
    document = page(COMPOSE_HTML)
    surface = document.query_selector("#compose")
    registry = SessionRegistry()

    session = registry.register(surface)

    assert surface.get_attribute(SESSION_ATTRIBUTE) == session.session_id
    assert registry.register(surface) is session
    assert registry.for_surface(surface) is session
    assert len(registry) == 1

    assert registry.remove(session.session_id) is session
    assert registry.for_surface(surface) is None
    assert session.session_id not in registry


@pytest.mark.asyncio
async def test_existing_compose_is_prepared_on_start(tracker_client):
    document = page(COMPOSE_HTML)
    monitor = make_monitor(document, tracker_client)

    monitor.start()

    surface = document.query_selector("#compose")
    session = monitor.registry.for_surface(surface)
    assert session.state == ComposeState.LISTENER_BOUND
    assert session.tracking_enabled is True
    assert session.send_control is document.query_selector('#compose div[role="button"]')
    toolbar = document.query_selector("tr.btC td.gU")
    assert toggles(document) == [toolbar.children[-1]]
    assert session.toggle.query_selector('input[type="checkbox"]').checked is True
    monitor.stop()


@pytest.mark.asyncio
async def test_inserted_compose_is_checked_after_settling(tracker_client):
    document = page()
    monitor = make_monitor(document, tracker_client)
    monitor.start()

    [surface] = document.body.append_html(COMPOSE_HTML)
    await settle(0)
    session = monitor.registry.for_surface(surface)
    assert session.state == ComposeState.DISCOVERED
    assert session.session_id in monitor.pending

    await settle()

    assert session.state == ComposeState.LISTENER_BOUND
    assert monitor.pending == set()
    assert len(toggles(document)) == 1
    monitor.stop()


@pytest.mark.asyncio
async def test_compose_nested_in_inserted_container(tracker_client):
    document = page()
    monitor = make_monitor(document, tracker_client)
    monitor.start()

    document.body.append_html(f'<div class="overlay"><div class="frame">{COMPOSE_HTML}</div></div>')
    await settle()

    session = monitor.registry.for_surface(document.query_selector("#compose"))
    assert session.state == ComposeState.LISTENER_BOUND
    monitor.stop()


@pytest.mark.asyncio
async def test_surface_without_body_waits_for_later_mutations(tracker_client):
    document = page()
    monitor = make_monitor(document, tracker_client)
    monitor.start()

    [surface] = document.body.append_html(BODYLESS_DIALOG)
    await settle()

    session = monitor.registry.for_surface(surface)
    assert session.state == ComposeState.DISCOVERED
    assert session.send_control is None
    assert toggles(document) == []
    assert monitor.pending == set()

    surface.append_html(
        '<div aria-label="Message Body" contenteditable="true"></div><div role="button" aria-label="Send">Send</div>'
    )
    await settle()

    assert session.state == ComposeState.LISTENER_BOUND
    assert len(toggles(document)) == 1
    monitor.stop()


@pytest.mark.asyncio
async def test_surface_is_prepared_once(tracker_client):
    document = page(COMPOSE_HTML)
    monitor = make_monitor(document, tracker_client)
    monitor.start()

    surface = document.query_selector("#compose")
    surface.append_html("<div>draft saved</div>")
    monitor.discover(surface)
    await settle()
    assert monitor.qualify(surface) is True

    assert len(toggles(document)) == 1
    assert len(monitor.registry) == 1
    monitor.stop()


@pytest.mark.asyncio
async def test_toggle_falls_back_to_presentation_table(tracker_client):
    document = page(
        """
        <div role="dialog" id="compose">
          <div aria-label="Message Body" contenteditable="true"></div>
          <div class="footer"><table role="presentation" id="anchor"></table></div>
        </div>
        """
    )
    monitor = make_monitor(document, tracker_client)
    monitor.start()

    footer = document.query_selector(".footer")
    assert [child.get_attribute("class") for child in footer.children] == [TOGGLE_CLASS, None]
    assert footer.children[1].get_attribute("id") == "anchor"
    monitor.stop()


@pytest.mark.asyncio
async def test_toggle_falls_back_to_first_child(tracker_client):
    document = page('<div role="dialog" id="compose"><div aria-label="Message Body"></div></div>')
    monitor = make_monitor(document, tracker_client)
    monitor.start()

    surface = document.query_selector("#compose")
    assert surface.first_child.get_attribute("class") == TOGGLE_CLASS
    monitor.stop()


@pytest.mark.asyncio
async def test_toggle_change_updates_session(tracker_client):
    document = page(COMPOSE_HTML)
    monitor = make_monitor(document, tracker_client)
    monitor.start()
    session = monitor.registry.for_surface(document.query_selector("#compose"))
    checkbox = session.toggle.query_selector('input[type="checkbox"]')

    checkbox.checked = False
    checkbox.dispatch_event(Event("change"))
    assert session.tracking_enabled is False

    checkbox.checked = True
    checkbox.dispatch_event(Event("change"))
    assert session.tracking_enabled is True
    monitor.stop()


@pytest.mark.asyncio
async def test_send_control_rendered_later_is_bound(tracker_client):
    document = page('<div role="dialog" id="compose"><div aria-label="Message Body"></div></div>')
    monitor = make_monitor(document, tracker_client)
    monitor.start()
    surface = document.query_selector("#compose")
    session = monitor.registry.for_surface(surface)
    assert session.state == ComposeState.QUALIFIED

    surface.append_html('<div class="bar"><div role="button" aria-label="Send" id="send">Send</div></div>')
    await settle()

    assert session.state == ComposeState.LISTENER_BOUND
    assert session.send_control is document.query_selector("#send")
    monitor.stop()


@pytest.mark.asyncio
async def test_removed_surface_is_abandoned_and_erased(tracker_client):
    document = page(COMPOSE_HTML)
    monitor = make_monitor(document, tracker_client)
    monitor.start()
    surface = document.query_selector("#compose")
    session = monitor.registry.for_surface(surface)

    surface.remove()
    await settle()

    assert session.state == ComposeState.ABANDONED
    assert session.session_id not in monitor.registry
    assert len(monitor.registry) == 0
    monitor.stop()


@pytest.mark.asyncio
async def test_surface_removed_before_settling_is_never_prepared(tracker_client):
    document = page()
    monitor = make_monitor(document, tracker_client)
    monitor.start()

    [surface] = document.body.append_html(COMPOSE_HTML)
    await settle(0)
    surface.remove()
    await settle()

    assert monitor.pending == set()
    assert len(monitor.registry) == 0
    assert surface.query_selector(f".{TOGGLE_CLASS}") is None
    monitor.stop()


@pytest.mark.asyncio
async def test_sent_surface_keeps_its_final_state_on_removal(tracker_client):
    document = page(COMPOSE_HTML)
    monitor = make_monitor(document, tracker_client)
    monitor.start()
    surface = document.query_selector("#compose")
    session = monitor.registry.for_surface(surface)
    session.tracking_enabled = False

    session.send_control.click()
    surface.remove()
    await settle()

    assert session.state == ComposeState.SENT_UNTRACKED
    assert len(monitor.registry) == 0
    monitor.stop()


@pytest.mark.asyncio
async def test_stop_disconnects(tracker_client):
    document = page()
    monitor = make_monitor(document, tracker_client)
    monitor.start()
    monitor.stop()

    document.body.append_html(COMPOSE_HTML)
    await settle()

    assert len(monitor.registry) == 0
    assert monitor.is_running is False


@pytest.mark.asyncio
async def test_reattached_surface_is_prepared_afresh(tracker_client):
    document = page(COMPOSE_HTML)
    monitor = make_monitor(document, tracker_client)
    monitor.start()
    surface = document.query_selector("#compose")
    first = monitor.registry.for_surface(surface)

    surface.remove()
    await settle()
    assert surface.get_attribute(SESSION_ATTRIBUTE) is None
    assert surface.query_selector(f".{TOGGLE_CLASS}") is None

    document.body.append_child(surface)
    await settle()

    second = monitor.registry.for_surface(surface)
    assert second is not first
    assert second.state == ComposeState.LISTENER_BOUND
    assert surface.get_attribute(SESSION_ATTRIBUTE) == second.session_id
    [toggle] = toggles(document)
    assert toggle is second.toggle

    checkbox = toggle.query_selector('input[type="checkbox"]')
    checkbox.checked = False
    checkbox.dispatch_event(Event("change"))
    assert second.tracking_enabled is False

    second.send_control.click()
    assert second.state == ComposeState.SENT_UNTRACKED
    assert first.state == ComposeState.ABANDONED
    assert tracker_client.calls == []
    monitor.stop()


@pytest.mark.asyncio
async def test_stop_removes_toggles_and_session_marks(tracker_client):
    document = page(COMPOSE_HTML)
    monitor = make_monitor(document, tracker_client)
    monitor.start()
    surface = document.query_selector("#compose")
    assert len(toggles(document)) == 1

    monitor.stop()

    assert toggles(document) == []
    assert surface.get_attribute(SESSION_ATTRIBUTE) is None
    assert len(monitor.registry) == 0
