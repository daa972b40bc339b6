import asyncio
import logging

from extension.client import TrackerClient, TrackerClientError
from extension.compose import ComposeSession, ComposeState
from extension.dom import Event, HostDocument, HostElement
from extension.locators import extract_recipients, extract_subject, locate_compose_elements
from extension.notifications import Notifier

NO_SUBJECT = "(No subject)"
BEACON_STYLE = "display:none!important;width:1px!important;height:1px!important;opacity:0!important;"


def inject_beacon(document: HostDocument, body: HostElement, tracking_url: str) -> HostElement:
    """Append an invisible image pointing at the tracking URL to the end of the message body."""
    pixel = document.create_element(
        "img", {"src": tracking_url, "width": "1", "height": "1", "style": BEACON_STYLE, "alt": ""}
    )
    return body.append_child(pixel)


class SendInterceptor:
    """
    Hooks the host's send control and attaches a beacon to outgoing mail.

    The listener runs in the capture phase so it fires before the host's own
    send handling, but it never waits for the tracker: the create call runs as
    a background task and the beacon is injected whenever it answers. If the
    host serialises the body first, the message leaves untracked. There is no
    pre-send hook in the host that would let this be ordered deterministically.
    """

    def __init__(self, document: HostDocument, client: TrackerClient, notifier: Notifier):
        self._logger = logging.getLogger(__name__)
        self._document = document
        self._client = client
        self._notifier = notifier
        self._tasks: set[asyncio.Task] = set()

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def bind(self, session: ComposeSession, send_control: HostElement) -> bool:
        if session.send_control is not None:
            return False

        def on_click(event: Event) -> None:
            self.on_send(session)

        send_control.add_event_listener("click", on_click, capture=True)
        session.send_control = send_control
        session.state = ComposeState.LISTENER_BOUND
        session.on_release(lambda: send_control.remove_event_listener("click", on_click, capture=True))
        self._logger.info(f"Send listener bound; session: {session.session_id}")
        return True

    def on_send(self, session: ComposeSession) -> asyncio.Task | None:
        """Start tracking for a send click. Returns the background task, or None when nothing is tracked."""
        if not session.tracking_enabled:
            self._logger.info(f"Tracking disabled for this email; session: {session.session_id}")
            session.state = ComposeState.SENT_UNTRACKED
            return None

        recipients = extract_recipients(session.surface)
        if not recipients:
            self._logger.warning(f"No recipients found; session: {session.session_id}")
            session.state = ComposeState.SENT_UNTRACKED
            return None

        subject = extract_subject(session.surface) or NO_SUBJECT
        body = locate_compose_elements(session.surface).body
        self._logger.info(f"Sending tracked email; session: {session.session_id}, recipients: {', '.join(recipients)}")

        task = asyncio.get_running_loop().create_task(self._track(session, recipients, subject, body))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _track(
        self, session: ComposeSession, recipients: list[str], subject: str, body: HostElement | None
    ) -> bool:
        try:
            created = await self._client.create_tracked_email(recipient=", ".join(recipients), subject=subject)
        except TrackerClientError as e:
            self._logger.error(f"Failed to create tracked email; session: {session.session_id}, error: {e}")
            return self._fail(session)
        except Exception as e:
            self._logger.exception(f"Tracker call crashed; session: {session.session_id}, error: {e}")
            return self._fail(session)

        if not created.tracking_url or body is None:
            self._logger.error(f"Nothing to inject; session: {session.session_id}, email_id: {created.id}")
            return self._fail(session)

        try:
            inject_beacon(self._document, body, created.tracking_url)
        except Exception as e:
            self._logger.exception(f"Failed to inject tracking pixel; session: {session.session_id}, error: {e}")
            return self._fail(session)

        session.state = ComposeState.SENT_TRACKED
        session.tracked_email_id = created.id
        self._logger.info(f"Tracking pixel injected; session: {session.session_id}, url: {created.tracking_url}")
        self._notifier.show(f"Tracking enabled for: {recipients[0]}")
        return True

    def _fail(self, session: ComposeSession) -> bool:
        session.state = ComposeState.SENT_UNTRACKED
        self._notifier.show("Tracking failed - email will send without tracking", kind="error")
        return False

    async def drain(self) -> None:
        """Wait for tracking calls still in flight."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
