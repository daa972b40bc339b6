import asyncio
import enum
import itertools
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Iterator

from extension.dom import Event, HostDocument, HostElement, MutationRecord
from extension.locators import (
    COMPOSE_SURFACE_SELECTOR,
    TOGGLE_FALLBACK_ANCHOR_SELECTOR,
    TOOLBAR_SELECTOR,
    locate_compose_elements,
)
from settings import settings

if TYPE_CHECKING:
    from extension.interceptor import SendInterceptor

SESSION_ATTRIBUTE = "data-mailtracker-session"
TOGGLE_CLASS = "mailtracker-toggle-container"


class ComposeState(str, enum.Enum):
    DISCOVERED = "discovered"
    QUALIFIED = "qualified"
    LISTENER_BOUND = "listener_bound"
    SENT_TRACKED = "sent_tracked"
    SENT_UNTRACKED = "sent_untracked"
    ABANDONED = "abandoned"


FINAL_STATES = (ComposeState.SENT_TRACKED, ComposeState.SENT_UNTRACKED, ComposeState.ABANDONED)


@dataclass(eq=False)
class ComposeSession:
    session_id: str
    surface: HostElement
    state: ComposeState = ComposeState.DISCOVERED
    tracking_enabled: bool = True
    toggle: HostElement | None = None
    send_control: HostElement | None = None
    tracked_email_id: str | None = None
    _cleanups: list[Callable[[], None]] = field(default_factory=list, repr=False)

    @property
    def is_qualified(self) -> bool:
        return self.state is not ComposeState.DISCOVERED

    def on_release(self, cleanup: Callable[[], None]) -> None:
        self._cleanups.append(cleanup)

    def release(self) -> None:
        cleanups, self._cleanups = self._cleanups, []
        for cleanup in cleanups:
            cleanup()


class SessionRegistry:
    """Live compose sessions keyed by a synthetic id stamped on the surface element."""

    def __init__(self) -> None:
        self._sessions: dict[str, ComposeSession] = {}
        self._ids = itertools.count(1)

    def __len__(self) -> int:
        return len(self._sessions)

    def __iter__(self) -> Iterator[ComposeSession]:
        return iter(list(self._sessions.values()))

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    def get(self, session_id: str) -> ComposeSession | None:
        return self._sessions.get(session_id)

    def for_surface(self, surface: HostElement) -> ComposeSession | None:
        session_id = surface.get_attribute(SESSION_ATTRIBUTE)
        if session_id is None:
            return None
        session = self._sessions.get(session_id)
        if session is None or session.surface is not surface:
            return None
        return session

    def register(self, surface: HostElement) -> ComposeSession:
        session = self.for_surface(surface)
        if session is not None:
            return session

        session = ComposeSession(session_id=f"compose-{next(self._ids)}", surface=surface)
        surface.set_attribute(SESSION_ATTRIBUTE, session.session_id)
        self._sessions[session.session_id] = session
        return session

    def remove(self, session_id: str) -> ComposeSession | None:
        session = self._sessions.pop(session_id, None)
        if session is None:
            return None

        session.release()
        # A re-attached surface is discovered afresh
        if session.surface.get_attribute(SESSION_ATTRIBUTE) == session_id:
            session.surface.remove_attribute(SESSION_ATTRIBUTE)
        return session


class ComposeMonitor:
    """Finds compose surfaces as the host renders them and prepares each one for tracking exactly once."""

    def __init__(
        self,
        document: HostDocument,
        interceptor: "SendInterceptor",
        registry: SessionRegistry | None = None,
        settle_delay: float | None = None,
    ):
        self._logger = logging.getLogger(__name__)
        self._document = document
        self._interceptor = interceptor
        self.registry = registry or SessionRegistry()
        self._settle_delay = settings.extension.settle_delay if settle_delay is None else settle_delay
        self._pending: dict[str, asyncio.TimerHandle] = {}
        self._disconnect: Callable[[], None] | None = None

    @property
    def is_running(self) -> bool:
        return self._disconnect is not None

    @property
    def pending(self) -> set[str]:
        return set(self._pending)

    def start(self) -> None:
        if self.is_running:
            return

        for surface in self._document.query_selector_all(COMPOSE_SURFACE_SELECTOR):
            self.qualify(surface)

        self._disconnect = self._document.observe(self._on_mutations)
        self._logger.info("Compose monitor started")

    def stop(self) -> None:
        if self._disconnect is not None:
            self._disconnect()
            self._disconnect = None

        for handle in self._pending.values():
            handle.cancel()
        self._pending.clear()

        for session in self.registry:
            self.registry.remove(session.session_id)

        self._logger.info("Compose monitor stopped")

    def discover(self, surface: HostElement) -> ComposeSession:
        """Register a candidate surface and check it once the host has had time to render its internals."""
        session = self.registry.register(surface)
        if session.is_qualified or session.session_id in self._pending:
            return session

        self._logger.debug(f"Compose surface discovered; session: {session.session_id}")
        loop = asyncio.get_running_loop()
        self._pending[session.session_id] = loop.call_later(self._settle_delay, self._settled, surface)
        return session

    def qualify(self, surface: HostElement) -> bool:
        """Mount the toggle and send listener if the surface has a message body."""
        session = self.registry.register(surface)
        if session.is_qualified:
            return True

        elements = locate_compose_elements(surface)
        if elements.body is None:
            self._logger.debug(f"No message body yet, waiting for more markup; session: {session.session_id}")
            return False

        session.state = ComposeState.QUALIFIED
        self._logger.info(f"Compose surface qualified; session: {session.session_id}")
        self._mount_toggle(session)

        if elements.send_control is not None:
            self._interceptor.bind(session, elements.send_control)
        else:
            self._watch_for_send_control(session)

        return True

    def _settled(self, surface: HostElement) -> None:
        session = self.registry.for_surface(surface)
        if session is None:
            return

        self._pending.pop(session.session_id, None)
        if surface.is_connected:
            self.qualify(surface)

    def _on_mutations(self, records: list[MutationRecord]) -> None:
        for record in records:
            for node in record.removed_nodes:
                for surface in self._surfaces_within(node):
                    self._forget(surface)

            for node in record.added_nodes:
                for surface in self._surfaces_within(node):
                    if surface.is_connected:
                        self.discover(surface)

            # Markup landing inside a known but unqualified surface earns it another check
            enclosing = record.target.closest(COMPOSE_SURFACE_SELECTOR)
            if enclosing is not None and enclosing.is_connected:
                session = self.registry.for_surface(enclosing)
                if session is None or not session.is_qualified:
                    self.discover(enclosing)

    def _surfaces_within(self, node: HostElement) -> list[HostElement]:
        surfaces = node.query_selector_all(COMPOSE_SURFACE_SELECTOR)
        if node.matches(COMPOSE_SURFACE_SELECTOR):
            surfaces.insert(0, node)
        return surfaces

    def _forget(self, surface: HostElement) -> None:
        if surface.is_connected:
            # Moved, not removed
            return

        session = self.registry.for_surface(surface)
        if session is None:
            return

        handle = self._pending.pop(session.session_id, None)
        if handle is not None:
            handle.cancel()

        self.registry.remove(session.session_id)
        if session.state not in FINAL_STATES:
            session.state = ComposeState.ABANDONED
        self._logger.info(f"Compose surface removed; session: {session.session_id}, state: {session.state.value}")

    def _mount_toggle(self, session: ComposeSession) -> HostElement:
        toggle = self._document.create_element("div", {"class": TOGGLE_CLASS})
        label = self._document.create_element("label", {"class": "mailtracker-toggle"})
        checkbox = self._document.create_element("input", {"type": "checkbox", "checked": ""})
        label.append_child(checkbox)
        label.append_child(self._document.create_element("span", {"class": "mailtracker-toggle-slider"}))
        label.append_child(self._document.create_element("span", {"class": "mailtracker-toggle-label"}, text="Track"))
        toggle.append_child(label)

        def on_change(event: Event) -> None:
            session.tracking_enabled = bool(event.target.checked)
            self._logger.info(
                f"Tracking {'enabled' if session.tracking_enabled else 'disabled'}; session: {session.session_id}"
            )

        checkbox.add_event_listener("change", on_change)

        surface = session.surface
        toolbar = surface.query_selector(TOOLBAR_SELECTOR)
        anchor = surface.query_selector(TOGGLE_FALLBACK_ANCHOR_SELECTOR)
        if toolbar is not None:
            toolbar.append_child(toggle)
        elif anchor is not None and anchor.parent is not None:
            anchor.parent.insert_before(toggle, anchor)
        else:
            surface.insert_before(toggle, surface.first_child)

        session.toggle = toggle
        session.on_release(toggle.remove)
        return toggle

    def _watch_for_send_control(self, session: ComposeSession) -> None:
        self._logger.debug(f"Send control not rendered yet, watching; session: {session.session_id}")

        def on_mutations(records: list[MutationRecord]) -> None:
            send_control = locate_compose_elements(session.surface).send_control
            if send_control is not None:
                disconnect()
                self._interceptor.bind(session, send_control)

        disconnect = self._document.observe(on_mutations, root=session.surface)
        session.on_release(disconnect)
