import asyncio

from extension.dom import HostDocument, HostElement
from settings import settings

NOTIFICATION_CLASS = "mailtracker-notification"


class Notifier:
    """Transient toast shown in the host page, removed after a fixed delay."""

    def __init__(self, document: HostDocument, ttl: float | None = None):
        self._document = document
        self._ttl = settings.extension.notification_ttl if ttl is None else ttl
        self._handles: dict[HostElement, asyncio.TimerHandle] = {}

    @property
    def visible(self) -> list[HostElement]:
        return list(self._handles)

    def show(self, message: str, kind: str = "success") -> HostElement:
        notification = self._document.create_element(
            "div", {"class": f"{NOTIFICATION_CLASS} {NOTIFICATION_CLASS}-{kind} show"}, text=message
        )
        self._document.body.append_child(notification)

        loop = asyncio.get_running_loop()
        self._handles[notification] = loop.call_later(self._ttl, self.dismiss, notification)
        return notification

    def dismiss(self, notification: HostElement) -> None:
        handle = self._handles.pop(notification, None)
        if handle is not None:
            handle.cancel()
        if notification.is_connected:
            notification.remove()

    def clear(self) -> None:
        for notification in list(self._handles):
            self.dismiss(notification)
