"""
Content script bootstrap: wires the monitor, interceptor, tracker client and
notifications to one host document.
"""

import logging
from typing import Callable

from extension.client import TrackerClient
from extension.compose import ComposeMonitor
from extension.dom import HostDocument, MutationRecord
from extension.interceptor import SendInterceptor
from extension.locators import MAIN_VIEW_SELECTOR
from extension.notifications import Notifier
from settings import settings

DASHBOARD_BUTTON_ID = "mailtracker-dashboard-btn"

logger = logging.getLogger(__name__)


class TrackerContentScript:
    def __init__(
        self,
        document: HostDocument,
        client: TrackerClient | None = None,
        notifier: Notifier | None = None,
        settle_delay: float | None = None,
    ):
        self._document = document
        self.client = client or TrackerClient()
        self.notifier = notifier or Notifier(document)
        self.interceptor = SendInterceptor(document, self.client, self.notifier)
        self.monitor = ComposeMonitor(document, self.interceptor, settle_delay=settle_delay)
        self._wait_disconnect: Callable[[], None] | None = None

    def start(self) -> None:
        logger.info("Mail tracker content script loaded")
        self.mount_dashboard_link()

        if self._document.query_selector(MAIN_VIEW_SELECTOR) is not None:
            self.monitor.start()
            return

        # Host app still booting
        self._wait_disconnect = self._document.observe(self._on_page_mutation)

    def _on_page_mutation(self, records: list[MutationRecord]) -> None:
        if self._document.query_selector(MAIN_VIEW_SELECTOR) is None:
            return

        self._stop_waiting()
        self.monitor.start()

    def _stop_waiting(self) -> None:
        if self._wait_disconnect is not None:
            self._wait_disconnect()
            self._wait_disconnect = None

    def mount_dashboard_link(self) -> None:
        if self._document.query_selector(f"#{DASHBOARD_BUTTON_ID}") is not None:
            return

        link = self._document.create_element(
            "a",
            {"id": DASHBOARD_BUTTON_ID, "href": settings.extension.dashboard_url, "target": "_blank", "rel": "noopener"},
            text="Dashboard",
        )
        self._document.body.append_child(link)

    async def stop(self) -> None:
        self._stop_waiting()
        self.monitor.stop()
        await self.interceptor.drain()
        self.notifier.clear()
        await self.client.close()
