import html
import logging
import secrets
from datetime import datetime, timedelta
from typing import Callable

from app.controllers.tracking.results import BeaconHit, BeaconOutcome, CreatedEmail, EmailDetail
from app.exceptions import EntityNotFoundError, InvalidDataError
from app.repos.email_open import EmailOpenRepo
from app.repos.tracked_email import EmailSort, EmailStats, EmailSummary, TrackedEmailRepo
from settings import settings


class TrackingController:
    """Creates tracked emails, records beacon hits and serves the read side."""

    def __init__(
        self,
        tracked_email_repo: TrackedEmailRepo,
        email_open_repo: EmailOpenRepo,
        clock: Callable[[], datetime],
    ):
        self._logger = logging.getLogger(__name__)
        self._tracked_email_repo = tracked_email_repo
        self._email_open_repo = email_open_repo
        self._clock = clock
        self._public_url = settings.server.public_url.rstrip("/")
        self._dedup_window = timedelta(seconds=settings.tracking.dedup_window_seconds)
        self._id_bytes = settings.tracking.id_bytes

    def tracking_url(self, email_id: str) -> str:
        return f"{self._public_url}/track/{email_id}.png"

    def tracking_html(self, email_id: str) -> str:
        src = html.escape(self.tracking_url(email_id), quote=True)
        return f'<img src="{src}" width="1" height="1" style="display:none" alt="">'

    async def create_email(self, recipient: str | None, subject: str | None, sender: str | None) -> CreatedEmail:
        if not recipient or not recipient.strip():
            raise InvalidDataError("recipient is required", field="recipient")

        email = await self._tracked_email_repo.create(
            email_id=secrets.token_hex(self._id_bytes),
            recipient=recipient,
            subject=subject,
            sender=sender,
            created_at=self._clock(),
        )
        self._logger.info(f"Created tracked email; email_id: {email.id}, recipient: {email.recipient}")

        return CreatedEmail(
            email=email, tracking_url=self.tracking_url(email.id), tracking_html=self.tracking_html(email.id)
        )

    async def record_open(self, email_id: str, ip_address: str | None, user_agent: str | None) -> BeaconHit:
        """Record a beacon fetch, folding it into an open from the same source inside the dedup window."""
        email_open, inserted = await self._email_open_repo.record_if_not_recent(
            email_id=email_id,
            ip_address=ip_address,
            user_agent=user_agent,
            now=self._clock(),
            window=self._dedup_window,
        )

        if email_open is None:
            return BeaconHit(email_id=email_id, outcome=BeaconOutcome.UNKNOWN)
        if inserted:
            return BeaconHit(email_id=email_id, outcome=BeaconOutcome.RECORDED, email_open=email_open)
        return BeaconHit(email_id=email_id, outcome=BeaconOutcome.DEDUPLICATED, email_open=email_open)

    async def list_emails(self, sort: EmailSort = EmailSort.RECENT) -> list[EmailSummary]:
        return await self._tracked_email_repo.list_with_open_counts(sort)

    async def get_email_detail(self, email_id: str) -> EmailDetail:
        email = await self._tracked_email_repo.get(email_id)
        if email is None:
            raise EntityNotFoundError("Email not found", email_id=email_id)

        opens = await self._email_open_repo.list_for_email(email_id)
        return EmailDetail(email=email, opens=opens)

    async def get_stats(self) -> EmailStats:
        return await self._tracked_email_repo.get_stats()
