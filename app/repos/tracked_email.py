import enum
import math
from dataclasses import dataclass
from datetime import datetime

import sqlalchemy as sa

from app.models import EmailOpen, TrackedEmail
from app.repos.base import BaseRepo


class EmailSort(enum.Enum):
    RECENT = "recent"
    MOST_OPENS = "most_opens"
    LAST_OPENED = "last_opened"


@dataclass
class EmailSummary:
    email: TrackedEmail
    open_count: int
    last_opened_at: datetime | None


@dataclass
class EmailStats:
    total_emails: int
    total_opens: int
    emails_opened: int
    open_rate: int


def open_rate_percent(emails_opened: int, total_emails: int) -> int:
    """Whole percentage of emails opened at least once, rounding halves up. Zero for an empty store."""
    if total_emails == 0:
        return 0
    return math.floor(100 * emails_opened / total_emails + 0.5)


class TrackedEmailRepo(BaseRepo[TrackedEmail]):
    """Repository for TrackedEmail model operations."""

    def __init__(self) -> None:
        super().__init__(TrackedEmail)

    async def create(
        self, email_id: str, recipient: str, subject: str | None, sender: str | None, created_at: datetime
    ) -> TrackedEmail:
        """Persist a new tracked email and commit it so the beacon resolves immediately."""
        email = TrackedEmail(id=email_id, recipient=recipient, subject=subject, sender=sender, created_at=created_at)
        await self.add(email, commit=True)
        return email

    async def list_with_open_counts(self, sort: EmailSort = EmailSort.RECENT) -> list[EmailSummary]:
        """List every tracked email with its open count and latest open."""
        open_count = sa.func.count(EmailOpen.id)
        last_opened_at = sa.func.max(EmailOpen.opened_at)

        query = (
            sa.select(TrackedEmail, open_count, last_opened_at)
            .outerjoin(EmailOpen, EmailOpen.email_id == TrackedEmail.id)
            .group_by(TrackedEmail.id)
        )
        if sort == EmailSort.MOST_OPENS:
            query = query.order_by(open_count.desc(), TrackedEmail.created_at.desc())
        elif sort == EmailSort.LAST_OPENED:
            query = query.order_by(sa.nulls_last(last_opened_at.desc()), TrackedEmail.created_at.desc())
        else:
            query = query.order_by(TrackedEmail.created_at.desc())

        result = await self._db.session.execute(query)
        return [
            EmailSummary(email=email, open_count=int(count), last_opened_at=last_opened)
            for email, count, last_opened in result.all()
        ]

    async def get_stats(self) -> EmailStats:
        """Aggregate counters over all emails and opens."""
        total_emails = await self.count()
        total_opens = await self.scalar(sa.select(sa.func.count(EmailOpen.id)))
        emails_opened = await self.scalar(
            sa.select(sa.func.count(sa.distinct(EmailOpen.email_id))).join(
                TrackedEmail, TrackedEmail.id == EmailOpen.email_id
            )
        )

        return EmailStats(
            total_emails=int(total_emails or 0),
            total_opens=int(total_opens or 0),
            emails_opened=int(emails_opened or 0),
            open_rate=open_rate_percent(int(emails_opened or 0), int(total_emails or 0)),
        )
