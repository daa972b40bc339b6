from datetime import datetime, timedelta

import sqlalchemy as sa

from app.models import EmailOpen, TrackedEmail
from app.repos.base import BaseRepo


class EmailOpenRepo(BaseRepo[EmailOpen]):
    """Repository for EmailOpen model operations."""

    def __init__(self) -> None:
        super().__init__(EmailOpen)

    async def list_for_email(self, email_id: str) -> list[EmailOpen]:
        """Opens of one email, most recent first."""
        result = await self.execute(
            self.base_stmt.where(EmailOpen.email_id == email_id).order_by(
                EmailOpen.opened_at.desc(), EmailOpen.id.desc()
            )
        )
        return list(result.all())

    async def record_if_not_recent(
        self,
        email_id: str,
        ip_address: str | None,
        user_agent: str | None,
        now: datetime,
        window: timedelta,
    ) -> tuple[EmailOpen | None, bool]:
        """
        Record an open unless the same (email, source address) opened within the window.

        The existence check, the window check and the insert run as one INSERT ... SELECT,
        so two concurrent identical hits can never both insert: the second one waits on the
        storage write lock and then sees the first one's row.

        Returns:
            The open now covering this hit (None for an unknown email) and whether it was inserted.
        """
        same_viewer = sa.and_(
            EmailOpen.email_id == email_id,
            EmailOpen.ip_address.is_not_distinct_from(ip_address),
        )
        known_email = sa.select(TrackedEmail.id).where(TrackedEmail.id == email_id).correlate(None)
        recent_open = sa.select(EmailOpen.id).where(same_viewer, EmailOpen.opened_at > now - window).correlate(None)

        candidate = sa.select(
            sa.literal(email_id, sa.String()),
            sa.literal(now, sa.DateTime()),
            sa.literal(ip_address, sa.String()),
            sa.literal(user_agent, sa.Text()),
        ).where(known_email.exists(), ~recent_open.exists())

        result = await self._db.session.execute(
            sa.insert(EmailOpen).from_select(["email_id", "opened_at", "ip_address", "user_agent"], candidate)
        )
        inserted = bool(result.rowcount)

        email_open = await self.first(
            self.base_stmt.where(same_viewer).order_by(EmailOpen.opened_at.desc(), EmailOpen.id.desc())
        )
        await self.commit()

        return email_open, inserted
