from datetime import datetime

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, utcnow


class TrackedEmail(Base):
    """One outgoing message the sender chose to track."""

    __tablename__ = "emails"

    id: Mapped[str] = mapped_column(sa.String(64), primary_key=True)
    recipient: Mapped[str] = mapped_column(sa.Text, nullable=False)
    subject: Mapped[str | None] = mapped_column(sa.Text, nullable=True)
    sender: Mapped[str | None] = mapped_column(sa.Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(sa.DateTime(), nullable=False, default=utcnow, index=True)

    def __repr__(self) -> str:
        return f"<TrackedEmail(id='{self.id}', recipient='{self.recipient}')>"
