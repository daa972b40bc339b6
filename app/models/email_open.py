from datetime import datetime

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, utcnow


class EmailOpen(Base):
    """A beacon fetch that was not folded into an earlier one."""

    __tablename__ = "opens"

    email_id: Mapped[str] = mapped_column(sa.ForeignKey("emails.id"), nullable=False)
    opened_at: Mapped[datetime] = mapped_column(sa.DateTime(), nullable=False, default=utcnow)
    ip_address: Mapped[str | None] = mapped_column(sa.String(255), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(sa.Text, nullable=True)

    __table_args__ = (sa.Index("ix_opens_email_ip_opened_at", "email_id", "ip_address", "opened_at"),)

    def __repr__(self) -> str:
        return f"<EmailOpen(email='{self.email_id}', ip='{self.ip_address}', opened_at={self.opened_at})>"
