"""
Pydantic models for tracked email endpoints.
"""

from datetime import datetime, timezone
from typing import Annotated

from pydantic import AfterValidator, BaseModel, Field

from app.controllers.tracking.results import CreatedEmail, EmailDetail
from app.models import EmailOpen, TrackedEmail
from app.repos.tracked_email import EmailSummary


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# Stored timestamps are naive UTC
UtcDatetime = Annotated[datetime, AfterValidator(_as_utc)]


class CreateEmailRequest(BaseModel):
    """Request body for creating a tracked email. Presence of recipient is checked by the controller."""

    recipient: str | None = None
    subject: str | None = None
    sender: str | None = None


class EmailData(BaseModel):
    """A tracked email as stored."""

    id: str
    recipient: str
    subject: str | None = None
    sender: str | None = None
    created_at: UtcDatetime

    @classmethod
    def from_model(cls, email: TrackedEmail) -> "EmailData":
        return cls(
            id=email.id,
            recipient=email.recipient,
            subject=email.subject,
            sender=email.sender,
            created_at=email.created_at,
        )


class CreateEmailResponse(EmailData):
    """Created email plus the beacon to embed in it."""

    tracking_url: str = Field(..., description="Fully qualified beacon URL")
    tracking_html: str = Field(..., description="Ready to embed invisible image tag")

    @classmethod
    def from_result(cls, created: CreatedEmail) -> "CreateEmailResponse":
        return cls(
            **EmailData.from_model(created.email).model_dump(),
            tracking_url=created.tracking_url,
            tracking_html=created.tracking_html,
        )


class EmailListItem(EmailData):
    """List entry with aggregate open information."""

    open_count: int
    last_opened_at: UtcDatetime | None = None

    @classmethod
    def from_summary(cls, summary: EmailSummary) -> "EmailListItem":
        return cls(
            **EmailData.from_model(summary.email).model_dump(),
            open_count=summary.open_count,
            last_opened_at=summary.last_opened_at,
        )


class OpenData(BaseModel):
    """One recorded open."""

    id: int
    email_id: str
    opened_at: UtcDatetime
    ip_address: str | None = None
    user_agent: str | None = None

    @classmethod
    def from_model(cls, email_open: EmailOpen) -> "OpenData":
        return cls(
            id=email_open.id,
            email_id=email_open.email_id,
            opened_at=email_open.opened_at,
            ip_address=email_open.ip_address,
            user_agent=email_open.user_agent,
        )


class EmailDetailResponse(EmailData):
    """A tracked email with its full open history, newest first."""

    open_count: int
    opens: list[OpenData] = Field(default_factory=list)

    @classmethod
    def from_result(cls, detail: EmailDetail) -> "EmailDetailResponse":
        return cls(
            **EmailData.from_model(detail.email).model_dump(),
            open_count=detail.open_count,
            opens=[OpenData.from_model(email_open) for email_open in detail.opens],
        )
