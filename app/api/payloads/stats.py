from pydantic import BaseModel, Field

from app.repos.tracked_email import EmailStats


class StatsResponse(BaseModel):
    """Aggregate tracking statistics."""

    total_emails: int = Field(..., description="Tracked emails created")
    total_opens: int = Field(..., description="Recorded (deduplicated) opens")
    emails_opened: int = Field(..., description="Emails with at least one open")
    open_rate: int = Field(..., description="Whole percentage of emails opened")

    @classmethod
    def from_stats(cls, stats: EmailStats) -> "StatsResponse":
        return cls(
            total_emails=stats.total_emails,
            total_opens=stats.total_opens,
            emails_opened=stats.emails_opened,
            open_rate=stats.open_rate,
        )
