import enum
from dataclasses import dataclass, field

from app.models import EmailOpen, TrackedEmail


class BeaconOutcome(enum.Enum):
    """What a beacon fetch did. Every outcome is answered with the same pixel."""

    RECORDED = "recorded"
    DEDUPLICATED = "deduplicated"
    UNKNOWN = "unknown"
    FAILED = "failed"


@dataclass
class BeaconHit:
    email_id: str
    outcome: BeaconOutcome
    email_open: EmailOpen | None = None


@dataclass
class CreatedEmail:
    email: TrackedEmail
    tracking_url: str
    tracking_html: str


@dataclass
class EmailDetail:
    email: TrackedEmail
    opens: list[EmailOpen] = field(default_factory=list)

    @property
    def open_count(self) -> int:
        return len(self.opens)
