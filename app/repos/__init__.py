from .email_open import EmailOpenRepo
from .tracked_email import EmailSort, EmailStats, EmailSummary, TrackedEmailRepo

__all__ = [
    "EmailOpenRepo",
    "EmailSort",
    "EmailStats",
    "EmailSummary",
    "TrackedEmailRepo",
]
