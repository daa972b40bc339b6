from .base import Base
from .email_open import EmailOpen
from .tracked_email import TrackedEmail

__all__ = [
    "Base",
    "EmailOpen",
    "TrackedEmail",
]
