"""
API payloads package for Pydantic response/request models.
"""

from .emails import (
    CreateEmailRequest,
    CreateEmailResponse,
    EmailData,
    EmailDetailResponse,
    EmailListItem,
    OpenData,
)
from .error import APIError
from .stats import StatsResponse

__all__ = [
    "APIError",
    "CreateEmailRequest",
    "CreateEmailResponse",
    "EmailData",
    "EmailDetailResponse",
    "EmailListItem",
    "OpenData",
    "StatsResponse",
]
