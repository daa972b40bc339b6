"""
Tracked emails router - create, list and inspect tracked emails.
"""

import logging

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, Path, Query, status

from app.api.payloads import APIError, CreateEmailRequest, CreateEmailResponse, EmailDetailResponse, EmailListItem
from app.container import ApplicationContainer
from app.controllers.tracking.tracking_controller import TrackingController
from app.exceptions import BaseError, InternalError
from app.repos.tracked_email import EmailSort

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=CreateEmailResponse,
    responses={
        400: {"model": APIError, "description": "Missing recipient"},
        500: {"model": APIError, "description": "Internal server error"},
    },
    summary="Create a tracked email",
    description="Creates a tracked email and returns the beacon URL and image tag to embed in it",
)
@inject
async def create_email(
    payload: CreateEmailRequest,
    tracking_controller: TrackingController = Depends(Provide[ApplicationContainer.controllers.tracking_controller]),
) -> CreateEmailResponse:
    try:
        created = await tracking_controller.create_email(
            recipient=payload.recipient, subject=payload.subject, sender=payload.sender
        )
    except BaseError:
        raise
    except Exception as e:
        logger.exception("Failed to create tracked email")
        raise InternalError("Failed to create email") from e

    return CreateEmailResponse.from_result(created)


@router.get(
    "",
    response_model=list[EmailListItem],
    responses={
        400: {"model": APIError, "description": "Invalid sort"},
        500: {"model": APIError, "description": "Internal server error"},
    },
    summary="List tracked emails",
    description="Lists all tracked emails with their open counts, newest first by default",
)
@inject
async def list_emails(
    sort: EmailSort = Query(EmailSort.RECENT, description="recent, most_opens or last_opened"),
    tracking_controller: TrackingController = Depends(Provide[ApplicationContainer.controllers.tracking_controller]),
) -> list[EmailListItem]:
    try:
        summaries = await tracking_controller.list_emails(sort)
    except Exception as e:
        logger.exception("Failed to fetch tracked emails")
        raise InternalError("Failed to fetch emails") from e

    return [EmailListItem.from_summary(summary) for summary in summaries]


@router.get(
    "/{email_id}",
    response_model=EmailDetailResponse,
    responses={
        404: {"model": APIError, "description": "Email not found"},
        500: {"model": APIError, "description": "Internal server error"},
    },
    summary="Get a tracked email",
    description="Gets a tracked email with its full open history, most recent open first",
)
@inject
async def get_email(
    email_id: str = Path(..., examples=["3f9a0c1d2b4e5f60718293a4b5c6d7e8"]),
    tracking_controller: TrackingController = Depends(Provide[ApplicationContainer.controllers.tracking_controller]),
) -> EmailDetailResponse:
    try:
        detail = await tracking_controller.get_email_detail(email_id)
    except BaseError:
        raise
    except Exception as e:
        logger.exception(f"Failed to fetch tracked email {email_id}")
        raise InternalError("Failed to fetch email") from e

    return EmailDetailResponse.from_result(detail)
