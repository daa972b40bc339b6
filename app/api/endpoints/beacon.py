"""
Beacon router - the image fetched by a recipient's mail client when a tracked email is rendered.

Every request gets the same transparent pixel with the same headers, whether the id is
unknown, newly recorded, deduplicated or failed to record. Only the logs tell them apart.
"""

import logging

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, Path, Request, Response

from app.constants.beacon import NO_STORE_HEADERS, TRANSPARENT_PNG, USER_AGENT_LOG_LENGTH
from app.container import ApplicationContainer
from app.controllers.tracking.results import BeaconHit, BeaconOutcome
from app.controllers.tracking.tracking_controller import TrackingController
from settings import settings

logger = logging.getLogger(__name__)
router = APIRouter()


def source_address(request: Request) -> str | None:
    """First X-Forwarded-For hop when trusted, otherwise the socket peer."""
    if settings.server.trust_forwarded_for:
        forwarded_for = request.headers.get("x-forwarded-for")
        if forwarded_for:
            first_hop = forwarded_for.split(",")[0].strip()
            if first_hop:
                return first_hop
    return request.client.host if request.client else None


def pixel_response() -> Response:
    return Response(content=TRANSPARENT_PNG, media_type="image/png", headers=NO_STORE_HEADERS)


def _log_hit(hit: BeaconHit, ip_address: str | None, user_agent: str | None) -> None:
    agent = (user_agent or "")[:USER_AGENT_LOG_LENGTH]
    if hit.outcome == BeaconOutcome.RECORDED:
        logger.info(f"Email {hit.email_id} opened from {ip_address} using {agent}")
    elif hit.outcome == BeaconOutcome.DEDUPLICATED:
        logger.info(f"Email {hit.email_id} re-fetched from {ip_address} inside the dedup window")
    elif hit.outcome == BeaconOutcome.UNKNOWN:
        logger.info(f"Unknown email ID: {hit.email_id}")


@router.get(
    "/{email_id}.png",
    response_class=Response,
    responses={200: {"content": {"image/png": {}}, "description": "Transparent 1x1 PNG"}},
    summary="Tracking pixel",
    description="Records an open and always answers with a transparent 1x1 PNG",
)
@inject
async def track_open(
    request: Request,
    email_id: str = Path(...),
    tracking_controller: TrackingController = Depends(Provide[ApplicationContainer.controllers.tracking_controller]),
) -> Response:
    ip_address = source_address(request)
    user_agent = request.headers.get("user-agent")

    try:
        hit = await tracking_controller.record_open(email_id, ip_address, user_agent)
    except Exception:
        logger.exception(f"Failed to record open for email {email_id}")
        hit = BeaconHit(email_id=email_id, outcome=BeaconOutcome.FAILED)

    _log_hit(hit, ip_address, user_agent)
    return pixel_response()
