import logging

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends

from app.api.payloads import APIError, StatsResponse
from app.container import ApplicationContainer
from app.controllers.tracking.tracking_controller import TrackingController
from app.exceptions import InternalError

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get(
    "",
    response_model=StatsResponse,
    responses={500: {"model": APIError, "description": "Internal server error"}},
    summary="Get tracking statistics",
)
@inject
async def get_stats(
    tracking_controller: TrackingController = Depends(Provide[ApplicationContainer.controllers.tracking_controller]),
) -> StatsResponse:
    try:
        stats = await tracking_controller.get_stats()
    except Exception as e:
        logger.exception("Failed to fetch stats")
        raise InternalError("Failed to fetch stats") from e

    return StatsResponse.from_stats(stats)
