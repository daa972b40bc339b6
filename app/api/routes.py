from fastapi import APIRouter

from app.api.endpoints.beacon import router as beacon_router
from app.api.endpoints.emails import router as emails_router
from app.api.endpoints.stats import router as stats_router

api_router = APIRouter()

api_router.include_router(emails_router, prefix="/api/emails", tags=["emails"])
api_router.include_router(stats_router, prefix="/api/stats", tags=["stats"])
api_router.include_router(beacon_router, prefix="/track", tags=["tracking"])
