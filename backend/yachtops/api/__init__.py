"""API routes for YachtOps.

Main API router that combines all route modules.
"""

from fastapi import APIRouter

from yachtops.api.marine import (
    get_marine_service,
    marine_error_handler,
    request_validation_handler,
)
from yachtops.api.marine import router as marine_router

router = APIRouter()

# Include marine (AIS) routes
router.include_router(marine_router)

__all__ = [
    "router",
    "get_marine_service",
    "marine_error_handler",
    "request_validation_handler",
]
