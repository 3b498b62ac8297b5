"""Marine API endpoints.

Provides endpoints for:
- Fleet vessels joined with live AIS positions
- Vessel positions by MMSI or bounding box
- Vessel details and search via the upstream AIS API
- Manual position corrections
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from yachtops.ais.errors import MarineServiceError, ServiceUnavailable, ValidationFailed
from yachtops.ais.models import BoundingBox
from yachtops.ais.service import MarineService
from yachtops.api.schemas import PositionUpdateRequest, VesselPositionResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/marine", tags=["Marine"])


def get_marine_service(request: Request) -> MarineService:
    """Dependency returning the service built at startup."""
    service = getattr(request.app.state, "marine_service", None)
    if service is None:
        raise ServiceUnavailable("AIS service not initialized")
    return service


async def marine_error_handler(request: Request, exc: MarineServiceError) -> JSONResponse:
    """Render MarineServiceError as its error envelope."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Render request parsing failures as a 400 validation envelope."""
    problems = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        problems.append(f"{field}: {error.get('msg')}" if field else str(error.get("msg")))
    logger.debug(f"{request.method} {request.url.path}: invalid request: {problems}")
    return await marine_error_handler(
        request, ValidationFailed("; ".join(problems) or "Invalid request")
    )


def _split_mmsi(values: Optional[list[str]]) -> list[str]:
    """Accept repeated ?mmsi= params as well as comma-separated lists."""
    identifiers = []
    for value in values or []:
        identifiers.extend(part.strip() for part in value.split(",") if part.strip())
    return identifiers


@router.get("/fleet-vessels")
async def get_fleet_vessels(
    service: MarineService = Depends(get_marine_service),
) -> list[dict[str, Any]]:
    """Get fleet vessels with their live position where one is cached."""
    return await service.get_fleet_vessels()


@router.get(
    "/vessel-positions",
    response_model=list[VesselPositionResponse],
    summary="Get vessel positions",
    description="""
Get latest AIS positions.

**Query Parameters:**
- `mmsi`: One or more MMSIs (repeated or comma-separated)
- `showAll`: Return every cached position inside the bounds
- `north`, `south`, `east`, `west`: Bounds for `showAll` (default: whole globe)

**Example:**
```
GET /api/marine/vessel-positions?showAll=true&north=27&south=24&east=-79&west=-82
```
    """,
)
async def get_vessel_positions(
    service: MarineService = Depends(get_marine_service),
    mmsi: Optional[list[str]] = Query(None, description="MMSI to look up"),
    show_all: bool = Query(False, alias="showAll"),
    north: Optional[float] = Query(None),
    south: Optional[float] = Query(None),
    east: Optional[float] = Query(None),
    west: Optional[float] = Query(None),
) -> list[dict[str, Any]]:
    bounds = None
    if show_all:
        try:
            bounds = BoundingBox.from_params(north=north, south=south, east=east, west=west)
        except ValueError as e:
            raise ValidationFailed(f"Invalid bounds: {e}")

    return await service.get_positions(
        identifiers=_split_mmsi(mmsi),
        bounds=bounds,
        show_all=show_all,
    )


@router.get("/vessel-details/{mmsi}")
async def get_vessel_details(
    mmsi: str,
    service: MarineService = Depends(get_marine_service),
) -> dict[str, Any]:
    """Get details for one vessel; never 404s."""
    return await service.get_vessel_details(mmsi)


@router.get("/search-vessels")
async def search_vessels(
    service: MarineService = Depends(get_marine_service),
    query: Optional[str] = Query(None, description="Name, MMSI or IMO"),
) -> list[dict[str, Any]]:
    """Search vessels; 503 when the AIS service cannot answer."""
    return await service.search_vessels(query)


@router.post("/update-vessel-position")
async def update_vessel_position(
    body: PositionUpdateRequest,
    service: MarineService = Depends(get_marine_service),
) -> dict[str, Any]:
    """Correct a vessel's position by hand."""
    return await service.update_position_manually(
        mmsi=str(body.mmsi) if body.mmsi is not None else None,
        vessel_id=body.vesselId,
        latitude=body.latitude,
        longitude=body.longitude,
        heading=body.heading,
        speed=body.speed,
    )
