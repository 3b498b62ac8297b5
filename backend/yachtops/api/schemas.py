"""Pydantic schemas for the marine API endpoints."""

from typing import Optional, Union

from pydantic import BaseModel, Field


class VesselPositionResponse(BaseModel):
    """Latest position of one AIS station."""

    mmsi: str = Field(..., description="Maritime Mobile Service Identity")
    vesselId: int = Field(..., description="Fleet vessel reference")
    name: str = Field(..., description="Display name")
    latitude: float = Field(..., description="Latitude in degrees")
    longitude: float = Field(..., description="Longitude in degrees")
    speed: float = Field(0.0, description="Speed over ground (knots)")
    heading: float = Field(0.0, description="Heading (degrees)")
    timestamp: str = Field(..., description="Observation time (ISO 8601)")


class PositionUpdateRequest(BaseModel):
    """Manual position correction.

    Required fields are checked by the service so that missing values come
    back as a 400 error envelope.

    Example:
        {"mmsi": "366998410", "latitude": 25.77, "longitude": -80.13, "heading": 90}
    """

    mmsi: Optional[Union[str, int]] = None
    vesselId: Optional[int] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    heading: Optional[float] = None
    speed: Optional[float] = None
