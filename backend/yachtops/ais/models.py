"""Internal AIS data representation models.

Canonical position records produced by the feed pipeline, the bounding box
used for subscriptions and cache scans, and the two position report frame
shapes the feed is known to send.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional, Union


def to_utc_iso(value: datetime) -> str:
    """ISO-8601 with a Z suffix. Naive datetimes are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def utc_now_iso() -> str:
    """Current UTC time as ISO-8601 with a Z suffix."""
    return to_utc_iso(datetime.now(timezone.utc))


@dataclass(frozen=True)
class BoundingBox:
    """Geographic bounding box, edges inclusive."""

    north: float = 90.0
    south: float = -90.0
    east: float = 180.0
    west: float = -180.0

    def __post_init__(self) -> None:
        """Validate bounding box coordinates."""
        if not (-90 <= self.south <= 90 and -90 <= self.north <= 90):
            raise ValueError("Latitude must be between -90 and 90")
        if not (-180 <= self.west <= 180 and -180 <= self.east <= 180):
            raise ValueError("Longitude must be between -180 and 180")
        if self.south > self.north:
            raise ValueError("south must be <= north")
        if self.west > self.east:
            raise ValueError("west must be <= east")

    @classmethod
    def from_params(
        cls,
        north: Optional[float] = None,
        south: Optional[float] = None,
        east: Optional[float] = None,
        west: Optional[float] = None,
    ) -> "BoundingBox":
        """Build a box from optional query parameters, missing edges open."""
        return cls(
            north=90.0 if north is None else north,
            south=-90.0 if south is None else south,
            east=180.0 if east is None else east,
            west=-180.0 if west is None else west,
        )

    def contains(self, latitude: float, longitude: float) -> bool:
        """Check if a point is within the bounding box."""
        return (
            self.south <= latitude <= self.north
            and self.west <= longitude <= self.east
        )

    def to_subscription(self) -> list[list[float]]:
        """Return as [[lon_min, lat_min], [lon_max, lat_max]]."""
        return [[self.west, self.south], [self.east, self.north]]


GLOBE = BoundingBox()


@dataclass
class VesselPosition:
    """Latest known position of a station, as cached and served."""

    mmsi: str
    vessel_id: int
    name: str
    latitude: float
    longitude: float
    speed: float = 0.0  # knots
    heading: float = 0.0  # degrees
    timestamp: str = ""  # ISO-8601

    @property
    def has_fix(self) -> bool:
        """A 0/0 report means the transponder had no position."""
        return not (self.latitude == 0 and self.longitude == 0)

    @property
    def is_valid(self) -> bool:
        """Fix present and coordinates within range."""
        return (
            self.has_fix
            and -90 <= self.latitude <= 90
            and -180 <= self.longitude <= 180
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "mmsi": self.mmsi,
            "vesselId": self.vessel_id,
            "name": self.name,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "speed": self.speed,
            "heading": self.heading,
            "timestamp": self.timestamp,
        }


# Feed frame variants. Both carry the same logical content; the parser picks
# exactly one per frame based on the frame's structure.

@dataclass(frozen=True)
class NestedPositionReport:
    """Current feed shape: report fields under Message.PositionReport."""

    user_id: str
    latitude: float = 0.0
    longitude: float = 0.0
    sog: float = 0.0
    true_heading: float = 0.0
    ship_name: Optional[str] = None

    @property
    def mmsi(self) -> str:
        return self.user_id

    @property
    def heading(self) -> float:
        return self.true_heading


@dataclass(frozen=True)
class FlatPositionReport:
    """Legacy feed shape: report fields at the top level of the frame."""

    mmsi: str
    latitude: float = 0.0
    longitude: float = 0.0
    sog: float = 0.0
    heading: float = 0.0
    ship_name: Optional[str] = None


PositionReportFrame = Union[NestedPositionReport, FlatPositionReport]
