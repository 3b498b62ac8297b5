"""In-process cache of the latest position per station."""

import logging
from typing import Iterator, Optional

from yachtops.ais.models import GLOBE, BoundingBox, VesselPosition

logger = logging.getLogger(__name__)


class PositionCache:
    """Latest VesselPosition per MMSI.

    Entries live for the lifetime of the process. The cache is only touched
    from the event loop thread, so no locking is done here.
    """

    def __init__(self) -> None:
        self._positions: dict[str, VesselPosition] = {}

    def put(self, mmsi: str, position: VesselPosition) -> None:
        """Store position as the latest for mmsi, replacing any previous one."""
        self._positions[mmsi] = position

    def get(self, mmsi: str) -> Optional[VesselPosition]:
        return self._positions.get(mmsi)

    def all_within_bounds(
        self,
        north: float = GLOBE.north,
        south: float = GLOBE.south,
        east: float = GLOBE.east,
        west: float = GLOBE.west,
    ) -> list[VesselPosition]:
        """Return cached positions with a fix inside the inclusive box."""
        return self.within(BoundingBox(north=north, south=south, east=east, west=west))

    def within(self, bbox: BoundingBox) -> list[VesselPosition]:
        return [
            position
            for position in self._positions.values()
            if position.is_valid and bbox.contains(position.latitude, position.longitude)
        ]

    def clear(self) -> None:
        self._positions.clear()

    def __len__(self) -> int:
        return len(self._positions)

    def __contains__(self, mmsi: object) -> bool:
        return mmsi in self._positions

    def __iter__(self) -> Iterator[VesselPosition]:
        return iter(list(self._positions.values()))
