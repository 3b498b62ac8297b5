"""Stand-ins for data the live feed does not (yet) provide.

- IdentifierHeuristic: vessel reference and display name guessed from an MMSI
- DemoFallbackProvider: synthetic positions for allow-listed fleet vessels
- Sample positions and details served when no AIS API key is configured

Each piece is injected into the service separately so it can be removed
without touching the feed pipeline.
"""

import logging
import random
from typing import Any, Optional

from yachtops.ais.models import VesselPosition, utc_now_iso
from yachtops.ais.store import VesselRepository

logger = logging.getLogger(__name__)


class IdentifierHeuristic:
    """Derives convenience fields from an MMSI.

    The derived vessel id is not a key into the fleet store.
    """

    digits_used = 8
    modulus = 1000
    name_digits = 4

    def _digits(self, mmsi: str) -> str:
        return "".join(ch for ch in str(mmsi) if ch.isdigit())

    def vessel_id(self, mmsi: str) -> int:
        """Last 8 digits of the MMSI as an integer, modulo 1000."""
        digits = self._digits(mmsi)[-self.digits_used:]
        if not digits:
            return 0
        return int(digits) % self.modulus

    def display_name(self, mmsi: str, name: Optional[str] = None) -> str:
        if name and name.strip():
            return name.strip()
        suffix = self._digits(mmsi)[-self.name_digits:] or str(mmsi)
        return f"Vessel {suffix}"


# Reference coordinates for vessels known to exist in the demo fleet
DEMO_REFERENCE_POSITIONS: dict[str, tuple[float, float]] = {
    "366998410": (25.7617, -80.1918),
    "366759530": (25.8102, -80.1251),
    "367671640": (25.6789, -80.2345),
}


class DemoFallbackProvider:
    """Fabricates plausible positions for allow-listed fleet vessels.

    Keeps demo and staging maps populated until the live feed covers the
    fleet. Only used when the vessel exists in the store.
    """

    def __init__(
        self,
        reference_positions: Optional[dict[str, tuple[float, float]]] = None,
        jitter_degrees: float = 0.05,
        rng: Optional[random.Random] = None,
    ):
        self.reference_positions = dict(
            DEMO_REFERENCE_POSITIONS if reference_positions is None else reference_positions
        )
        self.jitter_degrees = jitter_degrees
        self._rng = rng or random.Random()

    @property
    def identifiers(self) -> list[str]:
        return list(self.reference_positions)

    def covers(self, mmsi: str) -> bool:
        return mmsi in self.reference_positions

    async def synthesize(
        self, mmsi: str, repository: VesselRepository
    ) -> Optional[VesselPosition]:
        """Return a synthetic position near the reference point, or None."""
        if not self.covers(mmsi):
            return None

        vessels = await repository.find_by_mmsi(mmsi)
        if not vessels:
            return None

        vessel = vessels[0]
        logger.debug(f"Synthesizing demo position for {vessel.name} (MMSI {mmsi})")
        ref_lat, ref_lon = self.reference_positions[mmsi]
        jitter = self.jitter_degrees
        return VesselPosition(
            mmsi=mmsi,
            vessel_id=vessel.id,
            name=vessel.name,
            latitude=round(ref_lat + self._rng.uniform(-jitter, jitter), 6),
            longitude=round(ref_lon + self._rng.uniform(-jitter, jitter), 6),
            speed=round(self._rng.uniform(0, 12), 1),
            heading=float(self._rng.randint(0, 359)),
            timestamp=utc_now_iso(),
        )


# (mmsi, vessel_id, name, latitude, longitude, speed, heading)
_SAMPLE_POSITIONS = [
    ("319904000", 4, "Aurora", 26.0912, -80.1097, 0.0, 180.0),
    ("366998410", 1, "Serenity", 25.7617, -80.1918, 12.5, 135.0),
    ("366759530", 2, "Blue Horizon", 25.8102, -80.1251, 0.0, 270.0),
    ("367671640", 3, "Ocean Explorer", 25.6789, -80.2345, 8.3, 45.0),
]

SAMPLE_VESSEL_DETAILS: dict[str, dict[str, Any]] = {
    "319904000": {
        "mmsi": "319904000",
        "name": "Aurora",
        "type": "Motor Yacht",
        "length": 62,
        "width": 11.2,
        "flag": "Cayman Islands",
    },
    "366998410": {
        "mmsi": "366998410",
        "name": "Serenity",
        "type": "Yacht",
        "length": 48,
        "width": 8.5,
        "flag": "USA",
    },
    "366759530": {
        "mmsi": "366759530",
        "name": "Blue Horizon",
        "type": "Motor Yacht",
        "length": 55,
        "width": 9.2,
        "flag": "UK",
    },
    "367671640": {
        "mmsi": "367671640",
        "name": "Ocean Explorer",
        "type": "Sailing Yacht",
        "length": 32,
        "width": 7.1,
        "flag": "France",
    },
}


def sample_positions() -> list[VesselPosition]:
    """The documented sample set, stamped with the current time."""
    now = utc_now_iso()
    return [
        VesselPosition(
            mmsi=mmsi,
            vessel_id=vessel_id,
            name=name,
            latitude=lat,
            longitude=lon,
            speed=speed,
            heading=heading,
            timestamp=now,
        )
        for mmsi, vessel_id, name, lat, lon, speed, heading in _SAMPLE_POSITIONS
    ]


def sample_vessel_details(mmsi: str) -> dict[str, Any]:
    """Sample details for mmsi, or a placeholder for unknown stations."""
    details = SAMPLE_VESSEL_DETAILS.get(mmsi)
    if details:
        return dict(details)
    return {
        "mmsi": mmsi,
        "name": "Unknown Vessel",
        "type": "Unknown",
        "length": 0,
        "width": 0,
        "flag": "Unknown",
    }
