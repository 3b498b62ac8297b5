"""Normalization of AIS feed frames into canonical positions.

Frames are JSON objects discriminated by ``MessageType``. Position reports
arrive in one of two shapes:

Nested (current)::

    {"MessageType": "PositionReport",
     "MetaData": {"ShipName": "SERENITY", ...},
     "Message": {"PositionReport": {"UserID": 366998410, "Latitude": 25.76,
                                    "Longitude": -80.19, "Sog": 12.5,
                                    "TrueHeading": 135}}}

Flat (legacy)::

    {"MessageType": "PositionReport", "MMSI": 366998410, "ShipName": "SERENITY",
     "Latitude": 25.76, "Longitude": -80.19, "Sog": 12.5, "Heading": 135}
"""

import json
import logging
import math
from typing import Any, Callable, Optional, Union

from yachtops.ais.cache import PositionCache
from yachtops.ais.fallbacks import IdentifierHeuristic
from yachtops.ais.models import (
    FlatPositionReport,
    NestedPositionReport,
    PositionReportFrame,
    VesselPosition,
    utc_now_iso,
)
from yachtops.ais.sink import PersistenceSink

logger = logging.getLogger(__name__)

POSITION_REPORT = "PositionReport"


def _number(value: Any) -> float:
    """Numeric field value, 0.0 when missing or unusable."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        result = float(value)
    except (TypeError, ValueError):
        return 0.0
    return result if math.isfinite(result) else 0.0


def _identifier(value: Any) -> Optional[str]:
    """Station identifier as a string, None when absent."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float):
        if not value.is_integer():
            return None
        value = int(value)
    text = str(value).strip()
    return text or None


def _ship_name(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def decode_frame(raw: Union[str, bytes, bytearray]) -> Optional[dict[str, Any]]:
    """Decode a UTF-8 JSON frame; None if it is not a JSON object."""
    try:
        if isinstance(raw, (bytes, bytearray)):
            raw = raw.decode("utf-8")
        frame = json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.warning(f"Dropping undecodable AIS frame: {e}")
        return None

    if not isinstance(frame, dict):
        logger.warning(f"Dropping AIS frame of type {type(frame).__name__}")
        return None
    return frame


def parse_position_report(frame: dict[str, Any]) -> Optional[PositionReportFrame]:
    """Classify a decoded frame as one of the position report variants.

    Returns None for other message types and for reports without an
    identifier.
    """
    message_type = frame.get("MessageType")
    if message_type != POSITION_REPORT:
        logger.debug(f"Ignoring message type: {message_type}")
        return None

    message = frame.get("Message")
    if isinstance(message, dict) and isinstance(message.get(POSITION_REPORT), dict):
        report = message[POSITION_REPORT]
        user_id = _identifier(report.get("UserID"))
        if user_id is None:
            logger.warning("Dropping nested position report without UserID")
            return None

        metadata = frame.get("MetaData")
        ship_name = None
        if isinstance(metadata, dict):
            ship_name = _ship_name(metadata.get("ShipName"))

        return NestedPositionReport(
            user_id=user_id,
            latitude=_number(report.get("Latitude")),
            longitude=_number(report.get("Longitude")),
            sog=_number(report.get("Sog")),
            true_heading=_number(report.get("TrueHeading")),
            ship_name=ship_name,
        )

    mmsi = _identifier(frame.get("MMSI"))
    if mmsi is None:
        logger.warning("Dropping flat position report without MMSI")
        return None

    return FlatPositionReport(
        mmsi=mmsi,
        latitude=_number(frame.get("Latitude")),
        longitude=_number(frame.get("Longitude")),
        sog=_number(frame.get("Sog")),
        heading=_number(frame.get("Heading")),
        ship_name=_ship_name(frame.get("ShipName")),
    )


class MessageNormalizer:
    """Turns feed frames into VesselPositions and records them.

    Every accepted report is written to the cache and handed to the sink
    before handle() returns; the sink write itself runs in the background.
    """

    def __init__(
        self,
        cache: PositionCache,
        sink: PersistenceSink,
        heuristic: Optional[IdentifierHeuristic] = None,
        clock: Callable[[], str] = utc_now_iso,
    ):
        self.cache = cache
        self.sink = sink
        self.heuristic = heuristic or IdentifierHeuristic()
        self.clock = clock

        # Statistics
        self._positions_normalized = 0
        self._frames_dropped = 0
        self._frames_ignored = 0

    def normalize(self, report: PositionReportFrame) -> VesselPosition:
        """Build the canonical position for a parsed report."""
        if isinstance(report, NestedPositionReport):
            mmsi, heading = report.user_id, report.true_heading
        elif isinstance(report, FlatPositionReport):
            mmsi, heading = report.mmsi, report.heading
        else:
            raise TypeError(f"Unsupported position report: {type(report).__name__}")

        return VesselPosition(
            mmsi=mmsi,
            vessel_id=self.heuristic.vessel_id(mmsi),
            name=self.heuristic.display_name(mmsi, report.ship_name),
            latitude=report.latitude,
            longitude=report.longitude,
            speed=report.sog,
            heading=heading,
            timestamp=self.clock(),
        )

    def handle(self, raw: Union[str, bytes, bytearray]) -> Optional[VesselPosition]:
        """Process one raw frame from the feed.

        Returns:
            The recorded position, or None if the frame was not usable
        """
        frame = decode_frame(raw)
        if frame is None:
            self._frames_dropped += 1
            return None
        return self.handle_frame(frame)

    def handle_frame(self, frame: dict[str, Any]) -> Optional[VesselPosition]:
        """Process one decoded frame."""
        report = parse_position_report(frame)
        if report is None:
            if frame.get("MessageType") == POSITION_REPORT:
                self._frames_dropped += 1
            else:
                self._frames_ignored += 1
            return None

        position = self.normalize(report)
        self.cache.put(position.mmsi, position)
        self.sink.submit(position)
        self._positions_normalized += 1
        return position

    def get_statistics(self) -> dict[str, int]:
        return {
            "positions_normalized": self._positions_normalized,
            "frames_dropped": self._frames_dropped,
            "frames_ignored": self._frames_ignored,
        }
