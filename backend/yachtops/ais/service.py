"""Marine position service.

Bundles the AIS feed pipeline (connection manager, normalizer, cache, sink,
idle reaper) with the query surface used by the HTTP handlers. One instance
is built at application startup and shared by all requests.

Query surface error policy:
- read endpoints (fleet, positions, details) degrade to sample data
- search reports an unconfigured or failing upstream as 503, never as an
  empty result
- manual position updates raise 400/404/500 errors
"""

import logging
import math
from datetime import datetime
from typing import Any, Optional, Sequence

from yachtops.ais.cache import PositionCache
from yachtops.ais.connection import Connector, FeedConnectionManager
from yachtops.ais.errors import (
    InternalFailure,
    MarineServiceError,
    ServiceUnavailable,
    UpstreamFetchError,
    ValidationFailed,
    VesselNotFound,
)
from yachtops.ais.fallbacks import (
    DemoFallbackProvider,
    IdentifierHeuristic,
    sample_positions,
    sample_vessel_details,
)
from yachtops.ais.models import BoundingBox, VesselPosition, to_utc_iso
from yachtops.ais.normalizer import MessageNormalizer
from yachtops.ais.reaper import IdleReaper
from yachtops.ais.sink import PersistenceSink
from yachtops.ais.store import VesselRepository
from yachtops.ais.upstream import UpstreamClient
from yachtops.config import Settings
from yachtops.models import Vessel

logger = logging.getLogger(__name__)


def _position_from_vessel(vessel: Vessel) -> VesselPosition:
    """Cache entry built from the stored last position of a vessel."""
    timestamp = vessel.last_position_update or datetime.utcnow()
    return VesselPosition(
        mmsi=vessel.mmsi or "",
        vessel_id=vessel.id,
        name=vessel.name,
        latitude=float(vessel.last_latitude or 0.0),
        longitude=float(vessel.last_longitude or 0.0),
        speed=float(vessel.last_speed or 0.0),
        heading=float(vessel.last_heading or 0.0),
        timestamp=to_utc_iso(timestamp),
    )


def _coordinate(name: str, value: Any, limit: float) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationFailed(f"{name} must be a number")
    if not -limit <= number <= limit:
        raise ValidationFailed(f"{name} must be between {-limit:g} and {limit:g}")
    return number


def _optional_number(name: str, value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationFailed(f"{name} must be a number")
    if not math.isfinite(number):
        raise ValidationFailed(f"{name} must be a finite number")
    return number


class MarineService:
    """AIS ingestion pipeline plus the position query surface."""

    def __init__(
        self,
        settings: Settings,
        repository: VesselRepository,
        connector: Optional[Connector] = None,
        upstream: Optional[UpstreamClient] = None,
        heuristic: Optional[IdentifierHeuristic] = None,
        demo_provider: Optional[DemoFallbackProvider] = None,
    ):
        self.settings = settings
        self.repository = repository

        self.cache = PositionCache()
        self.sink = PersistenceSink(repository)
        self.heuristic = heuristic or IdentifierHeuristic()
        self.normalizer = MessageNormalizer(self.cache, self.sink, self.heuristic)
        self.connection = FeedConnectionManager(
            api_key=settings.ais_api_key,
            url=settings.ais_stream_url,
            frame_handler=self.normalizer.handle,
            reconnect_delay=settings.ais_reconnect_delay_seconds,
            connector=connector,
        )
        self.reaper = IdleReaper(
            self.connection,
            idle_timeout=settings.ais_idle_timeout_seconds,
            interval=settings.ais_idle_check_interval_seconds,
        )
        self.upstream = upstream or UpstreamClient(
            base_url=settings.ais_api_url,
            api_key=settings.ais_api_key,
            timeout=settings.ais_http_timeout_seconds,
        )
        self.demo_provider = demo_provider

    @property
    def is_configured(self) -> bool:
        return self.connection.is_configured

    # ==================== Lifecycle ====================

    async def start(self) -> None:
        """Start background upkeep. The feed itself opens on first query."""
        if not self.is_configured:
            logger.warning("No AIS API key configured, serving sample position data")
        self.reaper.start()

    async def stop(self) -> None:
        await self.reaper.stop()
        await self.connection.stop()
        await self.sink.drain()

    def _activate_feed(self) -> None:
        self.connection.touch()
        self.connection.ensure_started()

    # ==================== Queries ====================

    async def get_fleet_vessels(self) -> list[dict[str, Any]]:
        """Fleet vessels with live cached positions where available."""
        self._activate_feed()

        try:
            vessels = await self.repository.list_vessels()
        except Exception as e:
            logger.error(f"Error fetching fleet vessels: {e}")
            return [
                {**p.to_dict(), "id": p.vessel_id, "live": False}
                for p in sample_positions()
            ]

        fleet = []
        for vessel in vessels:
            entry = vessel.to_fleet_dict()
            cached = self.cache.get(vessel.mmsi) if vessel.mmsi else None
            if cached is not None and cached.has_fix:
                entry.update(
                    latitude=cached.latitude,
                    longitude=cached.longitude,
                    heading=cached.heading,
                    speed=cached.speed,
                    lastUpdate=cached.timestamp,
                    live=True,
                )
            else:
                entry["live"] = False
            fleet.append(entry)
        return fleet

    async def get_positions(
        self,
        identifiers: Optional[Sequence[str]] = None,
        bounds: Optional[BoundingBox] = None,
        show_all: bool = False,
    ) -> list[dict[str, Any]]:
        """Positions for the requested stations, or everything in bounds."""
        self.connection.touch()
        if not self.is_configured:
            logger.debug("No AIS API key provided, returning sample position data")
            return [p.to_dict() for p in sample_positions()]

        self.connection.ensure_started()

        if show_all:
            positions = self.cache.within(bounds or BoundingBox())
            if not positions:
                logger.debug("Position cache empty for requested bounds, using sample data")
                return [p.to_dict() for p in sample_positions()]
            return [p.to_dict() for p in positions]

        wanted = [m for m in (identifiers or []) if m]
        if not wanted and self.demo_provider is not None:
            wanted = self.demo_provider.identifiers

        cached = [p for p in (self.cache.get(m) for m in wanted) if p is not None]
        if cached:
            return [p.to_dict() for p in cached]

        synthetic = await self._synthesize(wanted)
        if synthetic:
            return [p.to_dict() for p in synthetic]

        return [p.to_dict() for p in sample_positions()]

    async def _synthesize(self, identifiers: Sequence[str]) -> list[VesselPosition]:
        if self.demo_provider is None:
            return []

        positions = []
        for mmsi in identifiers:
            if not self.demo_provider.covers(mmsi):
                continue
            try:
                position = await self.demo_provider.synthesize(mmsi, self.repository)
            except Exception as e:
                logger.warning(f"Demo position for MMSI {mmsi} unavailable: {e}")
                continue
            if position is not None:
                positions.append(position)
        return positions

    async def get_vessel_details(self, mmsi: str) -> dict[str, Any]:
        """Vessel details; sample or placeholder data when unavailable."""
        self.connection.touch()
        if not self.is_configured:
            logger.debug("No AIS API key provided, returning sample vessel details")
            return sample_vessel_details(mmsi)

        try:
            details = await self.upstream.fetch_vessel_details(mmsi)
        except UpstreamFetchError as e:
            logger.warning(f"Vessel detail lookup for MMSI {mmsi} failed: {e}")
            details = None

        if details:
            return details
        return sample_vessel_details(mmsi)

    async def search_vessels(self, query: Optional[str]) -> list[dict[str, Any]]:
        """Search by name, MMSI or IMO.

        Raises:
            ValidationFailed: Empty query
            ServiceUnavailable: No API key, or the upstream search failed
        """
        query = (query or "").strip()
        if not query:
            raise ValidationFailed("Search query is required")

        self.connection.touch()
        if not self.is_configured:
            raise ServiceUnavailable(
                "AIS vessel search is not configured",
                error="AIS service unavailable",
            )

        if query.isdigit():
            cached = self.cache.get(query)
            if cached is not None:
                return [cached.to_dict()]

        try:
            return await self.upstream.search_vessels(query)
        except UpstreamFetchError as e:
            logger.error(f"Vessel search for '{query}' failed: {e}")
            raise ServiceUnavailable(
                "AIS vessel search is temporarily unavailable",
                error="AIS service unavailable",
            )

    async def update_position_manually(
        self,
        mmsi: Optional[str] = None,
        vessel_id: Optional[int] = None,
        latitude: Any = None,
        longitude: Any = None,
        heading: Any = None,
        speed: Any = None,
    ) -> dict[str, Any]:
        """Operator correction of a vessel position, bypassing the feed.

        Raises:
            ValidationFailed: Missing identifier or coordinates
            VesselNotFound: No fleet vessel has the identifier
            InternalFailure: The store could not be read or written
        """
        mmsi = str(mmsi).strip() if mmsi is not None else ""
        if not mmsi and vessel_id is None:
            raise ValidationFailed("mmsi or vesselId is required")
        if latitude is None:
            raise ValidationFailed("latitude is required")
        if longitude is None:
            raise ValidationFailed("longitude is required")

        lat = _coordinate("latitude", latitude, 90)
        lon = _coordinate("longitude", longitude, 180)
        heading_value = _optional_number("heading", heading)
        speed_value = _optional_number("speed", speed)

        try:
            if not mmsi:
                mmsi = await self._mmsi_for_vessel(vessel_id)

            await self.sink.write(mmsi, lat, lon, heading_value, speed_value)
            vessels = await self.repository.find_by_mmsi(mmsi)
        except MarineServiceError:
            raise
        except Exception as e:
            logger.error(f"Manual position update for MMSI {mmsi} failed: {e}")
            raise InternalFailure(
                "Failed to update vessel position", error="Database error"
            )

        if not vessels:
            raise VesselNotFound(f"No vessel with MMSI {mmsi}")

        vessel = vessels[0]
        self.cache.put(mmsi, _position_from_vessel(vessel))
        logger.info(f"Position of {vessel.name} (MMSI {mmsi}) updated manually")
        return {"success": True, "vessel": vessel.to_fleet_dict()}

    async def _mmsi_for_vessel(self, vessel_id: int) -> str:
        vessel = await self.repository.find_by_id(vessel_id)
        if vessel is None:
            raise VesselNotFound(f"No vessel with id {vessel_id}")
        if not vessel.mmsi:
            raise ValidationFailed(f"Vessel {vessel_id} has no MMSI")
        return vessel.mmsi

    # ==================== Status ====================

    def get_statistics(self) -> dict[str, Any]:
        return {
            "configured": self.is_configured,
            "connection": self.connection.get_statistics(),
            "normalizer": self.normalizer.get_statistics(),
            "persistence": self.sink.get_statistics(),
            "idle_closes": self.reaper.idle_closes,
            "cached_positions": len(self.cache),
        }


def build_marine_service(
    settings: Settings,
    repository: VesselRepository,
    connector: Optional[Connector] = None,
    upstream: Optional[UpstreamClient] = None,
) -> MarineService:
    """Assemble the service with the fallbacks the settings enable."""
    demo_provider = DemoFallbackProvider() if settings.ais_demo_fallback_enabled else None
    return MarineService(
        settings=settings,
        repository=repository,
        connector=connector,
        upstream=upstream,
        demo_provider=demo_provider,
    )
