"""Persistence sink propagating feed positions into the vessel store."""

import asyncio
import logging
from datetime import datetime
from typing import Optional

from yachtops.ais.models import VesselPosition
from yachtops.ais.store import VesselRepository

logger = logging.getLogger(__name__)


class PersistenceSink:
    """Writes normalized positions to every vessel sharing the MMSI.

    ``apply`` never raises: a store outage must not interrupt frame
    processing. ``write`` is the raising variant used for operator edits.
    """

    def __init__(self, repository: VesselRepository):
        self.repository = repository
        self.pending_tasks: set[asyncio.Task] = set()

        # Statistics
        self._attempts = 0
        self._vessels_updated = 0
        self._failures = 0

    async def write(
        self,
        mmsi: str,
        latitude: float,
        longitude: float,
        heading: Optional[float] = None,
        speed: Optional[float] = None,
    ) -> int:
        """Update matching vessels, propagating store errors."""
        self._attempts += 1
        updated = await self.repository.update_position(
            mmsi=mmsi,
            latitude=latitude,
            longitude=longitude,
            heading=heading,
            speed=speed,
            timestamp=datetime.utcnow(),
        )
        self._vessels_updated += updated
        if updated:
            logger.debug(f"Updated position of {updated} vessel(s) for MMSI {mmsi}")
        return updated

    async def apply(
        self,
        mmsi: str,
        latitude: float,
        longitude: float,
        heading: Optional[float] = None,
        speed: Optional[float] = None,
    ) -> int:
        """Update matching vessels; failures are logged and counted.

        Returns:
            Number of vessels updated (0 on failure or when none match)
        """
        try:
            return await self.write(mmsi, latitude, longitude, heading, speed)
        except Exception as e:
            self._failures += 1
            logger.error(f"Failed to persist position for MMSI {mmsi}: {e}")
            return 0

    def submit(self, position: VesselPosition) -> Optional[asyncio.Task]:
        """Schedule apply() for a feed position without waiting for it."""
        if not position.has_fix:
            return None

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(
                f"No running event loop, position for MMSI {position.mmsi} not persisted"
            )
            return None

        task = loop.create_task(
            self.apply(
                position.mmsi,
                position.latitude,
                position.longitude,
                position.heading,
                position.speed,
            )
        )
        self.pending_tasks.add(task)
        task.add_done_callback(self.pending_tasks.discard)
        return task

    async def drain(self, timeout: float = 5.0) -> None:
        """Wait for in-flight writes, cancelling whatever outlives timeout."""
        if not self.pending_tasks:
            return

        pending = list(self.pending_tasks)
        logger.info(f"Waiting for {len(pending)} pending position writes...")
        try:
            await asyncio.wait_for(
                asyncio.gather(*pending, return_exceptions=True),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("Timeout waiting for position writes, cancelling remaining")
            for task in pending:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

    def get_statistics(self) -> dict[str, int]:
        return {
            "attempts": self._attempts,
            "vessels_updated": self._vessels_updated,
            "failures": self._failures,
            "pending": len(self.pending_tasks),
        }
