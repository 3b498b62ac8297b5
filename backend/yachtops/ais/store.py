"""Access to the fleet vessel store.

The pipeline reads vessels by MMSI or id and updates their position columns.
It never creates or deletes vessels.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from yachtops.models import Vessel

logger = logging.getLogger(__name__)


class VesselRepository(ABC):
    """Interface to the persisted fleet."""

    @abstractmethod
    async def list_vessels(self) -> list[Vessel]:
        """Return every vessel in the fleet."""

    @abstractmethod
    async def find_by_mmsi(self, mmsi: str) -> list[Vessel]:
        """Return all vessels whose stored MMSI equals mmsi (possibly none)."""

    @abstractmethod
    async def find_by_id(self, vessel_id: int) -> Optional[Vessel]:
        """Return the vessel with the given internal id."""

    @abstractmethod
    async def update_position(
        self,
        mmsi: str,
        latitude: float,
        longitude: float,
        heading: Optional[float],
        speed: Optional[float],
        timestamp: datetime,
    ) -> int:
        """Update the last position of every vessel matching mmsi.

        Returns:
            Number of vessels updated
        """


class SqlVesselRepository(VesselRepository):
    """VesselRepository backed by the SQLAlchemy async session factory."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def list_vessels(self) -> list[Vessel]:
        async with self.session_factory() as session:
            result = await session.execute(select(Vessel).order_by(Vessel.id))
            return list(result.scalars().all())

    async def find_by_mmsi(self, mmsi: str) -> list[Vessel]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(Vessel).where(Vessel.mmsi == mmsi).order_by(Vessel.id)
            )
            return list(result.scalars().all())

    async def find_by_id(self, vessel_id: int) -> Optional[Vessel]:
        async with self.session_factory() as session:
            return await session.get(Vessel, vessel_id)

    async def update_position(
        self,
        mmsi: str,
        latitude: float,
        longitude: float,
        heading: Optional[float],
        speed: Optional[float],
        timestamp: datetime,
    ) -> int:
        async with self.session_factory() as session:
            try:
                result = await session.execute(
                    select(Vessel).where(Vessel.mmsi == mmsi)
                )
                vessels = result.scalars().all()
                for vessel in vessels:
                    vessel.update_last_position(
                        latitude=latitude,
                        longitude=longitude,
                        heading=heading,
                        speed=speed,
                        timestamp=timestamp,
                    )
                await session.commit()
                return len(vessels)
            except Exception:
                await session.rollback()
                raise
