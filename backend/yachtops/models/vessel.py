"""Vessel model for the fleet store."""

from datetime import datetime
from typing import Optional

from sqlalchemy import Float, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from yachtops.database.base import Base, TimestampMixin


class Vessel(TimestampMixin, Base):
    """A fleet vessel with its denormalized last known position."""

    __tablename__ = "vessels"
    __table_args__ = (
        Index("ix_vessels_mmsi", "mmsi"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255))

    # Maritime Mobile Service Identity, joins the vessel to AIS positions.
    # Not unique: nothing stops two fleet records sharing a station.
    mmsi: Mapped[Optional[str]] = mapped_column(String(9), nullable=True)

    vessel_type: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    flag: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    length: Mapped[Optional[float]] = mapped_column(Float, nullable=True)  # meters
    width: Mapped[Optional[float]] = mapped_column(Float, nullable=True)  # meters

    # Last known position data
    last_latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    last_longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    last_heading: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    last_speed: Mapped[Optional[float]] = mapped_column(Float, nullable=True)  # knots
    last_position_update: Mapped[Optional[datetime]] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return f"<Vessel(id={self.id}, mmsi={self.mmsi}, name={self.name})>"

    @property
    def has_position(self) -> bool:
        """Whether a usable last position is stored."""
        return (
            self.last_latitude is not None
            and self.last_longitude is not None
            and not (self.last_latitude == 0 and self.last_longitude == 0)
        )

    def update_last_position(
        self,
        latitude: float,
        longitude: float,
        heading: Optional[float] = None,
        speed: Optional[float] = None,
        timestamp: Optional[datetime] = None,
    ) -> None:
        """Update the denormalized last position data.

        Heading and speed keep their stored values when not given.
        """
        self.last_latitude = latitude
        self.last_longitude = longitude
        if heading is not None:
            self.last_heading = heading
        if speed is not None:
            self.last_speed = speed
        self.last_position_update = timestamp or datetime.utcnow()

    def to_fleet_dict(self) -> dict:
        """Persisted attributes in the shape returned by the fleet endpoint."""
        return {
            "id": self.id,
            "name": self.name,
            "mmsi": self.mmsi,
            "type": self.vessel_type,
            "flag": self.flag,
            "length": self.length,
            "width": self.width,
            "latitude": self.last_latitude,
            "longitude": self.last_longitude,
            "heading": self.last_heading,
            "speed": self.last_speed,
            "lastUpdate": (
                self.last_position_update.isoformat() + "Z"
                if self.last_position_update
                else None
            ),
        }
