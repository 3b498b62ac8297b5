"""Database models for YachtOps."""

from yachtops.models.vessel import Vessel

__all__ = [
    "Vessel",
]
