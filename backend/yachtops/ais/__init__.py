"""AIS vessel position pipeline for YachtOps.

This module provides:
- Normalization of AIS feed frames into canonical positions
- An in-process cache of the latest position per station
- Persistence of feed positions into the fleet vessel store
- Feed connection management with reconnect and idle shutdown
- The position query surface used by the marine API
"""

from yachtops.ais.cache import PositionCache
from yachtops.ais.connection import ConnectionState, FeedConnectionManager
from yachtops.ais.errors import (
    InternalFailure,
    MarineServiceError,
    ServiceUnavailable,
    UpstreamFetchError,
    ValidationFailed,
    VesselNotFound,
)
from yachtops.ais.fallbacks import DemoFallbackProvider, IdentifierHeuristic
from yachtops.ais.models import BoundingBox, VesselPosition
from yachtops.ais.normalizer import MessageNormalizer
from yachtops.ais.reaper import IdleReaper
from yachtops.ais.service import MarineService, build_marine_service
from yachtops.ais.sink import PersistenceSink
from yachtops.ais.store import SqlVesselRepository, VesselRepository
from yachtops.ais.upstream import UpstreamClient

__all__ = [
    # Models
    "BoundingBox",
    "VesselPosition",
    # Pipeline
    "ConnectionState",
    "FeedConnectionManager",
    "IdleReaper",
    "MessageNormalizer",
    "PersistenceSink",
    "PositionCache",
    # Store and upstream
    "SqlVesselRepository",
    "UpstreamClient",
    "VesselRepository",
    # Seams
    "DemoFallbackProvider",
    "IdentifierHeuristic",
    # Service
    "MarineService",
    "build_marine_service",
    # Errors
    "InternalFailure",
    "MarineServiceError",
    "ServiceUnavailable",
    "UpstreamFetchError",
    "ValidationFailed",
    "VesselNotFound",
]
