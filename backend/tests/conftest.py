"""Shared fixtures for the marine pipeline tests."""

import pytest
import pytest_asyncio

from fakes import FakeConnector, FakeVesselRepository
from yachtops.ais.service import MarineService, build_marine_service
from yachtops.config import Settings
from yachtops.models import Vessel


def make_settings(**overrides) -> Settings:
    values = {
        "ais_api_key": "",
        "ais_stream_url": "wss://feed.test/stream",
        "ais_api_url": "https://ais.test/api",
        "ais_reconnect_delay_seconds": 0.05,
        "ais_idle_timeout_seconds": 300.0,
        "ais_idle_check_interval_seconds": 60.0,
        "ais_http_timeout_seconds": 1.0,
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def fleet() -> list[Vessel]:
    return [
        Vessel(id=1, name="Serenity", mmsi="366998410", vessel_type="Yacht", flag="USA"),
        Vessel(
            id=2,
            name="Blue Horizon",
            mmsi="366759530",
            vessel_type="Motor Yacht",
            flag="UK",
            last_latitude=25.81,
            last_longitude=-80.12,
        ),
        Vessel(id=3, name="Tender One", mmsi=None),
    ]


@pytest.fixture
def repository(fleet) -> FakeVesselRepository:
    return FakeVesselRepository(fleet)


@pytest.fixture
def connector() -> FakeConnector:
    return FakeConnector()


@pytest_asyncio.fixture
async def mock_service(repository) -> MarineService:
    """Service without an AIS API key (sample data mode)."""
    service = build_marine_service(make_settings(), repository)
    yield service
    await service.stop()


@pytest_asyncio.fixture
async def live_service(repository, connector) -> MarineService:
    """Service with an API key and a fake feed transport."""
    service = build_marine_service(
        make_settings(ais_api_key="test-key"), repository, connector=connector
    )
    yield service
    await service.stop()
