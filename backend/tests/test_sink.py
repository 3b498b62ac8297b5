"""Tests for the persistence sink."""

import pytest

from fakes import FakeVesselRepository
from yachtops.ais.models import VesselPosition
from yachtops.ais.sink import PersistenceSink
from yachtops.models import Vessel


@pytest.fixture
def shared_station() -> FakeVesselRepository:
    return FakeVesselRepository([
        Vessel(id=1, name="Serenity", mmsi="366998410"),
        Vessel(id=2, name="Serenity Tender", mmsi="366998410"),
        Vessel(id=3, name="Blue Horizon", mmsi="366759530"),
    ])


class TestPersistenceSink:
    """Test position writes to the fleet store."""

    @pytest.mark.asyncio
    async def test_updates_every_matching_vessel(self, shared_station):
        sink = PersistenceSink(shared_station)
        updated = await sink.apply("366998410", 25.0, -80.0, 90.0, 5.5)

        assert updated == 2
        for vessel in shared_station.vessels[:2]:
            assert vessel.last_latitude == 25.0
            assert vessel.last_heading == 90.0
            assert vessel.last_speed == 5.5
            assert vessel.last_position_update is not None
        assert shared_station.vessels[2].last_latitude is None

    @pytest.mark.asyncio
    async def test_unknown_station_is_not_an_error(self, shared_station):
        sink = PersistenceSink(shared_station)
        assert await sink.apply("999999999", 1.0, 1.0) == 0
        assert sink.get_statistics()["failures"] == 0

    @pytest.mark.asyncio
    async def test_store_failure_is_contained(self, shared_station):
        shared_station.fail = True
        sink = PersistenceSink(shared_station)

        assert await sink.apply("366998410", 25.0, -80.0) == 0
        assert sink.get_statistics()["failures"] == 1

    @pytest.mark.asyncio
    async def test_write_propagates_failure(self, shared_station):
        shared_station.fail = True
        sink = PersistenceSink(shared_station)

        with pytest.raises(RuntimeError):
            await sink.write("366998410", 25.0, -80.0)

    @pytest.mark.asyncio
    async def test_submit_runs_in_background(self, shared_station):
        sink = PersistenceSink(shared_station)
        position = VesselPosition(
            mmsi="366759530", vessel_id=530, name="Blue Horizon",
            latitude=25.8, longitude=-80.1, speed=3.0, heading=270.0,
        )

        task = sink.submit(position)
        assert task is not None
        await sink.drain()

        assert shared_station.vessels[2].last_longitude == -80.1
        assert not sink.pending_tasks

    @pytest.mark.asyncio
    async def test_submit_skips_positions_without_fix(self, shared_station):
        sink = PersistenceSink(shared_station)
        position = VesselPosition(
            mmsi="366759530", vessel_id=530, name="Blue Horizon",
            latitude=0.0, longitude=0.0,
        )

        assert sink.submit(position) is None
        assert shared_station.updates == []
