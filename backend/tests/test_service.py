"""Tests for the marine query surface."""

import httpx
import pytest

from fakes import flat_frame, wait_until
from yachtops.ais.errors import ServiceUnavailable, ValidationFailed, VesselNotFound, InternalFailure
from yachtops.ais.models import BoundingBox, VesselPosition
from yachtops.ais.service import MarineService, build_marine_service
from yachtops.ais.upstream import UpstreamClient

from conftest import make_settings

SAMPLE_MMSIS = {"319904000", "366998410", "366759530", "367671640"}


def upstream_returning(handler) -> UpstreamClient:
    return UpstreamClient(
        base_url="https://ais.test/api",
        api_key="test-key",
        timeout=1.0,
        transport=httpx.MockTransport(handler),
    )


def live_service_with(repository, connector, handler) -> MarineService:
    return build_marine_service(
        make_settings(ais_api_key="test-key"),
        repository,
        connector=connector,
        upstream=upstream_returning(handler),
    )


def cache_position(service: MarineService, mmsi: str, latitude: float, longitude: float) -> None:
    service.cache.put(
        mmsi,
        VesselPosition(
            mmsi=mmsi, vessel_id=1, name="Cached", latitude=latitude,
            longitude=longitude, speed=4.0, heading=10.0,
            timestamp="2026-01-01T00:00:00Z",
        ),
    )


class TestPositionsWithoutApiKey:
    """Test sample data mode."""

    @pytest.mark.asyncio
    async def test_sample_set(self, mock_service, connector):
        positions = await mock_service.get_positions()
        assert {p["mmsi"] for p in positions} == SAMPLE_MMSIS
        assert len(positions) == 4

    @pytest.mark.asyncio
    async def test_sample_set_ignores_cache_and_request(self, mock_service):
        cache_position(mock_service, "366998410", 1.0, 1.0)
        positions = await mock_service.get_positions(identifiers=["366998410"])
        assert len(positions) == 4

    @pytest.mark.asyncio
    async def test_feed_not_started(self, mock_service):
        await mock_service.get_fleet_vessels()
        assert mock_service.connection.state.value == "disconnected"


class TestPositionsWithFeed:
    """Test cache-backed position queries."""

    @pytest.mark.asyncio
    async def test_query_starts_feed(self, live_service, connector):
        await live_service.get_positions(identifiers=["366998410"])
        await wait_until(lambda: live_service.connection.is_open)
        assert connector.calls == 1

    @pytest.mark.asyncio
    async def test_feed_frames_reach_queries(self, live_service, connector):
        await live_service.get_positions(show_all=True)
        await wait_until(lambda: live_service.connection.is_open)

        connector.transport.feed(flat_frame(366998410, 25.76, -80.19, 12.5, 135))
        await wait_until(lambda: "366998410" in live_service.cache)

        positions = await live_service.get_positions(identifiers=["366998410"])
        assert positions[0]["latitude"] == 25.76
        assert positions[0]["speed"] == 12.5

    @pytest.mark.asyncio
    async def test_show_all_filters_by_bounds(self, live_service):
        cache_position(live_service, "111111111", 5.0, 5.0)
        cache_position(live_service, "222222222", 20.0, 5.0)

        positions = await live_service.get_positions(
            bounds=BoundingBox(north=10, south=0, east=10, west=0), show_all=True
        )
        assert [p["mmsi"] for p in positions] == ["111111111"]

    @pytest.mark.asyncio
    async def test_show_all_empty_falls_back_to_sample(self, live_service):
        positions = await live_service.get_positions(show_all=True)
        assert {p["mmsi"] for p in positions} == SAMPLE_MMSIS

    @pytest.mark.asyncio
    async def test_cached_identifiers(self, live_service):
        cache_position(live_service, "111111111", 5.0, 5.0)
        positions = await live_service.get_positions(identifiers=["111111111", "999999999"])
        assert [p["mmsi"] for p in positions] == ["111111111"]

    @pytest.mark.asyncio
    async def test_demo_position_for_allow_listed_fleet_vessel(self, live_service):
        positions = await live_service.get_positions(identifiers=["366998410"])

        assert len(positions) == 1
        assert positions[0]["name"] == "Serenity"
        assert positions[0]["vesselId"] == 1
        assert abs(positions[0]["latitude"] - 25.7617) <= 0.05
        assert "366998410" not in live_service.cache

    @pytest.mark.asyncio
    async def test_unknown_identifier_falls_back_to_sample(self, live_service):
        positions = await live_service.get_positions(identifiers=["999999999"])
        assert {p["mmsi"] for p in positions} == SAMPLE_MMSIS


class TestFleetVessels:
    """Test the fleet join."""

    @pytest.mark.asyncio
    async def test_join_with_cache(self, live_service):
        cache_position(live_service, "366998410", 25.5, -80.5)
        fleet = {v["id"]: v for v in await live_service.get_fleet_vessels()}

        assert fleet[1]["live"] is True
        assert fleet[1]["latitude"] == 25.5
        assert fleet[2]["live"] is False
        assert fleet[2]["latitude"] == 25.81
        assert fleet[3]["mmsi"] is None

    @pytest.mark.asyncio
    async def test_store_failure_falls_back_to_sample(self, live_service, repository):
        repository.fail = True
        fleet = await live_service.get_fleet_vessels()
        assert {v["mmsi"] for v in fleet} == SAMPLE_MMSIS


class TestVesselDetails:
    """Test detail lookups."""

    @pytest.mark.asyncio
    async def test_sample_details_without_api_key(self, mock_service):
        details = await mock_service.get_vessel_details("366998410")
        assert details["name"] == "Serenity"

        unknown = await mock_service.get_vessel_details("123456789")
        assert unknown["name"] == "Unknown Vessel"
        assert unknown["mmsi"] == "123456789"

    @pytest.mark.asyncio
    async def test_upstream_details(self, repository, connector):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/api/vessels/details"
            return httpx.Response(200, json=[{"MMSI": 366998410, "NAME": "SERENITY", "FLAG": "US"}])

        service = live_service_with(repository, connector, handler)
        details = await service.get_vessel_details("366998410")
        assert details["name"] == "SERENITY"
        assert details["flag"] == "US"
        assert details["type"] == "Unknown"
        await service.stop()

    @pytest.mark.asyncio
    async def test_upstream_failure_falls_back(self, repository, connector):
        service = live_service_with(
            repository, connector, lambda request: httpx.Response(502)
        )
        details = await service.get_vessel_details("366998410")
        assert details["name"] == "Serenity"
        await service.stop()


class TestSearchVessels:
    """Test the three search outcomes."""

    @pytest.mark.asyncio
    async def test_unconfigured_is_unavailable(self, mock_service):
        with pytest.raises(ServiceUnavailable) as exc_info:
            await mock_service.search_vessels("anything")

        assert exc_info.value.status_code == 503
        body = exc_info.value.to_dict()
        assert body["results"] == []
        assert set(body) == {"error", "message", "results"}

    @pytest.mark.asyncio
    async def test_empty_query_rejected(self, mock_service):
        with pytest.raises(ValidationFailed):
            await mock_service.search_vessels("  ")

    @pytest.mark.asyncio
    async def test_numeric_query_hits_cache(self, repository, connector):
        def handler(request):
            raise AssertionError("upstream must not be called")

        service = live_service_with(repository, connector, handler)
        cache_position(service, "366998410", 25.0, -80.0)

        results = await service.search_vessels("366998410")
        assert [r["mmsi"] for r in results] == ["366998410"]
        await service.stop()

    @pytest.mark.asyncio
    async def test_upstream_results(self, repository, connector):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.headers["Authorization"] == "ApiKey test-key"
            return httpx.Response(200, json=[{"mmsi": "366759530", "name": "Blue Horizon"}])

        service = live_service_with(repository, connector, handler)
        results = await service.search_vessels("blue")
        assert results[0]["name"] == "Blue Horizon"
        await service.stop()

    @pytest.mark.asyncio
    async def test_upstream_failure_is_unavailable(self, repository, connector):
        service = live_service_with(
            repository, connector, lambda request: httpx.Response(500)
        )
        with pytest.raises(ServiceUnavailable):
            await service.search_vessels("blue")
        await service.stop()


class TestManualUpdate:
    """Test operator position corrections."""

    @pytest.mark.asyncio
    async def test_missing_latitude(self, mock_service, repository):
        with pytest.raises(ValidationFailed) as exc_info:
            await mock_service.update_position_manually(mmsi="366998410", longitude=-80.0)

        assert "latitude" in exc_info.value.message
        assert repository.updates == []

    @pytest.mark.asyncio
    async def test_missing_identifier(self, mock_service):
        with pytest.raises(ValidationFailed):
            await mock_service.update_position_manually(latitude=1.0, longitude=1.0)

    @pytest.mark.asyncio
    async def test_out_of_range(self, mock_service, repository):
        with pytest.raises(ValidationFailed):
            await mock_service.update_position_manually(
                mmsi="366998410", latitude=91, longitude=0
            )
        assert repository.updates == []

    @pytest.mark.asyncio
    async def test_unknown_identifier(self, mock_service):
        with pytest.raises(VesselNotFound):
            await mock_service.update_position_manually(
                mmsi="999999999", latitude=1.0, longitude=1.0
            )
        assert len(mock_service.cache) == 0

    @pytest.mark.asyncio
    async def test_updates_store_and_cache(self, mock_service, repository):
        result = await mock_service.update_position_manually(
            mmsi="366998410", latitude=25.9, longitude=-80.1, heading=45, speed=3
        )

        assert result["success"] is True
        assert result["vessel"]["latitude"] == 25.9
        assert repository.vessels[0].last_heading == 45.0
        cached = mock_service.cache.get("366998410")
        assert cached.latitude == 25.9
        assert cached.name == "Serenity"

    @pytest.mark.asyncio
    async def test_omitted_heading_and_speed_are_kept(self, mock_service, repository):
        vessel = repository.vessels[0]
        vessel.last_heading = 90.0
        vessel.last_speed = 5.0

        result = await mock_service.update_position_manually(
            mmsi="366998410", latitude=1.0, longitude=1.0
        )

        assert vessel.last_latitude == 1.0
        assert vessel.last_heading == 90.0
        assert vessel.last_speed == 5.0
        assert result["vessel"]["heading"] == 90.0
        assert mock_service.cache.get("366998410").speed == 5.0

    @pytest.mark.asyncio
    async def test_cache_timestamp_is_utc(self, mock_service):
        result = await mock_service.update_position_manually(
            mmsi="366998410", latitude=25.9, longitude=-80.1
        )
        assert mock_service.cache.get("366998410").timestamp.endswith("Z")
        assert result["vessel"]["lastUpdate"].endswith("Z")

    @pytest.mark.asyncio
    async def test_non_finite_values_rejected(self, mock_service, repository):
        with pytest.raises(ValidationFailed):
            await mock_service.update_position_manually(
                mmsi="366998410", latitude=float("nan"), longitude=0
            )
        with pytest.raises(ValidationFailed):
            await mock_service.update_position_manually(
                mmsi="366998410", latitude=1.0, longitude=1.0, heading="inf"
            )
        assert repository.updates == []

    @pytest.mark.asyncio
    async def test_by_vessel_id(self, mock_service, repository):
        result = await mock_service.update_position_manually(
            vessel_id=2, latitude=26.0, longitude=-80.0
        )
        assert result["vessel"]["mmsi"] == "366759530"

    @pytest.mark.asyncio
    async def test_vessel_id_without_mmsi(self, mock_service):
        with pytest.raises(ValidationFailed):
            await mock_service.update_position_manually(
                vessel_id=3, latitude=26.0, longitude=-80.0
            )

    @pytest.mark.asyncio
    async def test_store_failure(self, mock_service, repository):
        repository.fail = True
        with pytest.raises(InternalFailure):
            await mock_service.update_position_manually(
                mmsi="366998410", latitude=26.0, longitude=-80.0
            )
