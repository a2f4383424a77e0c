"""
Wiring tests for WaypointClient and the ambient config/logging setup.
"""

import json
import logging

import pytest
import structlog

from waypoint.client import WaypointClient
from waypoint.core.config import Settings
from waypoint.logging import configure_logging
from waypoint.models.dto import PlaceQuery
from waypoint.services.dataset_provider import (
    JsonFileDatasetProvider,
    RemoteDatasetProvider,
    StaticDatasetProvider,
)
from waypoint.services.remote_source import HttpxRemoteSource

from tests.stubs import place_payload, response


@pytest.fixture
def seed_file(tmp_path):
    path = tmp_path / "atlas.json"
    path.write_text(json.dumps({
        "places": [
            place_payload("1", "Blue Cafe", rating=4.2, reviewCount=10),
            place_payload("2", "Red Cafe", rating=4.2, reviewCount=50),
        ],
    }))
    return path


class TestFromSettings:

    @pytest.mark.asyncio
    async def test_seed_file_backs_place_search(self, seed_file):
        config = Settings(API_BASE_URL="http://api.test", SEED_DATA_PATH=str(seed_file))
        async with WaypointClient.from_settings(config) as client:
            assert isinstance(client.remote, HttpxRemoteSource)
            assert isinstance(client.places.provider, JsonFileDatasetProvider)

            results = await client.places.search(PlaceQuery(query="cafe"))
            assert [p.name for p in results] == ["Red Cafe", "Blue Cafe"]

    @pytest.mark.asyncio
    async def test_remote_atlas_without_seed_file(self):
        config = Settings(API_BASE_URL="http://api.test", API_KEY="k", SEED_DATA_PATH=None)
        async with WaypointClient.from_settings(config) as client:
            assert isinstance(client.places.provider, RemoteDatasetProvider)
            assert client.remote.base_url == "http://api.test"
            assert client.remote.api_key == "k"

    @pytest.mark.asyncio
    async def test_paths_and_ttls_come_from_settings(self):
        config = Settings(
            TRAILS_PATH="/v2/trails",
            WISHLIST_PATH="/v2/wishlist",
            CACHE_TTL_SECONDS=60,
            SEED_DATA_PATH=None,
        )
        async with WaypointClient.from_settings(config) as client:
            assert client.trails.base_path == "/v2/trails"
            assert client.trails.cache.ttl_seconds == 60
            assert client.wishlist.path == "/v2/wishlist"


class TestInjectedClient:

    @pytest.mark.asyncio
    async def test_features_share_one_remote_but_not_caches(self, remote):
        client = WaypointClient(remote, StaticDatasetProvider({"places": []}), Settings(SEED_DATA_PATH=None))
        assert client.trails.remote is remote
        assert client.wishlist.remote is remote

        remote.queue("GET", "/api/wishlist", response(body={"data": []}, headers={"etag": "T1"}))
        await client.wishlist.list()
        assert len(client.trails.cache) == 0

    @pytest.mark.asyncio
    async def test_aclose_tolerates_sources_without_close(self, remote):
        async with WaypointClient(remote, StaticDatasetProvider({})):
            pass

    @pytest.mark.asyncio
    async def test_remote_dataset_unwraps_envelope(self, remote):
        remote.queue("GET", "/api/atlas", response(body={"data": {"trendingPlaces": [place_payload("t", "Top")]}}))
        client = WaypointClient(remote, RemoteDatasetProvider(remote))
        assert [p.id for p in await client.places.trending_places()] == ["t"]


class TestLogging:

    def teardown_method(self):
        structlog.reset_defaults()

    @pytest.mark.parametrize("env", ["development", "production"])
    def test_configure_logging(self, env):
        configure_logging(Settings(ENV=env, SEED_DATA_PATH=None), level=logging.DEBUG)

        assert structlog.is_configured()
        assert logging.getLogger("httpx").level == logging.WARNING
        renderer = structlog.get_config()["processors"][-1]
        expected = structlog.dev.ConsoleRenderer if env == "development" else structlog.processors.JSONRenderer
        assert isinstance(renderer, expected)
