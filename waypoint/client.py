# Composition root: one remote source, one instance of each feature facade.
# Each facade owns its caches; nothing is shared across features.

import logging
from typing import Optional

from waypoint.core.config import Settings, settings as default_settings
from waypoint.services.dataset_provider import DatasetProvider, JsonFileDatasetProvider, RemoteDatasetProvider
from waypoint.services.place_search import PlaceSearchService
from waypoint.services.remote_source import HttpxRemoteSource, RemoteSource
from waypoint.services.trail_service import TrailLocationService
from waypoint.services.wishlist_service import WishlistService

logger = logging.getLogger(__name__)


class WaypointClient:
    """Entry point for the presentation layer.

    Usage::

        async with WaypointClient.from_settings() as client:
            page = await client.trails.search(TrailSearchQuery(query="ridge"))
    """

    def __init__(
        self,
        remote: RemoteSource,
        dataset: DatasetProvider,
        config: Optional[Settings] = None,
    ):
        config = config or default_settings
        self.remote = remote
        self.places = PlaceSearchService(dataset)
        self.trails = TrailLocationService(
            remote,
            base_path=config.TRAILS_PATH,
            cache_ttl_seconds=config.CACHE_TTL_SECONDS,
        )
        self.wishlist = WishlistService(
            remote,
            path=config.WISHLIST_PATH,
            cache_ttl_seconds=config.WISHLIST_CACHE_TTL_SECONDS,
        )

    @classmethod
    def from_settings(cls, config: Optional[Settings] = None) -> "WaypointClient":
        config = config or default_settings
        remote = HttpxRemoteSource(
            base_url=config.API_BASE_URL,
            api_key=config.API_KEY,
            timeout=config.REQUEST_TIMEOUT,
        )
        if config.SEED_DATA_PATH:
            dataset: DatasetProvider = JsonFileDatasetProvider(config.SEED_DATA_PATH)
        else:
            dataset = RemoteDatasetProvider(remote)
        logger.info(f"{config.PROJECT_NAME} v{config.VERSION} client targeting {config.API_BASE_URL}")
        return cls(remote, dataset, config)

    async def aclose(self) -> None:
        close = getattr(self.remote, "aclose", None)
        if close is not None:
            await close()

    async def __aenter__(self) -> "WaypointClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
