# Local search over the atlas dataset: filter on every supplied predicate,
# then rank by rating and review count.

import math
from typing import Any, Dict, Iterable, List

import structlog

from waypoint.core.errors import DecodeError
from waypoint.models.decoders import decode_places
from waypoint.models.dto import Place, PlaceQuery
from waypoint.services.dataset_provider import DatasetProvider

logger = structlog.get_logger(__name__)

ALL = "all"


def _matches_text(place: Place, needle: str) -> bool:
    if needle in place.name.lower():
        return True
    if needle in (place.description or "").lower():
        return True
    return any(needle in tag.lower() for tag in place.tags)


def matches(place: Place, query: PlaceQuery) -> bool:
    """True when ``place`` passes every predicate that ``query`` activates."""
    needle = query.query.strip().lower()
    if needle and not _matches_text(place, needle):
        return False

    if query.category != ALL and place.category != query.category:
        return False

    if query.emotion != ALL:
        wanted = query.emotion.lower()
        if not any(e.lower() == wanted for e in place.emotions):
            return False

    if query.max_distance_km is not None:
        # Unknown distance never passes a distance bound.
        distance = place.location.distance_from_user
        if distance is None:
            distance = math.inf
        if distance > query.max_distance_km:
            return False

    if query.open_now and not place.is_open_now:
        return False

    if query.min_rating is not None and place.rating < query.min_rating:
        return False

    return True


def filter_places(places: Iterable[Place], query: PlaceQuery) -> List[Place]:
    return [p for p in places if matches(p, query)]


def rank_places(places: Iterable[Place]) -> List[Place]:
    """Rating descending, then review count descending; ties keep input order."""
    return sorted(places, key=lambda p: (-p.rating, -p.review_count))


def search_places(places: Iterable[Place], query: PlaceQuery) -> List[Place]:
    return rank_places(filter_places(places, query))


class PlaceSearchService:
    """Read-only access to the atlas dataset: curated lists plus universal search."""

    def __init__(self, provider: DatasetProvider):
        self.provider = provider

    async def _section(self, name: str) -> List[Place]:
        data = await self.provider.load()
        return decode_places(data.get(name) or [])

    async def all_places(self) -> List[Place]:
        return await self._section("places")

    async def nearby_places(self) -> List[Place]:
        return await self._section("nearbyPlaces")

    async def trending_places(self) -> List[Place]:
        return await self._section("trendingPlaces")

    async def region_places(self, region_id: str) -> List[Place]:
        data = await self.provider.load()
        regions: Dict[str, Any] = data.get("regionPlaces") or {}
        if not isinstance(regions, dict):
            raise DecodeError("regionPlaces must map region ids to place lists")
        return decode_places(regions.get(region_id) or [])

    async def search(self, query: PlaceQuery) -> List[Place]:
        """Universal search across name, description and tags with the optional filters."""
        places = await self.all_places()
        results = search_places(places, query)
        logger.debug(
            "place_search",
            query=query.query,
            category=query.category,
            emotion=query.emotion,
            candidates=len(places),
            results=len(results),
        )
        return results
