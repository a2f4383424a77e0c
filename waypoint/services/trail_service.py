# Trail lookups against the remote source with a TTL cache in front.
# search/get_trail/get_geometry/get_stats are cache-or-fetch; nearby is always live.

import json
from typing import List, Optional, Sequence

import structlog

from waypoint.models.decoders import (
    decode_geometry,
    decode_page,
    decode_trail_detail,
    decode_trail_stats,
    decode_trail_summaries,
)
from waypoint.models.dto import (
    CursorPage,
    GeoPoint,
    TrailDetail,
    TrailReview,
    TrailSearchQuery,
    TrailStats,
    TrailSummary,
)
from waypoint.services.remote_source import RemoteRequest, RemoteSource, ensure_status
from waypoint.services.ttl_cache import DEFAULT_TTL_SECONDS, TTLCache
from waypoint.utils.haversine import distance_km

logger = structlog.get_logger(__name__)


def sort_by_distance(center: GeoPoint, trails: Sequence[TrailSummary], limit: int) -> List[TrailSummary]:
    """Nearest first by great-circle distance from ``center``, truncated to ``limit``.

    No radius filtering happens here; whatever the server returned is only
    reordered and cut.
    """
    ranked = sorted(trails, key=lambda t: distance_km(center, t.center))
    return ranked[:max(0, limit)]


class TrailLocationService:
    """Search, nearby lookup, detail and geometry for trails.

    - Cached reads return the stored value verbatim until the TTL lapses.
    - Nothing is cached when the fetch or the decode fails.
    - Concurrent misses on one key are not coalesced; the last write wins.
    """

    def __init__(
        self,
        remote: RemoteSource,
        base_path: str = "/trails",
        cache_ttl_seconds: float = DEFAULT_TTL_SECONDS,
        cache: Optional[TTLCache] = None,
    ):
        self.remote = remote
        self.base_path = base_path.rstrip("/")
        self.cache = cache if cache is not None else TTLCache(ttl_seconds=cache_ttl_seconds, name="trails")

    async def _get(self, path: str, params: Optional[dict] = None):
        request = RemoteRequest(path=f"{self.base_path}{path}", params=params or {})
        response = ensure_status(request, await self.remote.send(request))
        return response.body

    async def search(self, query: TrailSearchQuery) -> CursorPage[TrailSummary]:
        params = query.to_params()
        key = "search:" + json.dumps(params, sort_keys=True)

        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("trail_search_cache_hit", key=key)
            return cached

        body = await self._get("/search", params)
        page = decode_page(TrailSummary, body)
        self.cache.put(key, page)
        logger.debug("trail_search_fetched", key=key, items=len(page.items), has_more=page.has_more)
        return page

    async def nearby(
        self,
        center: GeoPoint,
        radius_km: float = 25.0,
        limit: int = 50,
        tags: Optional[Sequence[str]] = None,
    ) -> List[TrailSummary]:
        """Trails around ``center``, nearest first.

        Always hits the remote source: the result depends on the caller's
        current position, so a cached answer would be wrong. The server's own
        ordering is not trusted; candidates are re-sorted against ``center``.
        """
        params = {
            "lat": center.lat,
            "lng": center.lng,
            "radiusKm": radius_km,
            "limit": limit,
        }
        if tags:
            params["tags"] = ",".join(tags)

        body = await self._get("/nearby", params)
        trails = decode_trail_summaries(body)
        result = sort_by_distance(center, trails, limit)
        logger.debug("trail_nearby", candidates=len(trails), returned=len(result), radius_km=radius_km)
        return result

    async def get_trail(self, trail_id: str) -> TrailDetail:
        key = f"trail:{trail_id}"
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        detail = decode_trail_detail(await self._get(f"/{trail_id}"))
        self.cache.put(key, detail)
        return detail

    async def get_geometry(self, trail_id: str) -> List[GeoPoint]:
        key = f"geom:{trail_id}"
        cached = self.cache.get(key)
        if cached is not None:
            return list(cached)

        points = decode_geometry(await self._get(f"/{trail_id}/geometry"))
        # Stored as a tuple so callers cannot mutate the cached copy.
        self.cache.put(key, tuple(points))
        return points

    async def get_stats(self, trail_id: str) -> TrailStats:
        key = f"stats:{trail_id}"
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        stats = decode_trail_stats(await self._get(f"/{trail_id}/stats"))
        self.cache.put(key, stats)
        return stats

    async def get_reviews(
        self,
        trail_id: str,
        limit: int = 20,
        cursor: Optional[str] = None,
        sort: Optional[str] = None,
    ) -> CursorPage[TrailReview]:
        """Reviews for a trail, newest or top first; never cached."""
        params = {"limit": limit}
        if cursor:
            params["cursor"] = cursor
        if sort:
            params["sort"] = sort
        body = await self._get(f"/{trail_id}/reviews", params)
        return decode_page(TrailReview, body)
