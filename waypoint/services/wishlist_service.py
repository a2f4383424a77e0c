# Wishlist access with ETag revalidation.
# The cached list and its token are dropped by every write, so the next read is a full fetch.

import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Iterable, List, Optional

import structlog

from waypoint.core.errors import DecodeError, ProtocolViolationError, TransportError
from waypoint.models.decoders import decode_page, decode_places, extract_items
from waypoint.models.dto import CursorPage, Place
from waypoint.services.etag_store import RevalidationTokenStore
from waypoint.services.remote_source import (
    HttpMethod,
    RemoteRequest,
    RemoteSource,
    ensure_status,
)
from waypoint.services.ttl_cache import TTLCache

logger = structlog.get_logger(__name__)

LIST_KEY = "wishlist:list"
ITEMS_KEYS = ("data", "items")

# HEAD answered with these means the server has no lightweight existence check.
HEAD_UNSUPPORTED = (405, 501)


class WishlistService:
    """The current user's wishlist.

    - ``list`` revalidates with If-None-Match and serves the cached list on 304.
    - ``list_page`` always fetches; pagination is not conditionally cached.
    - Writes invalidate the cached list and token unless the server
      definitively rejected them (a 4xx answer).
    """

    def __init__(
        self,
        remote: RemoteSource,
        path: str = "/api/wishlist",
        cache_ttl_seconds: float = 1800.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.remote = remote
        self.path = path.rstrip("/")
        self._cache = TTLCache(ttl_seconds=cache_ttl_seconds, clock=clock, name="wishlist")
        self._tokens = RevalidationTokenStore()

    # --- cache state ---

    def invalidate(self) -> None:
        """Forget the cached list and its revalidation token."""
        self._cache.invalidate(LIST_KEY)
        self._tokens.discard(LIST_KEY)

    @property
    def etag(self) -> Optional[str]:
        return self._tokens.get(LIST_KEY)

    # --- reads ---

    async def list(self, use_conditional_get: bool = True) -> List[Place]:
        cached: Optional[tuple] = self._cache.get(LIST_KEY)
        token = self._tokens.get(LIST_KEY)

        headers = {}
        # A validator is only worth sending when a 304 can be answered from cache.
        if use_conditional_get and token and cached is not None:
            headers["If-None-Match"] = token

        request = RemoteRequest(path=self.path, headers=headers)
        response = await self.remote.send(request)

        if response.not_modified:
            if cached is None:
                logger.error("wishlist_not_modified_without_cache", sent_token=bool(headers))
                raise ProtocolViolationError(
                    "Wishlist returned 304 Not Modified but no cached list is held",
                    details={"path": self.path},
                )
            logger.debug("wishlist_not_modified", items=len(cached))
            return list(cached)

        ensure_status(request, response)
        items = decode_places(extract_items(response.body, ITEMS_KEYS))

        self._cache.put(LIST_KEY, tuple(items))
        new_token = response.etag
        if new_token:
            self._tokens.put(LIST_KEY, new_token)
        else:
            # The old token describes a payload we no longer hold.
            self._tokens.discard(LIST_KEY)
        logger.debug("wishlist_fetched", items=len(items), etag=new_token)
        return items

    async def list_page(self, limit: int = 20, cursor: Optional[str] = None) -> CursorPage[Place]:
        params = {"limit": limit}
        if cursor:
            params["cursor"] = cursor
        request = RemoteRequest(path=self.path, params=params)
        response = ensure_status(request, await self.remote.send(request))
        return decode_page(Place, response.body, ITEMS_KEYS)

    async def count(self) -> int:
        request = RemoteRequest(path=f"{self.path}/count")
        response = ensure_status(request, await self.remote.send(request))
        body = response.body
        value = body.get("count") if isinstance(body, dict) else None
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise DecodeError("Wishlist count payload has no numeric 'count'", details={"body": body})
        return int(value)

    async def exists(self, place_id: str) -> bool:
        """True when ``place_id`` is on the wishlist.

        Tries HEAD first; if the server does not support it, falls back to
        GET. 404 means absent; any other non-success status raises.
        """
        path = f"{self.path}/{place_id}"
        head = RemoteRequest(method=HttpMethod.HEAD, path=path)
        response = await self.remote.send(head)
        if response.status_code in (200, 204):
            return True
        if response.status_code == 404:
            return False
        if response.status_code not in HEAD_UNSUPPORTED:
            ensure_status(head, response, 200, 204, 404)

        logger.debug("wishlist_exists_head_unsupported", status=response.status_code)
        get = RemoteRequest(path=path)
        response = await self.remote.send(get)
        if response.status_code == 404:
            return False
        ensure_status(get, response, 200)
        return True

    # --- writes ---

    @asynccontextmanager
    async def _mutation(self, action: str) -> AsyncIterator[None]:
        try:
            yield
        except TransportError as e:
            status = e.status_code
            if status is None or not 400 <= status < 500:
                # Timeouts and 5xx may still have been applied server-side.
                self.invalidate()
            logger.warning("wishlist_mutation_failed", action=action, status=status)
            raise
        self.invalidate()
        logger.debug("wishlist_invalidated", action=action)

    async def _write(self, action: str, request: RemoteRequest) -> None:
        async with self._mutation(action):
            ensure_status(request, await self.remote.send(request))

    async def add(self, place_id: str, notes: Optional[str] = None) -> None:
        body = {"notes": notes} if notes else {}
        request = RemoteRequest(method=HttpMethod.POST, path=f"{self.path}/{place_id}", body=body)
        await self._write("add", request)

    async def remove(self, place_id: str) -> None:
        request = RemoteRequest(method=HttpMethod.DELETE, path=f"{self.path}/{place_id}")
        await self._write("remove", request)

    async def toggle(self, place_id: str, next_value: bool, notes: Optional[str] = None) -> None:
        """Add when ``next_value`` is true, remove otherwise."""
        if next_value:
            await self.add(place_id, notes=notes)
        else:
            await self.remove(place_id)

    async def add_many(self, place_ids: Iterable[str], notes: Optional[str] = None) -> None:
        body = {"ids": list(place_ids)}
        if notes:
            body["notes"] = notes
        request = RemoteRequest(method=HttpMethod.POST, path=f"{self.path}/batch", body=body)
        await self._write("add_many", request)

    async def remove_many(self, place_ids: Iterable[str]) -> None:
        body = {"ids": list(place_ids)}
        request = RemoteRequest(method=HttpMethod.DELETE, path=f"{self.path}/batch", body=body)
        await self._write("remove_many", request)

    async def update_notes(self, place_id: str, notes: str) -> None:
        body = {"notes": notes}
        request = RemoteRequest(method=HttpMethod.PATCH, path=f"{self.path}/{place_id}", body=body)
        await self._write("update_notes", request)

    async def reorder(self, ordered_place_ids: Iterable[str]) -> None:
        body = {"order": list(ordered_place_ids)}
        request = RemoteRequest(method=HttpMethod.PUT, path=f"{self.path}/order", body=body)
        await self._write("reorder", request)
