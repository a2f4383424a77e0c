# HTTP-shaped contract between the caching services and whatever serves the data.
# Retries, pooling and auth live in the implementation, never in the services.

import time
from enum import Enum
from typing import Any, Dict, Optional, Protocol

import httpx
import structlog
from pydantic import BaseModel, ConfigDict, Field

from waypoint.core.errors import TransportError

logger = structlog.get_logger(__name__)


class HttpMethod(str, Enum):
    GET = "GET"
    POST = "POST"
    PATCH = "PATCH"
    PUT = "PUT"
    DELETE = "DELETE"
    HEAD = "HEAD"


class RemoteRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    method: HttpMethod = HttpMethod.GET
    path: str
    params: Dict[str, Any] = Field(default_factory=dict)
    headers: Dict[str, str] = Field(default_factory=dict)
    body: Optional[Any] = None


class RemoteResponse(BaseModel):
    status_code: int
    headers: Dict[str, str] = Field(default_factory=dict)
    body: Any = None

    def header(self, name: str) -> Optional[str]:
        """Case-insensitive header lookup."""
        wanted = name.lower()
        for key, value in self.headers.items():
            if key.lower() == wanted:
                return value
        return None

    @property
    def etag(self) -> Optional[str]:
        value = self.header("etag")
        return value or None

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def not_modified(self) -> bool:
        return self.status_code == 304


class RemoteSource(Protocol):
    """Sends one request and returns the response, whatever its status.

    Raises TransportError only when no response could be obtained.
    """
    async def send(self, request: RemoteRequest) -> RemoteResponse: ...


def ensure_status(request: RemoteRequest, response: RemoteResponse, *allowed: int) -> RemoteResponse:
    """Raise TransportError unless the status is 2xx (or one of ``allowed`` when given)."""
    ok = response.status_code in allowed if allowed else response.is_success
    if not ok:
        logger.warning(
            "remote_unexpected_status",
            method=request.method.value,
            path=request.path,
            status=response.status_code,
        )
        raise TransportError(
            f"{request.method.value} {request.path} returned {response.status_code}",
            status_code=response.status_code,
            details={"body": response.body} if isinstance(response.body, (dict, str)) else None,
        )
    return response


def _parse_body(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


class HttpxRemoteSource:
    """RemoteSource backed by a shared httpx.AsyncClient."""

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        if not base_url:
            raise ValueError("base_url is required")
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key.strip() if api_key and api_key.strip() else None
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    def _headers(self, extra: Dict[str, str]) -> Dict[str, str]:
        headers = {"accept": "application/json"}
        if self.api_key:
            headers["x-api-key"] = self.api_key
        headers.update(extra)
        return headers

    async def send(self, request: RemoteRequest) -> RemoteResponse:
        url = f"{self.base_url}{request.path}"
        start_time = time.monotonic()
        try:
            response = await self._client.request(
                request.method.value,
                url,
                params=request.params or None,
                headers=self._headers(request.headers),
                json=request.body,
            )
        except httpx.TimeoutException as e:
            logger.warning("remote_timeout", method=request.method.value, path=request.path)
            raise TransportError(
                f"{request.method.value} {request.path} timed out",
                details={"url": url},
            ) from e
        except httpx.HTTPError as e:
            logger.error("remote_transport_error", method=request.method.value, path=request.path, error=str(e))
            raise TransportError(
                f"{request.method.value} {request.path} failed: {e}",
                details={"url": url},
            ) from e

        logger.debug(
            "remote_response",
            method=request.method.value,
            path=request.path,
            status=response.status_code,
            elapsed_ms=round((time.monotonic() - start_time) * 1000, 1),
        )
        return RemoteResponse(
            status_code=response.status_code,
            headers={k.lower(): v for k, v in response.headers.items()},
            body=_parse_body(response),
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "HttpxRemoteSource":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
