# Passive data sources for the local place search.
# Refresh/reload is owned by whoever constructs the provider.

import json
import logging
from pathlib import Path
from typing import Any, Dict, Protocol, Union

from waypoint.core.errors import DecodeError
from waypoint.services.remote_source import RemoteRequest, RemoteSource, ensure_status

logger = logging.getLogger(__name__)


class DatasetProvider(Protocol):
    """Returns the structured atlas collection (``places``, ``nearbyPlaces``, ``trendingPlaces``, ``regionPlaces``)."""
    async def load(self) -> Dict[str, Any]: ...


class StaticDatasetProvider:
    """Serves a dataset that is already in memory."""

    def __init__(self, data: Dict[str, Any]):
        self._data = data

    async def load(self) -> Dict[str, Any]:
        return self._data


class JsonFileDatasetProvider:
    """Loads a bundled seed JSON file once and keeps it in memory.

    - ``load`` reads the file on first call only.
    - ``reload`` forgets the loaded copy so the next ``load`` reads the file again.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._data: Union[Dict[str, Any], None] = None

    async def load(self) -> Dict[str, Any]:
        if self._data is None:
            self._data = self._read()
        return self._data

    def reload(self) -> None:
        self._data = None

    def _read(self) -> Dict[str, Any]:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            logger.error(f"Seed data file not found at: {self.path}")
            raise
        except json.JSONDecodeError as e:
            logger.error(f"Seed data at {self.path} is not valid JSON: {e}")
            raise DecodeError(f"Seed data at {self.path} is not valid JSON") from e

        if not isinstance(data, dict):
            raise DecodeError("Seed data root must be a JSON object", details={"path": str(self.path)})
        logger.info(f"Loaded seed data from {self.path} ({len(data.get('places') or [])} places).")
        return data


class RemoteDatasetProvider:
    """Fetches the atlas collection from the remote source on every load."""

    def __init__(self, remote: RemoteSource, path: str = "/api/atlas"):
        self.remote = remote
        self.path = path

    async def load(self) -> Dict[str, Any]:
        request = RemoteRequest(path=self.path)
        response = ensure_status(request, await self.remote.send(request))
        body = response.body
        # Accept both the bare collection and a {"data": {...}} envelope.
        if isinstance(body, dict) and isinstance(body.get("data"), dict):
            body = body["data"]
        if not isinstance(body, dict):
            raise DecodeError("Atlas payload must be a JSON object", details={"received": type(body).__name__})
        return body
