# Value objects exchanged between the remote source, the caches and consumers.
# All models are frozen; sequences are tuples so nothing mutates after decoding.

from datetime import datetime
from typing import Annotated, Any, Dict, Generic, Optional, Tuple, TypeVar

from pydantic import (
    AliasChoices,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
    model_validator,
)

T = TypeVar("T")

_VALUE = ConfigDict(frozen=True, populate_by_name=True)


def _id_to_str(value: Any) -> Any:
    # Some endpoints send numeric ids.
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return value


IdStr = Annotated[str, BeforeValidator(_id_to_str)]


def _none_to_empty(value: Any) -> Any:
    # Optional list fields arrive as null from some endpoints.
    return () if value is None else value


StrTuple = Annotated[Tuple[str, ...], BeforeValidator(_none_to_empty)]

PLACE_CATEGORIES = frozenset({
    "temple", "monument", "museum", "park", "beach", "mountain", "lake", "hotel",
    "restaurant", "cafe", "activity", "tour", "transport", "shopping", "entertainment", "other",
})

DAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


def current_day_name(now: Optional[datetime] = None) -> str:
    now = now or datetime.now()
    return DAY_NAMES[now.weekday()]


def timings_open_on(timings: Dict[str, Any], day: str) -> bool:
    """Whether a place with these opening ``timings`` counts as open on ``day``.

    Always-open places are open. Otherwise both ``openTime`` and ``closeTime``
    must be set, and ``day`` must be listed in ``openDays`` when that is given.
    The hours themselves are not compared with the clock.
    """
    if timings.get("isAlwaysOpen") is True:
        return True
    if timings.get("openTime") is None or timings.get("closeTime") is None:
        return False
    open_days = timings.get("openDays")
    if open_days is not None and day not in open_days:
        return False
    return True


# --- Geo ---

class GeoPoint(BaseModel):
    """A (lat, lng) pair in degrees."""
    model_config = _VALUE

    lat: float = Field(..., validation_alias=AliasChoices("lat", "latitude"), description="Latitude in degrees.")
    lng: float = Field(..., validation_alias=AliasChoices("lng", "lon", "longitude"), description="Longitude in degrees.")


class PlaceLocation(BaseModel):
    """Coordinates of a place plus an optional precomputed distance from the user (km)."""
    model_config = _VALUE

    lat: float = Field(..., validation_alias=AliasChoices("lat", "latitude"))
    lng: float = Field(..., validation_alias=AliasChoices("lng", "lon", "longitude"))
    distance_from_user: Optional[float] = Field(
        None,
        validation_alias=AliasChoices("distance_from_user", "distanceFromUser"),
        description="Distance from the user in km; None when unknown.",
    )

    @model_validator(mode="before")
    @classmethod
    def _flatten(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)

        coords = data.pop("coordinates", None)
        if isinstance(coords, dict):
            for key, value in coords.items():
                data.setdefault(key, value)

        if data.get("distance_from_user") is None and data.get("distanceFromUser") is None:
            km = data.get("distanceKm")
            if km is None:
                meters = data.get("distanceMeters", data.get("meters"))
                if meters is not None:
                    try:
                        km = float(meters) / 1000.0
                    except (TypeError, ValueError):
                        raise ValueError(f"distance in meters is not numeric: {meters!r}")
            data["distanceFromUser"] = km
        return data

    @property
    def point(self) -> GeoPoint:
        return GeoPoint(lat=self.lat, lng=self.lng)


# --- Places (local search records) ---

class Place(BaseModel):
    """A point of interest as served by the atlas dataset and the wishlist endpoint."""
    model_config = _VALUE

    id: IdStr
    name: str
    description: Optional[str] = None
    category: str = Field("other", description="Category name; unknown categories decode as 'other'.")
    emotions: StrTuple = ()
    tags: StrTuple = ()
    rating: float = Field(0.0, ge=0.0, le=5.0)
    review_count: int = Field(0, ge=0, alias="reviewCount")
    location: PlaceLocation
    is_open_now: bool = Field(False, alias="isOpenNow")
    images: StrTuple = ()

    @model_validator(mode="before")
    @classmethod
    def _derive_open_now(cls, data: Any, info: ValidationInfo) -> Any:
        if not isinstance(data, dict):
            return data
        if data.get("isOpenNow") is not None or data.get("is_open_now") is not None:
            return data
        data = {k: v for k, v in data.items() if k != "is_open_now"}
        timings = data.get("timings")
        if not isinstance(timings, dict):
            return {**data, "isOpenNow": False}
        # Pass context={"today": "Monday"} to decode against a fixed day.
        today = (info.context or {}).get("today") or current_day_name()
        return {**data, "isOpenNow": timings_open_on(timings, today)}

    @field_validator("category", mode="before")
    @classmethod
    def _known_category(cls, value: Any) -> Any:
        if value is None or (isinstance(value, str) and value not in PLACE_CATEGORIES):
            return "other"
        return value

    @field_validator("emotions")
    @classmethod
    def _lower_emotions(cls, value: Tuple[str, ...]) -> Tuple[str, ...]:
        return tuple(e.lower() for e in value)


# --- Trails ---

class TrailSummary(BaseModel):
    """Compact trail record used in search results and nearby lookups."""
    model_config = _VALUE

    id: IdStr
    name: str
    center: GeoPoint
    distance_km: Optional[float] = Field(None, alias="distanceKm")
    elevation_gain_m: Optional[float] = Field(None, alias="elevationGainM")
    difficulty: Optional[str] = Field(None, description="easy | moderate | hard")
    thumbnail_url: Optional[str] = Field(None, alias="thumbnailUrl")
    rating: Optional[float] = Field(None, ge=0.0, le=5.0)
    tags: StrTuple = ()

    @model_validator(mode="before")
    @classmethod
    def _lift_center(cls, data: Any) -> Any:
        # Older payloads put lat/lng at the top level instead of under "center".
        if isinstance(data, dict) and data.get("center") is None and "lat" in data:
            return {**data, "center": {"lat": data.get("lat"), "lng": data.get("lng")}}
        return data


class TrailDetail(BaseModel):
    """Full trail page: the summary plus geometry and descriptive text."""
    model_config = _VALUE

    summary: TrailSummary
    description: Optional[str] = None
    length_km: Optional[float] = Field(None, alias="lengthKm")
    max_elevation_m: Optional[float] = Field(None, alias="maxElevationM")
    min_elevation_m: Optional[float] = Field(None, alias="minElevationM")
    geometry: Annotated[Tuple[GeoPoint, ...], BeforeValidator(_none_to_empty)] = ()
    photos: StrTuple = ()

    @property
    def id(self) -> str:
        return self.summary.id


class TrailStats(BaseModel):
    model_config = _VALUE

    review_count: int = Field(0, ge=0, alias="reviewCount")
    avg_rating: float = Field(0.0, alias="avgRating")
    favorite_count: int = Field(0, ge=0, alias="favoriteCount")


class TrailReview(BaseModel):
    model_config = _VALUE

    id: str
    trail_id: str = Field(..., alias="trailId")
    user_id: str = Field(..., alias="userId")
    rating: int = Field(..., ge=1, le=5)
    text: str
    created_at: datetime = Field(..., alias="createdAt")
    photos: StrTuple = ()
    helpful_count: int = Field(0, ge=0, alias="helpfulCount")
    is_helpful_by_me: bool = Field(False, alias="isHelpfulByMe")


# --- Pagination ---

class CursorPage(BaseModel, Generic[T]):
    """One page of results plus the opaque cursor for the next one (None at end of stream)."""
    model_config = _VALUE

    items: Tuple[T, ...] = ()
    next_cursor: Optional[str] = Field(None, alias="nextCursor")

    @property
    def has_more(self) -> bool:
        return self.next_cursor is not None


# --- Queries ---

class PlaceQuery(BaseModel):
    """Filter specification for the local place search."""
    model_config = ConfigDict(frozen=True)

    query: str = ""
    category: str = "all"
    emotion: str = "all"
    max_distance_km: Optional[float] = None
    open_now: Optional[bool] = None
    min_rating: Optional[float] = None


class TrailSearchQuery(BaseModel):
    """Parameters of a remote trail search; every field is part of the cache key."""
    model_config = ConfigDict(frozen=True)

    query: Optional[str] = None
    center: Optional[GeoPoint] = None
    radius_km: Optional[float] = None
    tags: Tuple[str, ...] = ()
    limit: int = Field(20, gt=0)
    cursor: Optional[str] = None

    def to_params(self) -> Dict[str, Any]:
        """Normalized query parameters; empty values are omitted."""
        params: Dict[str, Any] = {}
        if self.query and self.query.strip():
            params["q"] = self.query.strip()
        if self.center is not None:
            params["lat"] = self.center.lat
            params["lng"] = self.center.lng
        if self.radius_km is not None:
            params["radiusKm"] = self.radius_km
        if self.tags:
            params["tags"] = ",".join(self.tags)
        params["limit"] = self.limit
        if self.cursor:
            params["cursor"] = self.cursor
        return params


# --- Error Response Model ---

class ErrorResponse(BaseModel):
    """Standardized error shape handed to the presentation layer."""
    error: str = Field(..., description="A machine-readable error code.")
    detail: str = Field(..., description="A human-readable explanation.")
    status_code: Optional[int] = Field(None, description="HTTP status of the failed remote call, if any.")
