"""Schema decoders: raw payload in, typed value out, or ``DecodeError``.

Decoders never return partially populated objects. A list with one bad entry
fails as a whole.
"""

from typing import Any, Dict, List, Optional, Sequence, Type, TypeVar

from pydantic import BaseModel, ValidationError

from waypoint.core.errors import DecodeError
from waypoint.models.dto import (
    CursorPage,
    GeoPoint,
    Place,
    TrailDetail,
    TrailReview,
    TrailStats,
    TrailSummary,
)

M = TypeVar("M", bound=BaseModel)


def decode_model(model: Type[M], payload: Any, context: Optional[Dict[str, Any]] = None) -> M:
    try:
        return model.model_validate(payload, context=context)
    except ValidationError as e:
        raise DecodeError(
            f"Invalid {model.__name__} payload",
            details={"error_count": e.error_count(), "reason": str(e)},
        ) from e


def decode_list(model: Type[M], payload: Any, context: Optional[Dict[str, Any]] = None) -> List[M]:
    if not isinstance(payload, list):
        raise DecodeError(
            f"Expected a list of {model.__name__}",
            details={"received": type(payload).__name__},
        )
    return [decode_model(model, item, context) for item in payload]


def extract_items(payload: Any, keys: Sequence[str] = ("items",)) -> Any:
    """Return the first list found under ``keys`` in an envelope, or the payload itself if it is a list."""
    if isinstance(payload, list):
        return payload
    if not isinstance(payload, dict):
        raise DecodeError("Expected a JSON object or array", details={"received": type(payload).__name__})
    for key in keys:
        if key in payload and payload[key] is not None:
            return payload[key]
    raise DecodeError(f"Envelope has none of {list(keys)}", details={"keys": sorted(payload)})


def decode_page(model: Type[M], payload: Any, keys: Sequence[str] = ("items",)) -> CursorPage[M]:
    """Decode a ``{items, nextCursor}`` envelope."""
    if not isinstance(payload, dict):
        raise DecodeError("Expected a paged JSON object", details={"received": type(payload).__name__})
    items = decode_list(model, extract_items(payload, keys))
    next_cursor = payload.get("nextCursor")
    if next_cursor is not None and not isinstance(next_cursor, str):
        raise DecodeError("nextCursor must be a string", details={"received": type(next_cursor).__name__})
    # An empty cursor means end of stream, same as a missing one.
    return CursorPage[model](items=tuple(items), next_cursor=next_cursor or None)


def decode_place(payload: Any, context: Optional[Dict[str, Any]] = None) -> Place:
    return decode_model(Place, payload, context)


def decode_places(payload: Any, context: Optional[Dict[str, Any]] = None) -> List[Place]:
    return decode_list(Place, payload, context)


def decode_trail_summary(payload: Any) -> TrailSummary:
    return decode_model(TrailSummary, payload)


def decode_trail_summaries(payload: Any) -> List[TrailSummary]:
    return decode_list(TrailSummary, extract_items(payload))


def decode_trail_detail(payload: Any) -> TrailDetail:
    return decode_model(TrailDetail, payload)


def decode_geometry(payload: Any) -> List[GeoPoint]:
    return decode_list(GeoPoint, payload)


def decode_trail_stats(payload: Any) -> TrailStats:
    return decode_model(TrailStats, payload)


def decode_trail_review(payload: Any) -> TrailReview:
    return decode_model(TrailReview, payload)
