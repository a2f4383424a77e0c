"""
Error taxonomy for the data access layer.

Every failure on a fetch path is a ``FetchError``. Callers translate these
into user-visible states; nothing in this package downgrades them to
default values except the stale-cache fallback on ``304 Not Modified`` and
the HEAD-to-GET degrade in ``WishlistService.exists``.
"""

from typing import Any, Dict, Optional

from waypoint.models.dto import ErrorResponse


class FetchError(Exception):
    """Base exception for failed reads and writes against a data source."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    @property
    def status_code(self) -> Optional[int]:
        return None

    def to_response(self) -> ErrorResponse:
        """Convert to the serializable error shape handed to consumers."""
        return ErrorResponse(
            error=self.code,
            detail=self.message,
            status_code=self.status_code,
        )


class TransportError(FetchError):
    """The remote call did not complete, or completed with an unexpected status."""

    def __init__(
        self,
        message: str = "Remote request failed",
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self._status_code = status_code
        super().__init__("TRANSPORT_ERROR", message, details)

    @property
    def status_code(self) -> Optional[int]:
        return self._status_code


class ProtocolViolationError(FetchError):
    """The server answered ``304 Not Modified`` but no cached payload exists."""

    def __init__(self, message: str = "Not Modified received without a cached payload", details: Optional[Dict[str, Any]] = None):
        super().__init__("PROTOCOL_VIOLATION", message, details)


class DecodeError(FetchError):
    """A payload did not match the expected shape."""

    def __init__(self, message: str = "Payload could not be decoded", details: Optional[Dict[str, Any]] = None):
        super().__init__("DECODE_ERROR", message, details)
