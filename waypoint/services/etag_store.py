from typing import Dict, Optional


class RevalidationTokenStore:
    """Holds at most one ETag per cache key."""

    def __init__(self):
        self._tokens: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._tokens.get(key)

    def put(self, key: str, token: str) -> None:
        if not token:
            raise ValueError("revalidation token must be a non-empty string")
        self._tokens[key] = token

    def discard(self, key: str) -> None:
        self._tokens.pop(key, None)

    def clear(self) -> None:
        self._tokens.clear()
