# Runtime configuration for the data access layer.
# Values come from the environment (or a local .env file).

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from typing import Optional

class Settings(BaseSettings):
    PROJECT_NAME: str = "Waypoint"
    VERSION: str = "0.3.0"
    BRIEF_DESCRIPTION: str = "Client-side data access and caching layer for place search, nearby trails and the wishlist."

    ENV: str = Field("development", description="Application environment (e.g., production, development)")

    # --- Remote source ---
    API_BASE_URL: str = Field("http://localhost:3000", description="Base URL of the remote data API")
    API_KEY: Optional[str] = Field(None, description="Sent as x-api-key when set")
    REQUEST_TIMEOUT: float = Field(10.0, description="Per-request timeout in seconds")

    WISHLIST_PATH: str = "/api/wishlist"
    TRAILS_PATH: str = "/trails"

    # --- Caching ---
    CACHE_TTL_SECONDS: float = Field(300.0, description="TTL for search/detail/geometry caches")
    WISHLIST_CACHE_TTL_SECONDS: float = Field(1800.0, description="How long a wishlist payload is kept for revalidation")

    # Bundled dataset for local place search
    SEED_DATA_PATH: Optional[str] = Field(None, description="Path to the atlas seed JSON file")

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore"
    )

settings = Settings()
