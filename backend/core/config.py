"""
core/config.py
──────────────
Application configuration loaded from environment variables via pydantic-settings.
The .env file in the backend root is parsed automatically.
"""

from functools import lru_cache
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_DEFAULT_OVERPASS_URLS = ",".join(
    [
        "https://overpass-api.de/api/interpreter",
        "https://overpass.kumi.systems/api/interpreter",
        "https://overpass.openstreetmap.fr/api/interpreter",
    ]
)


class Settings(BaseSettings):
    """Central settings sourced from environment / .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # ── Overpass (POI candidates) ───────────────────────────────────────
    OVERPASS_URLS: str = _DEFAULT_OVERPASS_URLS
    OVERPASS_USER_AGENT: str = "placecast/1.0"
    OVERPASS_TIMEOUT_S: float = Field(default=25.0, gt=0)
    OVERPASS_MIN_RADIUS_M: int = Field(default=100, ge=0)
    OVERPASS_MAX_RADIUS_M: int = Field(default=50_000, ge=0)
    OVERPASS_RETRIES_PER_MIRROR: int = Field(default=0, ge=0)
    OVERPASS_NAME_LANG: str = "en"

    # ── Forecast provider ───────────────────────────────────────────────
    FORECAST_BASE_URL: str = "http://127.0.0.1:8000"
    FORECAST_TIMEOUT_S: float = Field(default=45.0, gt=0)
    FORECAST_RETRIES: int = Field(default=2, ge=0)
    FORECAST_RETRY_BACKOFF_S: float = Field(default=0.8, ge=0)

    # ── Suggestion thresholds ───────────────────────────────────────────
    SUGGEST_BEACH_MAX_RAIN_HI: float = Field(default=25.0, ge=0)
    SUGGEST_HIKE_MAX_RAIN_HI: float = Field(default=30.0, ge=0)
    SUGGEST_MAX_T_HI: float = 38.0
    SUGGEST_MIN_GOOD_DAYS: int = Field(default=1, ge=0)
    SUGGEST_CONCURRENCY: int = Field(default=6, ge=1)
    SUGGEST_DEFAULT_RADIUS_M: int = Field(default=20_000, ge=0)
    SUGGEST_DEFAULT_LIMIT: int = Field(default=40, ge=0)
    SUGGEST_FALLBACK_SIZE: int = Field(default=10, ge=0)

    # ── Geocoder ────────────────────────────────────────────────────────
    NOMINATIM_BASE_URL: str = "https://nominatim.openstreetmap.org"
    NOMINATIM_COUNTRY_CODES: str = ""
    NOMINATIM_TIMEOUT_S: float = Field(default=10.0, gt=0)

    # ── Logging ─────────────────────────────────────────────────────────
    LOG_LEVEL: str = "INFO"

    @property
    def overpass_url_list(self) -> List[str]:
        """Parse the comma-separated OVERPASS_URLS string into an ordered list."""
        return [url.strip() for url in self.OVERPASS_URLS.split(",") if url.strip()]


@lru_cache()
def get_settings() -> Settings:
    """Return a cached Settings instance (created once per process)."""
    return Settings()
