"""
services/geocode.py
───────────────────
Free-text place name → best-match coordinate via Nominatim.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx
from pydantic import BaseModel

from core.config import Settings, get_settings
from core.errors import PlaceNotFoundError
from core.http import client_session

logger = logging.getLogger("placecast.geocode")


class GeocodeHit(BaseModel):
    """Best match for a geocoding query."""

    name: str
    lat: float
    lon: float


class GeocodeService:
    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._client = client

    async def geocode(self, query: str) -> GeocodeHit:
        """
        Resolve ``query`` to a single coordinate.

        Raises ``PlaceNotFoundError`` when Nominatim has no match.
        """
        params: Dict[str, Any] = {"q": query, "format": "jsonv2", "limit": 1}
        if self._settings.NOMINATIM_COUNTRY_CODES:
            params["countrycodes"] = self._settings.NOMINATIM_COUNTRY_CODES

        url = f"{self._settings.NOMINATIM_BASE_URL.rstrip('/')}/search"
        async with client_session(self._client, self._settings.NOMINATIM_TIMEOUT_S) as client:
            resp = await client.get(
                url,
                params=params,
                headers={"User-Agent": self._settings.OVERPASS_USER_AGENT},
                timeout=self._settings.NOMINATIM_TIMEOUT_S,
            )
            resp.raise_for_status()
            data = resp.json()

        if not isinstance(data, list) or not data:
            raise PlaceNotFoundError(query)

        item = data[0] if isinstance(data[0], dict) else {}
        try:
            lat, lon = float(item["lat"]), float(item["lon"])
        except (KeyError, TypeError, ValueError):
            logger.warning("Nominatim hit for %r has no usable coordinates: %r", query, item)
            raise PlaceNotFoundError(query)

        hit = GeocodeHit(name=item.get("display_name") or query, lat=lat, lon=lon)
        logger.info("Geocoded %r → %s (%.4f, %.4f)", query, hit.name, hit.lat, hit.lon)
        return hit
