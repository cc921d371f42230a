"""
services/forecast.py
────────────────────
Forecast gateway: daily forecast rows for a coordinate from the forecast
provider, with per-call timeout and exponential-backoff retries.

The provider answers ``GET /forecast?lat&lon&interp&vars[&date]`` with an
envelope ``{"code", "message", "data": {"daily": [...]}}``.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from core.concurrency import RetryPolicy, with_retry
from core.config import Settings, get_settings
from core.errors import ForecastUnavailableError
from core.http import client_session
from models.forecast import ForecastDay

logger = logging.getLogger("placecast.forecast")

DEFAULT_VARS = "T2M,PRECIP"


class ForecastGateway:
    """Thin retrying wrapper around the forecast provider."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Optional[httpx.AsyncClient] = None,
        policy: Optional[RetryPolicy] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._client = client
        self.policy = policy or RetryPolicy(
            retries=self._settings.FORECAST_RETRIES,
            backoff_s=self._settings.FORECAST_RETRY_BACKOFF_S,
            retry_on=(httpx.HTTPError, ForecastUnavailableError),
        )

    @property
    def url(self) -> str:
        return f"{self._settings.FORECAST_BASE_URL.rstrip('/')}/forecast"

    async def _fetch(
        self,
        client: httpx.AsyncClient,
        params: Dict[str, Any],
    ) -> List[ForecastDay]:
        resp = await client.get(self.url, params=params, timeout=self._settings.FORECAST_TIMEOUT_S)
        resp.raise_for_status()
        try:
            envelope = resp.json()
        except ValueError as exc:
            raise ForecastUnavailableError(f"Forecast body is not JSON: {exc}") from exc
        return parse_daily(envelope)

    async def daily_forecast(
        self,
        lat: float,
        lon: float,
        *,
        date: Optional[str] = None,
        variables: str = DEFAULT_VARS,
        interpolate: bool = True,
    ) -> List[ForecastDay]:
        """
        Daily forecast rows for ``(lat, lon)``.

        Each call is retried independently; after the last retry the
        final error propagates to the caller.
        """
        params: Dict[str, Any] = {
            "lat": lat,
            "lon": lon,
            "interp": "1" if interpolate else "0",
            "vars": variables,
        }
        if date:
            params["date"] = date

        async with client_session(self._client, self._settings.FORECAST_TIMEOUT_S) as client:
            return await with_retry(
                lambda: self._fetch(client, params),
                self.policy,
                label=f"forecast({lat:.4f}, {lon:.4f})",
            )


def parse_daily(envelope: Any) -> List[ForecastDay]:
    """Pull ``data.daily`` out of a provider envelope; absent means no days."""
    if not isinstance(envelope, dict):
        raise ForecastUnavailableError("Forecast envelope is not a JSON object")
    data = envelope.get("data") or {}
    if not isinstance(data, dict):
        raise ForecastUnavailableError("Forecast envelope 'data' is not an object")
    rows = data.get("daily") or []
    if not isinstance(rows, list):
        raise ForecastUnavailableError("Forecast 'daily' is not a list")
    try:
        return [ForecastDay.model_validate(row) for row in rows]
    except ValidationError as exc:
        raise ForecastUnavailableError(f"Malformed forecast row: {exc.error_count()} error(s)") from exc
