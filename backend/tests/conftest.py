"""Shared fixtures: isolated settings and small builders for places and forecasts."""

from __future__ import annotations

from typing import Dict, List, Optional

import pytest

from core.config import Settings
from models.forecast import ForecastDay
from models.place import OsmElementType, Place


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        OVERPASS_URLS="https://mirror-a.test/api/interpreter,https://mirror-b.test/api/interpreter,https://mirror-c.test/api/interpreter",
        FORECAST_BASE_URL="https://forecast.test",
        FORECAST_RETRY_BACKOFF_S=0.0,
        NOMINATIM_BASE_URL="https://nominatim.test",
    )


def make_place(
    n: int,
    distance_m: int,
    category: str = "tourism:attraction",
    name: Optional[str] = None,
) -> Place:
    return Place(
        id=f"node/{n}",
        kind=OsmElementType.NODE,
        name=name or f"Place {n}",
        category=category,
        lat=6.9 + n / 1000,
        lon=79.8 + n / 1000,
        distance_m=distance_m,
        tags={},
    )


def make_days(
    count: int,
    t2m: Optional[float] = 25.0,
    precip: Optional[float] = 0.2,
    t2m_hi: Optional[float] = 30.0,
    precip_hi: Optional[float] = 2.0,
    first_day: int = 10,
) -> List[ForecastDay]:
    return [
        ForecastDay(
            date=f"2025-09-{first_day + i:02d}",
            t2m=t2m,
            precip=precip,
            t2m_hi=t2m_hi,
            precip_hi=precip_hi,
        )
        for i in range(count)
    ]


class FakeCandidates:
    """Stands in for OverpassClient.find_candidates."""

    def __init__(self, places: List[Place]) -> None:
        self.places = places
        self.calls: List[Dict] = []

    async def find_candidates(self, center, radius_m=30_000, kinds=None, mode=None):
        self.calls.append({"center": center, "radius_m": radius_m, "kinds": kinds, "mode": mode})
        return list(self.places)


class FakeForecasts:
    """Stands in for ForecastGateway.daily_forecast; ``by_lat`` overrides per place."""

    def __init__(self, default=None, by_lat=None, error: Optional[Exception] = None) -> None:
        self.default = default if default is not None else []
        self.by_lat = by_lat or {}
        self.error = error
        self.calls: List[tuple] = []

    async def daily_forecast(self, lat, lon, **kwargs):
        self.calls.append((lat, lon))
        value = self.by_lat.get(lat, self.default)
        if isinstance(value, Exception):
            raise value
        if self.error is not None:
            raise self.error
        return list(value)
