"""
core/geo.py
───────────
Great-circle distance on a spherical Earth.
"""

from __future__ import annotations

import math
from typing import Protocol

EARTH_RADIUS_M = 6_371_000.0


class HasLatLon(Protocol):
    lat: float
    lon: float


def distance_meters(a: HasLatLon, b: HasLatLon) -> float:
    """
    Haversine distance in metres between two decimal-degree points.

    No range validation and no rounding; callers round where needed.
    """
    lat1 = math.radians(a.lat)
    lat2 = math.radians(b.lat)
    d_lat = math.radians(b.lat - a.lat)
    d_lon = math.radians(b.lon - a.lon)
    h = math.sin(d_lat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(d_lon / 2) ** 2
    return 2 * EARTH_RADIUS_M * math.asin(math.sqrt(h))
