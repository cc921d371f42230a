"""
core/errors.py
──────────────
Error taxonomy shared by the upstream clients and the suggestion engine.

Transport failures are left as ``httpx.HTTPError`` subclasses; the types
below cover the conditions that have a meaning of their own.
"""

from __future__ import annotations

from typing import List, Tuple


class PlacecastError(Exception):
    """Base class for every error raised deliberately by this package."""


class UpstreamUnavailableError(PlacecastError):
    """Every configured endpoint of an upstream service failed."""

    def __init__(self, service: str, attempts: List[Tuple[str, str]]) -> None:
        self.service = service
        self.attempts = list(attempts)
        if self.attempts:
            tried = "; ".join(f"{url} → {reason}" for url, reason in self.attempts)
        else:
            tried = "no endpoints configured"
        super().__init__(f"{service} unavailable, all mirrors failed: {tried}")


class ForecastUnavailableError(PlacecastError):
    """The forecast provider answered with something that is not a forecast."""


class PlaceNotFoundError(PlacecastError):
    """The geocoder returned no match for a free-text query."""

    def __init__(self, query: str) -> None:
        self.query = query
        super().__init__(f"Place not found: {query!r}")
