"""
scripts/suggest_nearby.py
─────────────────────────
Run the place-suggestion engine for a coordinate (or a place name) and
print the ranked table.

Usage:
    python -m scripts.suggest_nearby --lat 6.9271 --lon 79.8612
    python -m scripts.suggest_nearby --place Ella --start 2025-09-10 --end 2025-09-12
    python -m scripts.suggest_nearby --lat 6.9271 --lon 79.8612 --nearby-only
    python -m scripts.suggest_nearby --place Kandy --mode attractions
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from datetime import date
from pathlib import Path
from typing import List, Optional

import httpx

# Ensure backend/ is on sys.path when run directly
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from core.config import get_settings
from core.errors import PlacecastError
from models.forecast import TimeWindow
from models.place import LatLon, Place, SuggestMode
from models.suggestion import SuggestQuery, SuggestionResult
from services.geocode import GeocodeService
from services.overpass import OverpassClient
from services.suggest import SuggestionEngine

settings = get_settings()

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger("placecast.cli")


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Suggest places near a point, filtered by forecast")
    where = parser.add_argument_group("location")
    where.add_argument("--lat", type=float)
    where.add_argument("--lon", type=float)
    where.add_argument("--place", help="Free-text place name, geocoded via Nominatim")
    parser.add_argument("--radius", type=int, default=None, help="Search radius in metres")
    parser.add_argument("--kinds", default=None, help="Comma list: tourism,natural,historic,park")
    parser.add_argument(
        "--mode",
        choices=[m.value for m in SuggestMode],
        default=None,
        help="Discovery preset; overrides --kinds",
    )
    parser.add_argument("--start", type=date.fromisoformat, default=None, help="YYYY-MM-DD")
    parser.add_argument("--end", type=date.fromisoformat, default=None, help="YYYY-MM-DD")
    parser.add_argument("--min-good-days", type=int, default=None)
    parser.add_argument("--limit", type=int, default=None, help="Max places to weather-check")
    parser.add_argument(
        "--nearby-only",
        action="store_true",
        help="List candidate places without checking the forecast",
    )
    args = parser.parse_args(argv)
    if args.place is None and (args.lat is None or args.lon is None):
        parser.error("give either --place or both --lat and --lon")
    return args


def _print_places(places: List[Place]) -> None:
    print(f"\n  {'Distance':>9}  {'Category':<24} Name")
    print("  " + "-" * 60)
    for p in places:
        print(f"  {p.distance_m:>8}m  {p.category:<24} {p.name}")
    print()


def _print_suggestions(result: SuggestionResult) -> None:
    print("\n" + "=" * 78)
    print(f"  {'Score':>5}  {'Good':>4}/{'Days':<4} {'Activity':<8} {'Distance':>9}  Name")
    print("  " + "-" * 72)
    for s in result.suggestions:
        print(
            f"  {s.score:>5}  {s.summary.good_days:>4}/{s.summary.days:<4} "
            f"{s.activity.value:<8} {s.place.distance_m:>8}m  {s.place.name}"
        )
    print("=" * 78)
    d = result.diagnostics
    print(
        f"  candidates={d.candidates} checked={d.checked} "
        f"fallback={d.fallback.value} rejected={d.rejected.model_dump()}"
    )
    print("=" * 78 + "\n")


async def run(args: argparse.Namespace) -> int:
    async with httpx.AsyncClient() as client:
        if args.place:
            hit = await GeocodeService(settings, client=client).geocode(args.place)
            lat, lon = hit.lat, hit.lon
        else:
            lat, lon = args.lat, args.lon

        if args.nearby_only:
            places = await OverpassClient(settings, client=client).find_candidates(
                LatLon(lat=lat, lon=lon),
                args.radius or settings.SUGGEST_DEFAULT_RADIUS_M,
                args.kinds,
                mode=args.mode,
            )
            _print_places(places)
            return 0

        query = SuggestQuery(
            lat=lat,
            lon=lon,
            radius_m=args.radius,
            kinds=args.kinds,
            mode=args.mode,
            window=TimeWindow(start=args.start, end=args.end),
            min_good_days=args.min_good_days,
            limit=args.limit,
        )
        result = await SuggestionEngine.from_settings(settings, client).suggest(query)
        _print_suggestions(result)
        return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)
    try:
        return asyncio.run(run(args))
    except PlacecastError as exc:
        logger.error("%s", exc)
        return 1
    except httpx.HTTPError as exc:
        logger.error("Upstream request failed: %s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
