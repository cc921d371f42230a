"""
services/overpass.py
────────────────────
Point-of-interest candidate source backed by the Overpass API (OpenStreetMap).

Pipeline:
  1. Build one Overpass QL union for the requested kind groups
     (or for a named ``SuggestMode`` preset)
  2. POST it to each configured mirror in order until one answers
  3. Normalize raw elements → Place, drop ``other``, dedupe, sort by distance

Mirrors are tried strictly one after another, never fanned out.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

import httpx

from core.concurrency import RetryPolicy, with_retry
from core.config import Settings, get_settings
from core.errors import UpstreamUnavailableError
from core.geo import distance_meters
from core.http import client_session
from models.place import (
    Category,
    KindGroup,
    LatLon,
    OsmElementType,
    Place,
    SuggestMode,
    parse_kinds,
)

logger = logging.getLogger("placecast.overpass")

# Natural features people actually travel to
NATURAL_FEATURES = (
    "beach|waterfall|peak|cliff|cave_entrance|spring|geyser|moor|dune|wetland"
)

_GROUP_FILTERS: Dict[KindGroup, str] = {
    KindGroup.TOURISM: "[tourism]",
    KindGroup.NATURAL: f'[natural~"{NATURAL_FEATURES}"]',
    KindGroup.HISTORIC: "[historic]",
    KindGroup.PARK: "[leisure=park]",
}

# Stable query text regardless of set iteration order
_GROUP_ORDER = (KindGroup.TOURISM, KindGroup.NATURAL, KindGroup.HISTORIC, KindGroup.PARK)

# ── Named presets ───────────────────────────────────────────────────────────
SETTLEMENT_PLACES = "city|town|village|suburb|hamlet"
ADMIN_LEVELS = "8|9|10"

_PRESET_SELECTORS: Dict[SuggestMode, Tuple[Tuple[str, str], ...]] = {
    SuggestMode.AREAS: (
        ("node", f'["place"~"{SETTLEMENT_PLACES}"]["name"]'),
        ("way", f'["place"~"{SETTLEMENT_PLACES}"]["name"]'),
        (
            "relation",
            f'["boundary"="administrative"]["name"]["admin_level"~"{ADMIN_LEVELS}"]',
        ),
    ),
    SuggestMode.ATTRACTIONS: (
        ("nwr", '["tourism"~"attraction|museum|viewpoint|theme_park|zoo"]["name"]'),
        ("nwr", '["historic"~"monument|ruins|archaeological_site|castle|memorial"]["name"]'),
        ("nwr", '["leisure"~"park|garden|nature_reserve"]["name"]'),
        ("nwr", '["amenity"="place_of_worship"]["name"]'),
        ("nwr", '["natural"~"peak|waterfall|cave_entrance"]["name"]'),
    ),
}

# Presets return at most this many places
PRESET_RESULT_CAP = 60

# Tag values like "place_of_worship" used as a name
_GENERIC_NAME = re.compile(r"^[a-z_]+$")


# ═══════════════════════════════════════════════════════════════════════════
# Query building & parsing (pure)
# ═══════════════════════════════════════════════════════════════════════════

def build_query(
    center: LatLon,
    radius_m: int,
    kinds: Iterable[KindGroup],
    timeout_s: int = 25,
) -> str:
    """Overpass QL for every element of the given groups within ``radius_m``."""
    wanted = set(kinds)
    around = f"(around:{radius_m},{center.lat},{center.lon})"
    lines: List[str] = []
    for group in _GROUP_ORDER:
        if group not in wanted:
            continue
        tag_filter = _GROUP_FILTERS[group]
        for element in ("node", "way", "relation"):
            lines.append(f"  {element}{around}{tag_filter};")
    body = "\n".join(lines)
    return f"[out:json][timeout:{timeout_s}];\n(\n{body}\n);\nout center;\n"


def build_preset_query(
    center: LatLon,
    radius_m: int,
    mode: SuggestMode,
    timeout_s: int = 25,
) -> str:
    """Overpass QL for a named preset; every selector requires a ``name`` tag."""
    around = f"(around:{radius_m},{center.lat},{center.lon})"
    body = "\n".join(
        f"  {element}{around}{selector};" for element, selector in _PRESET_SELECTORS[mode]
    )
    return f"[out:json][timeout:{timeout_s}];\n(\n{body}\n);\nout center tags;\n"


def element_coordinates(element: Mapping[str, Any]) -> Optional[LatLon]:
    """Direct point for nodes, provider centroid for ways/relations, else None."""
    lat, lon = element.get("lat"), element.get("lon")
    if isinstance(lat, (int, float)) and isinstance(lon, (int, float)):
        return LatLon(lat=lat, lon=lon)
    center = element.get("center")
    if not isinstance(center, Mapping):
        return None
    lat, lon = center.get("lat"), center.get("lon")
    if isinstance(lat, (int, float)) and isinstance(lon, (int, float)):
        return LatLon(lat=lat, lon=lon)
    return None


def display_name(tags: Mapping[str, str], category: Category, lang: str = "en") -> str:
    """Localized name → name → category token → ``Unnamed``."""
    for key in (f"name:{lang}", "name"):
        value = (tags.get(key) or "").strip()
        if value:
            return value
    if not category.is_other and category.value:
        return category.value
    return "Unnamed"


def preset_name(tags: Mapping[str, str], category: Category, lang: str = "en") -> Optional[str]:
    """
    Name for a preset result, or None when the element should be dropped.

    Localized name → ``int_name`` → ``name``. Bare snake_case tokens and
    names that merely repeat the category value are rejected.
    """
    name = ""
    for key in (f"name:{lang}", "int_name", "name"):
        if tags.get(key):
            name = tags[key].strip()
            break
    if not name or _GENERIC_NAME.match(name):
        return None
    if name.lower() == category.value.lower():
        return None
    return name


def _typed_point(el: Any) -> Optional[Tuple[OsmElementType, LatLon]]:
    if not isinstance(el, Mapping) or el.get("id") is None:
        return None
    try:
        kind = OsmElementType(el.get("type"))
    except ValueError:
        return None
    point = element_coordinates(el)
    if point is None:
        return None
    return kind, point


def parse_preset_elements(
    elements: Iterable[Mapping[str, Any]],
    center: LatLon,
    lang: str = "en",
) -> List[Place]:
    """
    Normalize elements returned by a preset query.

    Same drops as ``parse_elements`` plus the ``preset_name`` rules. The
    same name under the same category counts as one place (a town node
    and its boundary relation, say), keeping the nearest. Sorted by
    distance and capped at ``PRESET_RESULT_CAP``.
    """
    nearest: Dict[str, Place] = {}
    for el in elements:
        typed = _typed_point(el)
        if typed is None:
            continue
        kind, point = typed

        tags = {str(k): str(v) for k, v in (el.get("tags") or {}).items()}
        category = Category.from_preset_tags(tags)
        if category.is_other:
            continue
        name = preset_name(tags, category, lang)
        if name is None:
            continue

        place = Place(
            id=f"{kind.value}/{el.get('id')}",
            kind=kind,
            name=name,
            category=str(category),
            lat=point.lat,
            lon=point.lon,
            distance_m=round(distance_meters(center, point)),
            tags=tags,
        )
        key = f"{name.lower()}@{place.category}"
        prev = nearest.get(key)
        if prev is None or place.distance_m < prev.distance_m:
            nearest[key] = place

    return sorted(nearest.values(), key=lambda p: p.distance_m)[:PRESET_RESULT_CAP]


def parse_elements(
    elements: Iterable[Mapping[str, Any]],
    center: LatLon,
    lang: str = "en",
) -> List[Place]:
    """
    Normalize raw Overpass elements into places around ``center``.

    Elements without coordinates, with an unknown type, or whose category
    is ``other`` are skipped. Duplicate ids keep the nearest occurrence;
    the result is sorted by ascending distance.
    """
    nearest: Dict[str, Place] = {}
    for el in elements:
        typed = _typed_point(el)
        if typed is None:
            continue
        kind, point = typed

        tags = {str(k): str(v) for k, v in (el.get("tags") or {}).items()}
        category = Category.from_tags(tags)
        if category.is_other:
            continue

        place = Place(
            id=f"{kind.value}/{el.get('id')}",
            kind=kind,
            name=display_name(tags, category, lang),
            category=str(category),
            lat=point.lat,
            lon=point.lon,
            distance_m=round(distance_meters(center, point)),
            tags=tags,
        )
        prev = nearest.get(place.id)
        if prev is None or place.distance_m < prev.distance_m:
            nearest[place.id] = place

    return sorted(nearest.values(), key=lambda p: p.distance_m)


# ═══════════════════════════════════════════════════════════════════════════
# Client
# ═══════════════════════════════════════════════════════════════════════════

class OverpassClient:
    """Mirror-aware Overpass client; see ``find_candidates``."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Optional[httpx.AsyncClient] = None,
        mirrors: Optional[List[str]] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._client = client
        self.mirrors = list(mirrors if mirrors is not None else self._settings.overpass_url_list)
        self._per_mirror_policy = RetryPolicy(
            retries=self._settings.OVERPASS_RETRIES_PER_MIRROR,
            backoff_s=0.0,
            retry_on=(httpx.HTTPError, ValueError),
        )

    def clamp_radius(self, radius_m: float) -> int:
        low = self._settings.OVERPASS_MIN_RADIUS_M
        high = self._settings.OVERPASS_MAX_RADIUS_M
        return int(max(low, min(radius_m, high)))

    async def _post(self, client: httpx.AsyncClient, url: str, ql: str) -> Dict[str, Any]:
        resp = await client.post(
            url,
            content=ql.encode("utf-8"),
            headers={
                "Content-Type": "text/plain; charset=UTF-8",
                "User-Agent": self._settings.OVERPASS_USER_AGENT,
            },
            timeout=self._settings.OVERPASS_TIMEOUT_S,
        )
        resp.raise_for_status()
        data = resp.json()
        if not isinstance(data, dict):
            raise ValueError("Overpass response is not a JSON object")
        return data

    async def run_query(self, ql: str) -> Dict[str, Any]:
        """
        Send ``ql`` to each mirror in order and return the first parsed body.

        Raises ``UpstreamUnavailableError`` listing every mirror and its
        failure once the list is exhausted.
        """
        attempts: List[Tuple[str, str]] = []
        async with client_session(self._client, self._settings.OVERPASS_TIMEOUT_S) as client:
            for url in self.mirrors:
                try:
                    data = await with_retry(
                        lambda: self._post(client, url, ql),
                        self._per_mirror_policy,
                        label=f"Overpass {url}",
                    )
                except (httpx.HTTPError, ValueError) as exc:
                    reason = _describe(exc)
                    logger.warning("Overpass mirror %s failed: %s", url, reason)
                    attempts.append((url, reason))
                    continue
                logger.debug("Overpass mirror %s answered after %d failures", url, len(attempts))
                return data

        logger.error("All %d Overpass mirrors failed", len(attempts))
        raise UpstreamUnavailableError("Overpass", attempts)

    async def find_candidates(
        self,
        center: LatLon,
        radius_m: float = 30_000,
        kinds: Any = None,
        mode: Optional[SuggestMode] = None,
    ) -> List[Place]:
        """
        Travel-worthy places within ``radius_m`` of ``center``, nearest first.

        ``kinds`` accepts a CSV string, an iterable of tokens or kind
        groups, or None for every group. With no recognised group the
        result is empty and no request is made.

        A ``mode`` preset, when given, replaces ``kinds`` entirely.
        """
        radius = self.clamp_radius(radius_m)
        timeout_s = int(self._settings.OVERPASS_TIMEOUT_S)
        lang = self._settings.OVERPASS_NAME_LANG

        if mode is not None:
            mode = SuggestMode(mode)
            ql = build_preset_query(center, radius, mode, timeout_s)
        else:
            groups = parse_kinds(kinds)
            if not groups:
                logger.info("No recognised kind groups in %r, skipping Overpass", kinds)
                return []
            ql = build_query(center, radius, groups, timeout_s)

        data = await self.run_query(ql)

        elements = data.get("elements")
        if not isinstance(elements, list):
            elements = []
        if mode is not None:
            places = parse_preset_elements(elements, center, lang)
        else:
            places = parse_elements(elements, center, lang)
        logger.info(
            "Overpass (%s): %d places from %d elements within %dm of (%.4f, %.4f)",
            mode.value if mode is not None else "kinds",
            len(places),
            len(elements),
            radius,
            center.lat,
            center.lon,
        )
        return places


def _describe(exc: Exception) -> str:
    if isinstance(exc, httpx.HTTPStatusError):
        return f"HTTP {exc.response.status_code}"
    if isinstance(exc, httpx.TimeoutException):
        return f"timeout ({type(exc).__name__})"
    return f"{type(exc).__name__}: {exc}" if str(exc) else type(exc).__name__
