"""
models/place.py
───────────────
Pydantic v2 models for points of interest discovered around a coordinate.

Covers:
  • LatLon       — bare decimal-degree coordinate
  • KindGroup    — requestable category groups (tourism, natural, …)
  • SuggestMode  — named discovery presets (areas / attractions)
  • Category     — closed tagged variant derived from OSM tags
  • Activity     — what a visitor would do there (beach / hike / city)
  • Place        — one normalized candidate, never persisted
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, FrozenSet, Iterable, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# ═══════════════════════════════════════════════════════════════════════════
# Coordinates
# ═══════════════════════════════════════════════════════════════════════════

class LatLon(BaseModel):
    """A point in decimal degrees; range checks are the caller's business."""

    model_config = ConfigDict(frozen=True)

    lat: float
    lon: float


# ═══════════════════════════════════════════════════════════════════════════
# Enums
# ═══════════════════════════════════════════════════════════════════════════

class OsmElementType(str, Enum):
    """Geometry type of an OpenStreetMap element."""

    NODE = "node"
    WAY = "way"
    RELATION = "relation"


class KindGroup(str, Enum):
    """Category groups a caller can ask the candidate source for."""

    TOURISM = "tourism"
    NATURAL = "natural"
    HISTORIC = "historic"
    PARK = "park"


DEFAULT_KINDS: FrozenSet[KindGroup] = frozenset(KindGroup)


class SuggestMode(str, Enum):
    """
    Named discovery presets; when one is given it replaces the kind groups.

    ``areas`` looks for settlements and small admin units, ``attractions``
    for named sights, parks, places of worship and a few natural features.
    """

    AREAS = "areas"
    ATTRACTIONS = "attractions"


def _token(tok: Union[str, KindGroup]) -> str:
    raw = tok.value if isinstance(tok, KindGroup) else str(tok)
    return raw.strip().lower()


def parse_kinds(kinds: Union[str, Iterable[str], None]) -> FrozenSet[KindGroup]:
    """
    Turn ``"tourism, Natural"`` (or an iterable of tokens) into kind groups.

    ``None`` means the default set. Unknown tokens are dropped, so an
    entirely unrecognised input yields an empty set rather than an error.
    """
    if kinds is None:
        return DEFAULT_KINDS
    tokens = kinds.split(",") if isinstance(kinds, str) else kinds
    known = {k.value: k for k in KindGroup}
    return frozenset(
        known[t] for t in (_token(tok) for tok in tokens) if t in known
    )


class Activity(str, Enum):
    """Activity bucket used to pick the hard weather limits."""

    BEACH = "beach"
    HIKE = "hike"
    CITY = "city"


class CategoryNamespace(str, Enum):
    """Tag namespace a category was taken from."""

    TOURISM = "tourism"
    NATURAL = "natural"
    HISTORIC = "historic"
    PARK = "park"
    AMENITY = "amenity"
    PLACE = "place"
    BOUNDARY = "boundary"
    OTHER = "other"


# ═══════════════════════════════════════════════════════════════════════════
# Category
# ═══════════════════════════════════════════════════════════════════════════

# Tag keys checked in order; the first present one wins.
_TAG_PRIORITY = (
    ("tourism", CategoryNamespace.TOURISM),
    ("natural", CategoryNamespace.NATURAL),
    ("historic", CategoryNamespace.HISTORIC),
)

# Order used for the named discovery presets (historic before natural).
_PRESET_TAG_PRIORITY = (
    ("tourism", CategoryNamespace.TOURISM),
    ("historic", CategoryNamespace.HISTORIC),
    ("natural", CategoryNamespace.NATURAL),
)

_PLAIN_PREFIXES = {
    "tourism": CategoryNamespace.TOURISM,
    "natural": CategoryNamespace.NATURAL,
    "historic": CategoryNamespace.HISTORIC,
    "amenity": CategoryNamespace.AMENITY,
    "place": CategoryNamespace.PLACE,
    "boundary": CategoryNamespace.BOUNDARY,
}


class Category(BaseModel):
    """
    Closed tagged variant: ``Tourism(sub) | Natural(sub) | Historic(sub) |
    Park | Amenity(sub) | Place(sub) | Boundary(level) | Other``.

    Renders as the familiar colon string (``tourism:museum``,
    ``leisure:park``, ``place:town``, ``boundary:administrative(8)``,
    ``other``) and parses back from it. Amenity, place and boundary only
    come out of the named discovery presets.
    """

    model_config = ConfigDict(frozen=True)

    namespace: CategoryNamespace
    value: str = ""

    # ── Constructors ────────────────────────────────────────────────────
    @classmethod
    def other(cls) -> "Category":
        return cls(namespace=CategoryNamespace.OTHER)

    @classmethod
    def park(cls) -> "Category":
        return cls(namespace=CategoryNamespace.PARK, value="park")

    @classmethod
    def from_tags(cls, tags: Optional[Mapping[str, str]]) -> "Category":
        """Pick the category from OSM tags: tourism → natural → historic → leisure=park."""
        if not tags:
            return cls.other()
        for key, namespace in _TAG_PRIORITY:
            value = tags.get(key)
            if value:
                return cls(namespace=namespace, value=value)
        if tags.get("leisure") == "park":
            return cls.park()
        return cls.other()

    @classmethod
    def from_preset_tags(cls, tags: Optional[Mapping[str, str]]) -> "Category":
        """
        Category for elements found by a ``SuggestMode`` preset.

        tourism → historic → natural → leisure=park → amenity → place, then
        ``boundary:administrative(<level>)`` for admin areas.
        """
        if not tags:
            return cls.other()
        for key, namespace in _PRESET_TAG_PRIORITY:
            value = tags.get(key)
            if value:
                return cls(namespace=namespace, value=value)
        if tags.get("leisure") == "park":
            return cls.park()
        for key, namespace in (
            ("amenity", CategoryNamespace.AMENITY),
            ("place", CategoryNamespace.PLACE),
        ):
            value = tags.get(key)
            if value:
                return cls(namespace=namespace, value=value)
        level = tags.get("admin_level")
        if tags.get("boundary") == "administrative" and level:
            return cls(namespace=CategoryNamespace.BOUNDARY, value=f"administrative({level})")
        return cls.other()

    @classmethod
    def parse(cls, text: str) -> "Category":
        """Inverse of ``str(category)``; anything unrecognised is ``other``."""
        raw = (text or "").strip()
        if raw.lower() == "leisure:park":
            return cls.park()
        prefix, sep, value = raw.partition(":")
        namespace = _PLAIN_PREFIXES.get(prefix.lower())
        if not sep or namespace is None:
            return cls.other()
        return cls(namespace=namespace, value=value)

    # ── Derived ─────────────────────────────────────────────────────────
    @property
    def is_other(self) -> bool:
        return self.namespace is CategoryNamespace.OTHER

    def __str__(self) -> str:
        if self.namespace is CategoryNamespace.OTHER:
            return "other"
        if self.namespace is CategoryNamespace.PARK:
            return "leisure:park"
        return f"{self.namespace.value}:{self.value}"


def activity_for(category: Category) -> Activity:
    """
    Map a category onto an activity bucket.

    Precedence: anything beach-like, then viewpoints, nature and parks
    (hike), historic sites (city), tourism (city for museums, hike
    otherwise), and city for the rest.
    """
    value = category.value.lower()
    namespace = category.namespace

    if "beach" in value:
        return Activity.BEACH
    if namespace in (CategoryNamespace.NATURAL, CategoryNamespace.PARK) or "viewpoint" in value:
        return Activity.HIKE
    if namespace is CategoryNamespace.HISTORIC:
        return Activity.CITY
    if namespace is CategoryNamespace.TOURISM:
        return Activity.CITY if "museum" in value else Activity.HIKE
    return Activity.CITY


# ═══════════════════════════════════════════════════════════════════════════
# Place
# ═══════════════════════════════════════════════════════════════════════════

class Place(BaseModel):
    """
    One point-of-interest candidate, created fresh for every request.

    ``id`` is provider-qualified (``node/123``) and unique within a single
    discovery result.
    """

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "id": "node/2713431101",
                "kind": "node",
                "name": "Galle Face Green",
                "category": "leisure:park",
                "lat": 6.9245,
                "lon": 79.8450,
                "distance_m": 1810,
                "tags": {"leisure": "park", "name": "Galle Face Green"},
            }
        },
    )

    id: str = Field(..., description="Provider-qualified id, e.g. node/123")
    kind: OsmElementType
    name: str = Field(..., min_length=1)
    category: str = Field(..., description="Colon-namespaced category, e.g. tourism:museum")
    lat: float
    lon: float
    distance_m: int = Field(..., ge=0, description="Rounded metres from the query centre")
    tags: Dict[str, str] = Field(default_factory=dict)

    @property
    def parsed_category(self) -> Category:
        return Category.parse(self.category)

    @property
    def activity(self) -> Activity:
        return activity_for(self.parsed_category)
