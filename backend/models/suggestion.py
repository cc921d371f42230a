"""
models/suggestion.py
────────────────────
Request and response models of the place-suggestion engine.

Covers:
  • SuggestQuery        — request knobs (centre, radius, window, gates)
  • SuggestionSummary   — per-place weather aggregate over the window
  • Suggestion          — one ranked result
  • RejectionReason     — why a candidate did not make the cut
  • SuggestDiagnostics  — operator-facing tallies returned with the result
"""

from __future__ import annotations

from collections import Counter
from enum import Enum
from typing import FrozenSet, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from models.forecast import TimeWindow
from models.place import Activity, KindGroup, Place, SuggestMode, parse_kinds


# ═══════════════════════════════════════════════════════════════════════════
# Request
# ═══════════════════════════════════════════════════════════════════════════

class SuggestQuery(BaseModel):
    """Everything a caller can tune on one suggestion run."""

    lat: float = Field(..., ge=-90.0, le=90.0, description="Latitude of the search centre")
    lon: float = Field(..., ge=-180.0, le=180.0, description="Longitude of the search centre")
    radius_m: Optional[int] = Field(default=None, ge=0, description="Search radius (m)")
    kinds: Optional[FrozenSet[KindGroup]] = Field(
        default=None,
        description="Kind groups to search; None means all of them",
    )
    mode: Optional[SuggestMode] = Field(
        default=None,
        description="Discovery preset; replaces kinds when given",
    )
    window: TimeWindow = Field(default_factory=TimeWindow)
    min_good_days: Optional[int] = Field(default=None, ge=0)
    limit: Optional[int] = Field(
        default=None,
        ge=0,
        description="Max places to weather-check, nearest first",
    )
    concurrency: Optional[int] = Field(default=None, ge=1)

    @field_validator("kinds", mode="before")
    @classmethod
    def _parse_kind_tokens(cls, v):
        return None if v is None else parse_kinds(v)


# ═══════════════════════════════════════════════════════════════════════════
# Result
# ═══════════════════════════════════════════════════════════════════════════

class SuggestionSummary(BaseModel):
    """Weather aggregate over the evaluated days."""

    model_config = ConfigDict(frozen=True)

    good_days: int = Field(default=0, ge=0)
    days: int = Field(default=0, ge=0)
    sum_rain: float = Field(default=0.0, description="Summed precipitation, 1 dp")
    avg_t: float = Field(default=0.0, description="Mean temperature, 1 dp")
    max_rain_hi: float = 0.0
    max_t_hi: float = 0.0

    @model_validator(mode="after")
    def _good_days_within_days(self) -> "SuggestionSummary":
        if self.good_days > self.days:
            raise ValueError(f"good_days ({self.good_days}) exceeds days ({self.days})")
        return self


class Suggestion(BaseModel):
    """A place with its activity, window score and weather summary."""

    model_config = ConfigDict(frozen=True)

    place: Place
    activity: Activity
    score: int = Field(..., description="Sum of day scores; only comparable within one result")
    summary: SuggestionSummary = Field(default_factory=SuggestionSummary)


class RejectionReason(str, Enum):
    """Why a candidate was dropped during evaluation."""

    WEATHER = "weather"
    GOOD_DAYS = "good_days"
    EMPTY = "empty"
    ERROR = "error"


class RejectionTally(BaseModel):
    """Counts per rejection reason."""

    weather: int = 0
    good_days: int = 0
    empty: int = 0
    error: int = 0

    @classmethod
    def of(cls, reasons: Iterable[RejectionReason]) -> "RejectionTally":
        counts = Counter(r.value for r in reasons)
        return cls(**counts)

    @property
    def total(self) -> int:
        return self.weather + self.good_days + self.empty + self.error


class FallbackStage(str, Enum):
    """Which rung of the fallback ladder produced the suggestions."""

    NONE = "none"
    RELAXED = "relaxed"
    NEAREST = "nearest"


class SuggestDiagnostics(BaseModel):
    """Operator-facing detail about one run; not meant for end users."""

    candidates: int = 0
    checked: int = 0
    rejected: RejectionTally = Field(default_factory=RejectionTally)
    relaxed_rejected: Optional[RejectionTally] = None
    fallback: FallbackStage = FallbackStage.NONE


class SuggestionResult(BaseModel):
    """Ranked suggestions together with the diagnostics that produced them."""

    suggestions: List[Suggestion] = Field(default_factory=list)
    diagnostics: SuggestDiagnostics = Field(default_factory=SuggestDiagnostics)
