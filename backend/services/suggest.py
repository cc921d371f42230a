"""
services/suggest.py
───────────────────
Place-suggestion engine: "what is worth visiting near here, given the
forecast for my dates?"

Pipeline:
  Phase 1 → Candidate discovery   (Overpass, nearest first)
  Phase 2 → Forecast enrichment   (nearest N only, bounded concurrency)
  Phase 3 → Hard safety limits + good-day gate, then rank by score/distance
  Phase 4 → Fallback ladder       (relaxed pass, then plain nearest places)

The caller gets an empty list only when no candidate exists in the radius.
"""

from __future__ import annotations

import logging
from typing import List, NamedTuple, Optional, Sequence, Union

import httpx
from pydantic import BaseModel, ConfigDict

from core.concurrency import bounded_map
from core.config import Settings, get_settings
from models.forecast import ForecastDay, TimeWindow
from models.place import Activity, LatLon, Place
from models.suggestion import (
    FallbackStage,
    RejectionReason,
    RejectionTally,
    SuggestDiagnostics,
    SuggestQuery,
    Suggestion,
    SuggestionResult,
    SuggestionSummary,
)
from services.forecast import ForecastGateway
from services.overpass import OverpassClient

logger = logging.getLogger("placecast.suggest")

# ── Scoring constants ───────────────────────────────────────────────────────
GOOD_DAY_SCORE = 3
MIN_CHECKED = 5
MAX_CHECKED = 120

# Stand-ins for a missing upper bound: never trips a limit
_NO_RAIN_HI = 0.0
_NO_T_HI = -99.0


# ═══════════════════════════════════════════════════════════════════════════
# Scoring (pure)
# ═══════════════════════════════════════════════════════════════════════════

def score_day(t: Optional[float], r: Optional[float]) -> int:
    """
    Comfort score of one day from mean temperature ``t`` (°C) and rain ``r`` (mm).

    -1 when either value is missing. Otherwise +2 for 22–32 °C (+1 for
    20–22 or 32–34), +2 for under 1 mm (+1 up to 5 mm), -2 above 35 °C,
    -2 above 10 mm.
    """
    if t is None or r is None:
        return -1
    s = 0
    if 22 <= t <= 32:
        s += 2
    elif 20 <= t < 22 or 32 < t <= 34:
        s += 1
    if r < 1:
        s += 2
    elif r <= 5:
        s += 1
    if t > 35:
        s -= 2
    if r > 10:
        s -= 2
    return s


class SafetyLimits(BaseModel):
    """Hard weather limits per activity, evaluated on window maxima."""

    model_config = ConfigDict(frozen=True)

    beach_max_rain_hi: float = 25.0
    hike_max_rain_hi: float = 30.0
    max_t_hi: float = 38.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "SafetyLimits":
        return cls(
            beach_max_rain_hi=settings.SUGGEST_BEACH_MAX_RAIN_HI,
            hike_max_rain_hi=settings.SUGGEST_HIKE_MAX_RAIN_HI,
            max_t_hi=settings.SUGGEST_MAX_T_HI,
        )

    def rain_limit(self, activity: Activity) -> Optional[float]:
        if activity is Activity.BEACH:
            return self.beach_max_rain_hi
        if activity is Activity.HIKE:
            return self.hike_max_rain_hi
        return None

    def violated(self, activity: Activity, max_rain_hi: float, max_t_hi: float) -> bool:
        """City trips have no hard limit; beach and hike share the temperature cap."""
        rain_limit = self.rain_limit(activity)
        if rain_limit is None:
            return False
        return max_rain_hi > rain_limit or max_t_hi > self.max_t_hi


Outcome = Union[Suggestion, RejectionReason]


def evaluate(
    place: Place,
    days: Sequence[ForecastDay],
    window: TimeWindow,
    limits: SafetyLimits,
    min_good_days: int,
    strict: bool = True,
) -> Outcome:
    """
    Score ``place`` over the days of ``days`` that fall in ``window``.

    With ``strict=False`` the hard limits and the good-day gate are
    skipped; an empty window is still a rejection.
    """
    daily = [d for d in days if window.contains(d.date)]
    if not daily:
        return RejectionReason.EMPTY

    activity = place.activity
    max_rain_hi = max(d.precip_hi if d.precip_hi is not None else _NO_RAIN_HI for d in daily)
    max_t_hi = max(d.t2m_hi if d.t2m_hi is not None else _NO_T_HI for d in daily)

    if strict and limits.violated(activity, max_rain_hi, max_t_hi):
        return RejectionReason.WEATHER

    scores = [score_day(d.t2m, d.precip) for d in daily]
    good_days = sum(1 for s in scores if s >= GOOD_DAY_SCORE)
    if strict and good_days < min_good_days:
        return RejectionReason.GOOD_DAYS

    sum_rain = sum(d.precip or 0.0 for d in daily)
    avg_t = sum(d.t2m or 0.0 for d in daily) / len(daily)

    return Suggestion(
        place=place,
        activity=activity,
        score=sum(scores),
        summary=SuggestionSummary(
            good_days=good_days,
            days=len(daily),
            sum_rain=round(sum_rain, 1),
            avg_t=round(avg_t, 1),
            max_rain_hi=max_rain_hi,
            max_t_hi=max_t_hi,
        ),
    )


def rank(suggestions: Sequence[Suggestion]) -> List[Suggestion]:
    """Highest score first; nearer place wins a tie."""
    return sorted(suggestions, key=lambda s: (-s.score, s.place.distance_m))


def nearest_as_suggestions(places: Sequence[Place]) -> List[Suggestion]:
    """Zero-score suggestions for places we could not evaluate at all."""
    return [Suggestion(place=p, activity=p.activity, score=0) for p in places]


# ═══════════════════════════════════════════════════════════════════════════
# Engine
# ═══════════════════════════════════════════════════════════════════════════

class _Checked(NamedTuple):
    days: Optional[List[ForecastDay]]
    outcome: Outcome


def _split(checks: Sequence[_Checked]):
    accepted = [c.outcome for c in checks if isinstance(c.outcome, Suggestion)]
    tally = RejectionTally.of(c.outcome for c in checks if isinstance(c.outcome, RejectionReason))
    return accepted, tally


class SuggestionEngine:
    """Composes the candidate source and the forecast gateway."""

    def __init__(
        self,
        candidates: OverpassClient,
        forecasts: ForecastGateway,
        settings: Optional[Settings] = None,
    ) -> None:
        self.candidates = candidates
        self.forecasts = forecasts
        self._settings = settings or get_settings()
        self.limits = SafetyLimits.from_settings(self._settings)

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> "SuggestionEngine":
        settings = settings or get_settings()
        return cls(
            OverpassClient(settings, client=client),
            ForecastGateway(settings, client=client),
            settings,
        )

    async def _check(
        self,
        place: Place,
        window: TimeWindow,
        min_good_days: int,
        strict: bool,
        days: Optional[List[ForecastDay]] = None,
    ) -> _Checked:
        # Any failure here becomes an ERROR rejection for this place only.
        try:
            if days is None:
                days = await self.forecasts.daily_forecast(place.lat, place.lon)
            return _Checked(days, evaluate(place, days, window, self.limits, min_good_days, strict))
        except Exception as exc:
            logger.warning("Forecast check failed for %s (%s): %s", place.id, place.name, exc)
            return _Checked(days, RejectionReason.ERROR)

    async def suggest(self, query: SuggestQuery) -> SuggestionResult:
        """
        Ranked suggestions around ``(query.lat, query.lon)``.

        Candidate discovery errors propagate; per-candidate forecast
        errors are tallied in the diagnostics instead.
        """
        s = self._settings
        radius = query.radius_m if query.radius_m is not None else s.SUGGEST_DEFAULT_RADIUS_M
        limit = query.limit if query.limit is not None else s.SUGGEST_DEFAULT_LIMIT
        min_good_days = (
            query.min_good_days if query.min_good_days is not None else s.SUGGEST_MIN_GOOD_DAYS
        )
        width = query.concurrency or s.SUGGEST_CONCURRENCY

        logger.debug(
            "suggest(): mode=%s lat=%s lon=%s radius=%s window=%s..%s",
            query.mode.value if query.mode else "kinds",
            query.lat,
            query.lon,
            radius,
            query.window.start,
            query.window.end,
        )

        # ── Phase 1: Candidates ─────────────────────────────────────────
        places = await self.candidates.find_candidates(
            LatLon(lat=query.lat, lon=query.lon), radius, query.kinds, mode=query.mode
        )
        if not places:
            logger.info("No candidates within %dm, nothing to suggest", radius)
            return SuggestionResult()

        # ── Phase 2 + 3: Enrich, filter, rank ───────────────────────────
        batch = places[: max(MIN_CHECKED, min(limit, MAX_CHECKED))]
        checks = await bounded_map(
            batch,
            width,
            lambda p, _i: self._check(p, query.window, min_good_days, strict=True),
        )
        accepted, tally = _split(checks)
        diagnostics = SuggestDiagnostics(
            candidates=len(places),
            checked=len(batch),
            rejected=tally,
        )

        if accepted:
            logger.info(
                "Suggested %d of %d checked (%d candidates)",
                len(accepted),
                len(batch),
                len(places),
            )
            return SuggestionResult(suggestions=rank(accepted), diagnostics=diagnostics)

        # ── Phase 4: Fallback ladder ────────────────────────────────────
        logger.warning(
            "No suggestions after filtering: checked=%d rejected=%s, retrying relaxed",
            len(batch),
            tally.model_dump(),
        )
        nearest = batch[: min(s.SUGGEST_FALLBACK_SIZE, len(batch))]
        relaxed_checks = await bounded_map(
            nearest,
            width,
            lambda p, i: self._check(
                p, query.window, min_good_days, strict=False, days=checks[i].days
            ),
        )
        relaxed, relaxed_tally = _split(relaxed_checks)
        diagnostics.relaxed_rejected = relaxed_tally

        if relaxed:
            diagnostics.fallback = FallbackStage.RELAXED
            return SuggestionResult(suggestions=rank(relaxed), diagnostics=diagnostics)

        logger.warning(
            "Relaxed pass empty too (rejected=%s), returning %d nearest places unscored",
            relaxed_tally.model_dump(),
            len(nearest),
        )
        diagnostics.fallback = FallbackStage.NEAREST
        return SuggestionResult(suggestions=nearest_as_suggestions(nearest), diagnostics=diagnostics)
