"""
models/forecast.py
──────────────────
Daily forecast rows returned by the forecast provider, and the date window
a suggestion request is evaluated over.
"""

from __future__ import annotations

import datetime as dt
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ForecastDay(BaseModel):
    """
    One day of forecast for a coordinate.

    A missing ``t2m`` or ``precip`` means the provider did not model that
    day; it is not the same as zero.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    date: dt.date
    t2m: Optional[float] = Field(default=None, description="Mean temperature (°C)")
    t2m_hi: Optional[float] = Field(default=None, description="Upper-bound temperature (°C)")
    precip: Optional[float] = Field(default=None, description="Mean precipitation (mm)")
    precip_hi: Optional[float] = Field(default=None, description="Upper-bound precipitation (mm)")


class TimeWindow(BaseModel):
    """Inclusive ``[start, end]`` date range; either side may be open.

    An inverted window is legal and simply contains no day.
    """

    model_config = ConfigDict(frozen=True)

    start: Optional[dt.date] = None
    end: Optional[dt.date] = None

    def contains(self, day: dt.date) -> bool:
        return (self.start is None or day >= self.start) and (self.end is None or day <= self.end)
