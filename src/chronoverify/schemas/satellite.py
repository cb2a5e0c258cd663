"""Pydantic schemas for satellite imagery search results.

Field aliases are the proxy's JSON wire names; Python code uses the
snake_case attribute names.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

_FRACTION_RE = re.compile(r"\.(\d+)")


def parse_capture_time(value: str) -> datetime:
    """ISO 8601 capture time as an aware UTC datetime; any fractional precision."""
    text = value.strip().replace("Z", "+00:00")
    text = _FRACTION_RE.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


class SatelliteImage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    date: str = Field(..., description="Capture start timestamp, ISO 8601")
    cloud_cover: float = Field(0.0, alias="cloudCover")
    thumbnail: Optional[str] = None

    @field_validator("date")
    @classmethod
    def check_date(cls, v: str) -> str:
        parse_capture_time(v)
        return v

    @property
    def captured_at(self) -> datetime:
        return parse_capture_time(self.date)


class QueryLocation(BaseModel):
    lat: float
    lon: float


class SatelliteResult(BaseModel):
    """Imagery availability for one point and date window, newest capture first."""
    model_config = ConfigDict(populate_by_name=True)

    available: bool
    imagery: Optional[List[SatelliteImage]] = None
    location: QueryLocation
    search_date: str = Field(..., alias="searchDate")

    @model_validator(mode="after")
    def imagery_matches_availability(self) -> "SatelliteResult":
        if self.available and self.imagery is None:
            raise ValueError("imagery is required when available is true")
        if not self.available:
            # the proxy sends [] on a miss; absent is the in-process form
            self.imagery = None
        return self

    @classmethod
    def unavailable(cls, lat: float, lon: float, search_date: str) -> "SatelliteResult":
        return cls(available=False, location=QueryLocation(lat=lat, lon=lon), search_date=search_date)

    @property
    def count(self) -> int:
        return len(self.imagery or [])
