"""Pydantic schemas for the per-run evidence bundle.

Defines MediaFile, GroundingSource, LocationEstimate, TimeEstimate and the
mutable EvidenceBundle that accumulates phase outputs during one run.
LocationEstimate and TimeEstimate double as response schemas for the
completion service, so their JSON names (aliases) are what the model sees.
"""

from __future__ import annotations

import base64
import math
import mimetypes
import re
from pathlib import Path
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..errors import UnsupportedMediaError
from .satellite import SatelliteResult

AccuracyTier = Literal["precise", "neighborhood", "district", "city", "region"]
TimeMethod = Literal["shadows", "lighting", "activity", "other", "error"]

UNKNOWN_TIME = "unknown"
_TIME_RANGE_RE = re.compile(r"^(\d{1,2}):(\d{2})\s*[-–]\s*(\d{1,2}):(\d{2})$")


def _clamp_score(value):
    if value is None:
        return 0
    return max(0, min(100, int(round(float(value)))))


class MediaFile(BaseModel):
    data: bytes
    mime_type: str
    name: Optional[str] = None

    @field_validator("mime_type")
    @classmethod
    def image_only(cls, v: str) -> str:
        if not v.startswith("image/"):
            raise ValueError(f"unsupported media type {v!r}, only images can be analyzed")
        return v

    @classmethod
    def from_path(cls, path) -> "MediaFile":
        path = Path(path)
        mime_type, _ = mimetypes.guess_type(path.name)
        mime_type = mime_type or "image/jpeg"
        # chat completions take image parts only
        if not mime_type.startswith("image/"):
            raise UnsupportedMediaError(f"{path.name}: unsupported media type {mime_type}, only images can be analyzed")
        return cls(data=path.read_bytes(), mime_type=mime_type, name=path.name)

    def to_data_url(self) -> str:
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.mime_type};base64,{encoded}"


class GroundingSource(BaseModel):
    title: str
    uri: str


class LocationEstimate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    address: str
    latitude: float
    longitude: float
    confidence_score: int = Field(..., alias="confidenceScore", description="0-100")
    accuracy_tier: AccuracyTier = Field(..., alias="accuracyTier")

    @field_validator("confidence_score", mode="before")
    @classmethod
    def clamp_confidence(cls, v):
        return _clamp_score(v)

    @field_validator("latitude")
    @classmethod
    def check_latitude(cls, v: float) -> float:
        if not math.isfinite(v) or not -90 <= v <= 90:
            raise ValueError(f"latitude out of range: {v}")
        return v

    @field_validator("longitude")
    @classmethod
    def check_longitude(cls, v: float) -> float:
        if not math.isfinite(v) or not -180 <= v <= 180:
            raise ValueError(f"longitude out of range: {v}")
        return v

    @classmethod
    def region_fallback(cls, raw_text: str, latitude: float, longitude: float) -> "LocationEstimate":
        return cls(
            address=raw_text,
            latitude=latitude,
            longitude=longitude,
            confidence_score=30,
            accuracy_tier="region",
        )


class TimeEstimate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    time_of_day_range: str = Field(..., alias="timeOfDayRange", description="HH:MM-HH:MM, or 'unknown'")
    confidence_score: int = Field(..., alias="confidenceScore", description="0-100")
    primary_method: TimeMethod = Field(..., alias="primaryMethod")
    shadow_analysis: Optional[str] = Field(None, alias="shadowAnalysis")
    shadow_direction: Optional[str] = Field(None, alias="shadowDirection")
    lighting_quality: Optional[str] = Field(None, alias="lightingQuality")
    reasoning: str
    additional_evidence: Optional[str] = Field(None, alias="additionalEvidence")

    @field_validator("confidence_score", mode="before")
    @classmethod
    def clamp_confidence(cls, v):
        return _clamp_score(v)

    @field_validator("time_of_day_range")
    @classmethod
    def normalize_range(cls, v: str) -> str:
        v = v.strip()
        if v.lower() == UNKNOWN_TIME:
            return UNKNOWN_TIME
        m = _TIME_RANGE_RE.match(v)
        if not m:
            raise ValueError(f"time range must look like HH:MM-HH:MM -> {v!r}")
        h1, m1, h2, m2 = (int(g) for g in m.groups())
        if h1 > 23 or h2 > 23 or m1 > 59 or m2 > 59:
            raise ValueError(f"time range out of bounds -> {v!r}")
        return f"{h1:02d}:{m1:02d}-{h2:02d}:{m2:02d}"

    @property
    def is_determined(self) -> bool:
        return self.time_of_day_range != UNKNOWN_TIME

    @classmethod
    def parse_failure(cls, raw_text: str) -> "TimeEstimate":
        return cls(
            time_of_day_range=UNKNOWN_TIME,
            confidence_score=0,
            primary_method="error",
            shadow_analysis=raw_text,
            reasoning="Could not parse response",
        )


class EvidenceBundle(BaseModel):
    """Everything one run has learned so far. Owned by a single run, never shared."""
    raw_clues: str = ""
    location: Optional[LocationEstimate] = None
    grounding_sources: List[GroundingSource] = Field(default_factory=list)
    satellite_data: Optional[SatelliteResult] = None
    time_estimate: Optional[TimeEstimate] = None
    claimed_timestamp: Optional[str] = None

    @property
    def claimed_date(self) -> Optional[str]:
        if not self.claimed_timestamp:
            return None
        return self.claimed_timestamp.split("T")[0]
