from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .evidence import GroundingSource
from .satellite import SatelliteResult

Verdict = Literal["Verified", "Disputed", "Inconclusive"]
LogKind = Literal["info", "processing", "success", "warning", "error"]


class ReportLocation(BaseModel):
    address: str
    latitude: float
    longitude: float


class ReportEvidence(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    visual_clues: List[str] = Field(..., alias="visualClues")
    location_analysis: str = Field(..., alias="locationAnalysis")
    temporal_analysis: str = Field(..., alias="temporalAnalysis")
    satellite_analysis: Optional[str] = Field(None, alias="satelliteAnalysis")


class ReportDraft(BaseModel):
    """
    LLM output of the synthesis phase.
    Grounding sources and satellite data are attached by the pipeline, not the model.
    """
    model_config = ConfigDict(populate_by_name=True)

    verdict: Verdict
    confidence_score: int = Field(..., alias="confidenceScore", description="0-100")
    estimated_location: ReportLocation = Field(..., alias="estimatedLocation")
    estimated_time: Optional[str] = Field(None, alias="estimatedTime")
    summary: str
    evidence: ReportEvidence

    @field_validator("confidence_score")
    @classmethod
    def check_confidence(cls, v: int) -> int:
        if not 0 <= v <= 100:
            raise ValueError(f"confidenceScore must be within 0-100 -> {v}")
        return v


class Report(ReportDraft):
    """Terminal artifact of a successful run. Immutable once built."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    grounding_sources: Optional[List[GroundingSource]] = Field(None, alias="groundingSources")
    satellite_data: Optional[SatelliteResult] = Field(None, alias="satelliteData")

    @classmethod
    def from_draft(
        cls,
        draft: ReportDraft,
        grounding_sources: Optional[List[GroundingSource]],
        satellite_data: Optional[SatelliteResult],
    ) -> "Report":
        # detached copies of the run's bundle state
        return cls(
            **draft.model_dump(),
            grounding_sources=[s.model_copy() for s in grounding_sources] if grounding_sources is not None else None,
            satellite_data=satellite_data.model_copy(deep=True) if satellite_data is not None else None,
        )


class LogEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: LogKind
    message: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
