"""Compatibility and candidate ranking schemas."""

from pydantic import BaseModel, Field

from app.schemas.profile import ProfileResponse


class CompatibilityBreakdown(BaseModel):
    """Breakdown of compatibility for a single factor."""

    match: bool
    score: int
    max_score: int
    detail: str


class CompatibilityResponse(BaseModel):
    """Normalized score plus the raw points per factor."""

    score: int = Field(ge=0, le=100)
    breakdown: dict[str, CompatibilityBreakdown]


class RankedCandidate(BaseModel):
    profile: ProfileResponse
    score: int = Field(ge=0, le=100)
    breakdown: dict[str, CompatibilityBreakdown]


class RankedCandidatesResponse(BaseModel):
    candidates: list[RankedCandidate]
    total_available: int
