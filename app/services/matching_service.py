"""Matching service for compatibility scoring and ranked candidates."""

import uuid
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError
from app.models.match import MatchRecord
from app.models.profile import Profile
from app.schemas.compatibility import (
    CompatibilityBreakdown,
    CompatibilityResponse,
    RankedCandidate,
)
from app.schemas.profile import ProfileResponse
from app.services import block_service, profile_service

# Raw points per factor. They add up to 110 and are normalized to 0-100.
FACTOR_WEIGHTS = {
    "university": 15,
    "location": 15,
    "cleanliness": 15,
    "sleep_schedule": 12,
    "personality": 10,
    "social_level": 10,
    "smoking": 10,
    "pets": 8,
    "budget": 10,
    "interests": 5,
}
MAX_RAW_SCORE = sum(FACTOR_WEIGHTS.values())

REQUIRED_FIELDS = (
    "university",
    "location",
    "cleanliness_level",
    "sleep_schedule",
    "personality",
    "social_level",
    "smoking_preference",
    "pets_tolerance",
    "budget_min",
    "budget_max",
)

CLEANLINESS_POINTS = {0: 15, 1: 12, 2: 8}

SLEEP_CATEGORIES = {
    "early_bird": "early",
    "night_owl": "night",
}

SOCIAL_FAMILY = {"very_social", "social"}

# Terminal relations hide a profile from the other member's candidates
EXCLUDING_MATCH_STATUSES = ("confirmed", "declined")


def round_half_up(value: float) -> int:
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _factor(points: int, max_score: int, detail: str) -> CompatibilityBreakdown:
    """Create a compatibility breakdown for a factor."""
    return CompatibilityBreakdown(
        match=points == max_score,
        score=points,
        max_score=max_score,
        detail=detail,
    )


def _missing_required(profile: Profile) -> bool:
    return any(getattr(profile, field, None) is None for field in REQUIRED_FIELDS)


def _score_cleanliness(a: int, b: int) -> CompatibilityBreakdown:
    diff = abs(a - b)
    points = CLEANLINESS_POINTS.get(diff, 3)
    return _factor(points, 15, f"Cleanliness levels differ by {diff}")


def _score_sleep(a: str, b: str) -> CompatibilityBreakdown:
    if a == b:
        return _factor(12, 12, "Same sleep schedule")
    same_category = SLEEP_CATEGORIES.get(a) is not None and SLEEP_CATEGORIES.get(a) == SLEEP_CATEGORIES.get(b)
    if same_category or "flexible" in (a, b):
        return _factor(8, 12, "Compatible sleep schedules")
    return _factor(4, 12, "Different sleep schedules")


def _score_personality(a: str, b: str) -> CompatibilityBreakdown:
    if a == b:
        return _factor(10, 10, "Same personality type")
    if "ambivert" in (a, b):
        return _factor(7, 10, "Ambivert adapts to the other personality")
    return _factor(3, 10, "Opposite personality types")


def _score_social(a: str, b: str) -> CompatibilityBreakdown:
    if a == b:
        return _factor(10, 10, "Same social level")
    if "moderate" in (a, b) or (a in SOCIAL_FAMILY and b in SOCIAL_FAMILY):
        return _factor(7, 10, "Close social levels")
    return _factor(4, 10, "Different social levels")


def _score_smoking(a: str, b: str) -> CompatibilityBreakdown:
    if a == b:
        return _factor(10, 10, "Same smoking preference")
    if {a, b} == {"no_smoking", "occasionally"}:
        return _factor(5, 10, "Occasional smoking with a non-smoker")
    # Deal-breaker
    return _factor(0, 10, "Incompatible smoking preferences")


def _score_pets(a: str, b: str) -> CompatibilityBreakdown:
    if a == b:
        return _factor(8, 8, "Same attitude to pets")
    if (a == "love_pets" and b != "no_pets") or (b == "love_pets" and a != "no_pets"):
        return _factor(5, 8, "Pets tolerated")
    return _factor(2, 8, "Different attitude to pets")


def _score_budget(a: Profile, b: Profile) -> CompatibilityBreakdown:
    overlap_min = max(a.budget_min, b.budget_min)
    overlap_max = min(a.budget_max, b.budget_max)
    if overlap_min > overlap_max:
        return _factor(0, 10, "Budgets do not overlap")

    overlap_size = overlap_max - overlap_min
    avg_size = ((a.budget_max - a.budget_min) + (b.budget_max - b.budget_min)) / 2
    ratio = 1.0 if avg_size == 0 else min(overlap_size / avg_size, 1.0)
    points = round_half_up(10 * ratio)
    return _factor(points, 10, f"Budgets overlap on {overlap_min}-{overlap_max}")


def _score_interests(a: list[str] | None, b: list[str] | None) -> CompatibilityBreakdown:
    interests_a = set(a or [])
    interests_b = set(b or [])
    common = interests_a & interests_b
    if not common:
        return _factor(0, 5, "No shared interests")
    largest = max(len(interests_a), len(interests_b), 1)
    points = round_half_up(5 * len(common) / largest)
    return _factor(points, 5, f"{len(common)} shared interest(s)")


def calculate_compatibility(a: Profile, b: Profile) -> CompatibilityResponse:
    """
    Calculate the compatibility score between two roommate profiles.

    Pure and deterministic: reads attributes only, so it is safe to call
    concurrently and works on unsaved Profile instances. Every factor is
    symmetric, so the argument order never changes the result.

    Raw scoring (110 points, reported normalized to 0-100):
    - University: 15 points
    - Location: 15 points
    - Cleanliness: 15 points
    - Sleep schedule: 12 points
    - Personality: 10 points
    - Social level: 10 points
    - Smoking: 10 points (incompatible combination scores 0)
    - Pets: 8 points
    - Budget overlap: 10 points
    - Shared interests: 5 points

    Self-pairing or a profile missing a required field scores 0 with an
    empty breakdown.
    """
    if a is None or b is None or a.user_id == b.user_id:
        return CompatibilityResponse(score=0, breakdown={})
    if _missing_required(a) or _missing_required(b):
        return CompatibilityResponse(score=0, breakdown={})

    breakdown: dict[str, CompatibilityBreakdown] = {}

    # 1. University (15 points)
    same_university = a.university == b.university
    breakdown["university"] = _factor(
        15 if same_university else 0,
        15,
        "Same university" if same_university else "Different universities",
    )

    # 2. Location (15 points)
    same_location = a.location == b.location
    breakdown["location"] = _factor(
        15 if same_location else 0,
        15,
        "Same location" if same_location else "Different locations",
    )

    # 3-8. Lifestyle
    breakdown["cleanliness"] = _score_cleanliness(a.cleanliness_level, b.cleanliness_level)
    breakdown["sleep_schedule"] = _score_sleep(a.sleep_schedule, b.sleep_schedule)
    breakdown["personality"] = _score_personality(a.personality, b.personality)
    breakdown["social_level"] = _score_social(a.social_level, b.social_level)
    breakdown["smoking"] = _score_smoking(a.smoking_preference, b.smoking_preference)
    breakdown["pets"] = _score_pets(a.pets_tolerance, b.pets_tolerance)

    # 9. Budget (10 points)
    breakdown["budget"] = _score_budget(a, b)

    # 10. Interests (5 points)
    breakdown["interests"] = _score_interests(a.interests, b.interests)

    raw_score = sum(factor.score for factor in breakdown.values())
    score = min(max(round_half_up(raw_score * 100 / MAX_RAW_SCORE), 0), 100)

    return CompatibilityResponse(score=score, breakdown=breakdown)


def _ranking_key(item: tuple[Profile, CompatibilityResponse]) -> tuple:
    profile, compatibility = item
    created_at = profile.created_at or datetime.max.replace(tzinfo=timezone.utc)
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    return (-compatibility.score, created_at, str(profile.user_id))


def rank_candidates(
    subject: Profile,
    candidates: list[Profile],
) -> list[tuple[Profile, CompatibilityResponse]]:
    """
    Score every candidate against the subject and sort best first.
    Ties go to the longest-standing profile, then to the lower user id.
    """
    scored = [(candidate, calculate_compatibility(subject, candidate)) for candidate in candidates]
    scored.sort(key=_ranking_key)
    return scored


async def _get_excluded_user_ids(db: AsyncSession, user_id: uuid.UUID) -> set[uuid.UUID]:
    """Users with a confirmed/declined relation or a block in either direction."""
    matches_result = await db.execute(
        select(MatchRecord.user_a_id, MatchRecord.user_b_id).where(
            or_(MatchRecord.user_a_id == user_id, MatchRecord.user_b_id == user_id),
            MatchRecord.status.in_(EXCLUDING_MATCH_STATUSES),
        )
    )
    excluded = set()
    for user_a_id, user_b_id in matches_result.fetchall():
        excluded.add(user_b_id if user_a_id == user_id else user_a_id)

    excluded |= await block_service.get_blocked_counterparts(db, user_id)
    return excluded


async def get_ranked_candidates(
    db: AsyncSession,
    user_id: uuid.UUID,
    limit: int = 20,
) -> tuple[list[RankedCandidate], int]:
    """
    Get ranked roommate candidates for a user.

    1. Get user's profile
    2. Get active candidate profiles
    3. Exclude: self, confirmed or declined relations, blocked in either direction
    4. Calculate compatibility for each
    5. Sort by score descending
    6. Return top N with scores
    """
    user_profile = await profile_service.get_profile_or_404(db, user_id)

    exclude_ids = await _get_excluded_user_ids(db, user_id)
    exclude_ids.add(user_id)

    candidates = await profile_service.get_active_profiles(db, exclude_ids)
    ranked = rank_candidates(user_profile, candidates)

    total_available = len(ranked)
    top = [
        RankedCandidate(
            profile=ProfileResponse.model_validate(profile),
            score=compatibility.score,
            breakdown=compatibility.breakdown,
        )
        for profile, compatibility in ranked[:limit]
    ]
    return top, total_available


async def get_compatibility(
    db: AsyncSession,
    user_id: uuid.UUID,
    target_user_id: uuid.UUID,
) -> CompatibilityResponse:
    """Calculate compatibility between two users' profiles."""
    user_profile = await profile_service.get_profile_by_user_id(db, user_id)
    if user_profile is None:
        raise NotFoundError("Your profile was not found", resource="profile")

    target_profile = await profile_service.get_profile_by_user_id(db, target_user_id)
    if target_profile is None:
        raise NotFoundError("Profile not found", resource="profile")

    return calculate_compatibility(user_profile, target_profile)
