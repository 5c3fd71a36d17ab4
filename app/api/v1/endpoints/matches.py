from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.endpoints.auth import get_current_user
from app.config import settings
from app.core.exceptions import NotAParticipantError, NotFoundError
from app.database import get_db
from app.models.match import MatchRecord
from app.schemas.compatibility import CompatibilityResponse, RankedCandidatesResponse
from app.schemas.match import MatchAction, MatchListResponse, MatchResponse, MatchStatus
from app.schemas.profile import ProfileBrief
from app.schemas.user import UserResponse
from app.services import match_service, matching_service, profile_service

router = APIRouter(prefix="", tags=["matches"])


async def _enrich_match_with_profile(
    db: AsyncSession,
    match: MatchRecord,
    current_user_id: UUID,
) -> MatchResponse:
    """Add other user's profile info to match response."""
    response = MatchResponse.model_validate(match)
    profile = await profile_service.get_profile_by_user_id(db, match.other_user_id(current_user_id))
    if profile:
        response.other_user_profile = ProfileBrief.model_validate(profile).model_dump(mode="json")
    return response


@router.get("/", response_model=MatchListResponse)
async def get_my_matches(
    current_user: Annotated[UserResponse, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    status: MatchStatus | None = Query(None),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
) -> MatchListResponse:
    """Get the matches of the current user, optionally filtered by status."""
    matches, total = await match_service.get_user_matches(
        db, current_user.id, status.value if status else None, page, per_page
    )

    match_responses = [
        await _enrich_match_with_profile(db, match, current_user.id) for match in matches
    ]

    return MatchListResponse(
        matches=match_responses,
        total=total,
        page=page,
        per_page=per_page,
    )


# NOTE: These specific routes MUST be defined before /{match_id} to avoid route conflicts
@router.get("/candidates", response_model=RankedCandidatesResponse)
async def get_candidates(
    current_user: Annotated[UserResponse, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    limit: int = Query(settings.CANDIDATE_LIMIT_DEFAULT, ge=1, le=100),
) -> RankedCandidatesResponse:
    """
    Get roommate candidates ranked by compatibility.

    Excludes:
    - Your own profile and inactive profiles
    - Users you have a confirmed or declined match with
    - Users blocked in either direction
    """
    candidates, total = await matching_service.get_ranked_candidates(
        db, current_user.id, limit
    )
    return RankedCandidatesResponse(candidates=candidates, total_available=total)


@router.get("/compatibility/{user_id}", response_model=CompatibilityResponse)
async def get_compatibility(
    user_id: UUID,
    current_user: Annotated[UserResponse, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> CompatibilityResponse:
    """
    Get compatibility score with a specific user.

    Returns the overall score (0-100) and the points of every factor.
    Useful for showing "85% compatible" on profile views.
    """
    return await matching_service.get_compatibility(db, current_user.id, user_id)


@router.post("/interest", response_model=MatchResponse)
async def express_interest(
    action: MatchAction,
    current_user: Annotated[UserResponse, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> MatchResponse:
    """Express interest in a user. Repeating it returns the same pending match."""
    match = await match_service.express_interest(db, current_user.id, action.target_user_id)
    return await _enrich_match_with_profile(db, match, current_user.id)


@router.post("/confirm", response_model=MatchResponse)
async def confirm_match(
    action: MatchAction,
    current_user: Annotated[UserResponse, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> MatchResponse:
    match = await match_service.confirm_match(db, current_user.id, action.target_user_id)
    return await _enrich_match_with_profile(db, match, current_user.id)


@router.post("/decline", response_model=MatchResponse)
async def decline_match(
    action: MatchAction,
    current_user: Annotated[UserResponse, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> MatchResponse:
    match = await match_service.decline_match(db, current_user.id, action.target_user_id)
    return await _enrich_match_with_profile(db, match, current_user.id)


@router.post("/cancel", response_model=MatchResponse)
async def cancel_match(
    action: MatchAction,
    current_user: Annotated[UserResponse, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> MatchResponse:
    match = await match_service.cancel_match(db, current_user.id, action.target_user_id)
    return await _enrich_match_with_profile(db, match, current_user.id)


# Dynamic routes MUST come after specific routes to avoid conflicts
@router.get("/{match_id}", response_model=MatchResponse)
async def get_match(
    match_id: UUID,
    current_user: Annotated[UserResponse, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> MatchResponse:
    """Get specific match details."""
    match = await match_service.get_match_by_id(db, match_id)
    if not match:
        raise NotFoundError("Match not found", resource="match")

    # Must be part of the match
    if not match.has_participant(current_user.id):
        raise NotAParticipantError("Not your match")

    return await _enrich_match_with_profile(db, match, current_user.id)
