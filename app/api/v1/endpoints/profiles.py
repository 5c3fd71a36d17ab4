from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.endpoints.auth import get_current_user
from app.database import get_db
from app.schemas.profile import ProfileCreate, ProfileResponse, ProfileUpdate
from app.schemas.user import UserResponse
from app.services import block_service, profile_service

router = APIRouter(prefix="", tags=["profiles"])


@router.post("/", response_model=ProfileResponse, status_code=status.HTTP_201_CREATED)
async def create_profile(
    profile_data: ProfileCreate,
    current_user: Annotated[UserResponse, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ProfileResponse:
    """Create the roommate profile of the current user."""
    profile = await profile_service.create_profile(db, current_user.id, profile_data)
    return ProfileResponse.model_validate(profile)


@router.get("/me", response_model=ProfileResponse)
async def get_my_profile(
    current_user: Annotated[UserResponse, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ProfileResponse:
    """Get the current user's profile."""
    profile = await profile_service.get_profile_or_404(db, current_user.id)
    return ProfileResponse.model_validate(profile)


@router.put("/me", response_model=ProfileResponse)
async def update_my_profile(
    profile_data: ProfileUpdate,
    current_user: Annotated[UserResponse, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ProfileResponse:
    """Update the current user's profile."""
    profile = await profile_service.get_profile_or_404(db, current_user.id)
    updated_profile = await profile_service.update_profile(db, profile, profile_data)
    return ProfileResponse.model_validate(updated_profile)


@router.post("/me/deactivate", response_model=ProfileResponse)
async def deactivate_my_profile(
    current_user: Annotated[UserResponse, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ProfileResponse:
    """Hide the profile from candidates. Open and confirmed matches are cancelled."""
    profile = await profile_service.get_profile_or_404(db, current_user.id)
    profile = await profile_service.deactivate_profile(db, profile)
    return ProfileResponse.model_validate(profile)


@router.post("/me/reactivate", response_model=ProfileResponse)
async def reactivate_my_profile(
    current_user: Annotated[UserResponse, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ProfileResponse:
    profile = await profile_service.get_profile_or_404(db, current_user.id)
    profile = await profile_service.reactivate_profile(db, profile)
    return ProfileResponse.model_validate(profile)


@router.get("/{user_id}", response_model=ProfileResponse)
async def get_profile(
    user_id: UUID,
    current_user: Annotated[UserResponse, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ProfileResponse:
    """Get a profile by user ID."""
    profile = await profile_service.get_profile_by_user_id(db, user_id)

    if not profile:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Profile not found",
        )

    # Own profile is always visible, others only while active and not blocked
    if profile.user_id != current_user.id:
        hidden = not profile.is_active or await block_service.block_exists(
            db, current_user.id, profile.user_id
        )
        if hidden:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Profile not found",
            )

    return ProfileResponse.model_validate(profile)
