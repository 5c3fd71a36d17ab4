import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.models.profile import Profile
from app.schemas.profile import ProfileCreate, ProfileUpdate

logger = logging.getLogger(__name__)

CLEARABLE_FIELDS = {"bio", "profile_photo", "interests"}


def _plain_values(data: dict) -> dict:
    """Convert enums to values for storage."""
    for key, value in data.items():
        if hasattr(value, "value"):
            data[key] = value.value
    return data


async def create_profile(
    db: AsyncSession, user_id: UUID, data: ProfileCreate
) -> Profile:
    """Create the roommate profile for a user (one per user)."""
    existing = await get_profile_by_user_id(db, user_id)
    if existing:
        raise ConflictError("Profile already exists", field="user_id")

    profile_data = _plain_values(data.model_dump())
    # Interests are a set, keep first-seen order for display
    profile_data["interests"] = list(dict.fromkeys(profile_data.get("interests") or []))

    profile = Profile(user_id=user_id, is_active=True, **profile_data)
    db.add(profile)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Profile already exists", field="user_id")
    await db.refresh(profile)
    logger.info("Profile created for user %s", user_id)
    return profile


async def get_profile_by_user_id(db: AsyncSession, user_id: UUID) -> Profile | None:
    """Get profile by user ID."""
    result = await db.execute(select(Profile).where(Profile.user_id == user_id))
    return result.scalar_one_or_none()


async def get_profile_or_404(db: AsyncSession, user_id: UUID) -> Profile:
    profile = await get_profile_by_user_id(db, user_id)
    if profile is None:
        raise NotFoundError("Profile not found", resource="profile")
    return profile


async def get_active_profiles(
    db: AsyncSession,
    exclude_user_ids: set[UUID],
) -> list[Profile]:
    """Active profiles, minus the given users."""
    query = select(Profile).where(Profile.is_active == True)  # noqa: E712
    if exclude_user_ids:
        query = query.where(Profile.user_id.not_in(exclude_user_ids))
    result = await db.execute(query)
    return list(result.scalars().all())


async def update_profile(
    db: AsyncSession, profile: Profile, data: ProfileUpdate
) -> Profile:
    """Update profile fields. Only update fields that are provided."""
    update_data = _plain_values(data.model_dump(exclude_unset=True))

    for field, value in update_data.items():
        if value is None and field not in CLEARABLE_FIELDS:
            raise ValidationError("Field cannot be cleared", field=field)

    budget_min = update_data.get("budget_min", profile.budget_min)
    budget_max = update_data.get("budget_max", profile.budget_max)
    if budget_min is None or budget_max is None or budget_min > budget_max:
        raise ValidationError("budget_min must not exceed budget_max", field="budget_min")

    if "interests" in update_data:
        update_data["interests"] = list(dict.fromkeys(update_data["interests"] or []))

    for field, value in update_data.items():
        setattr(profile, field, value)

    await db.commit()
    await db.refresh(profile)
    return profile


async def deactivate_profile(db: AsyncSession, profile: Profile) -> Profile:
    """
    Hide the profile from matching without deleting it.
    Open and confirmed matches of the owner are cancelled.
    """
    from app.services import match_service

    user_id = profile.user_id
    profile.is_active = False
    try:
        cancelled = await match_service.cancel_matches_for_user(db, user_id, commit=False)
        await db.commit()
    except Exception:
        # Both changes or neither
        await db.rollback()
        raise
    await db.refresh(profile)
    logger.info(
        "Profile of user %s deactivated, %d match(es) cancelled",
        user_id,
        cancelled,
    )
    return profile


async def reactivate_profile(db: AsyncSession, profile: Profile) -> Profile:
    profile.is_active = True
    await db.commit()
    await db.refresh(profile)
    return profile
