"""
Match coordinator: one record per unordered pair of users.

States: pending -> confirmed | declined | cancelled, confirmed -> cancelled.
Confirmed and declined records are terminal for interest, confirm and decline.

Creation races are resolved by the unique constraint on the sorted pair:
the loser gets an IntegrityError, rolls back and reads the winner's record.
Transitions are conditional updates on the expected status, so two
concurrent transitions on the same pair cannot both succeed.
"""

import logging
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import (
    BlockedError,
    ConflictError,
    NotFoundError,
    StateError,
    ValidationError,
)
from app.models.match import MatchRecord
from app.services import block_service, profile_service

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = ("confirmed", "declined")


def canonical_pair(user_a_id: UUID, user_b_id: UUID) -> tuple[UUID, UUID]:
    """Ensure user_a_id < user_b_id for consistency."""
    if user_a_id > user_b_id:
        return user_b_id, user_a_id
    return user_a_id, user_b_id


async def get_match_by_id(
    db: AsyncSession,
    match_id: UUID,
) -> MatchRecord | None:
    """Get match by ID."""
    result = await db.execute(select(MatchRecord).where(MatchRecord.id == match_id))
    return result.scalar_one_or_none()


async def get_match_between_users(
    db: AsyncSession,
    user_a_id: UUID,
    user_b_id: UUID,
) -> MatchRecord | None:
    """Get the match record of a pair, whatever its status."""
    user_a_id, user_b_id = canonical_pair(user_a_id, user_b_id)
    result = await db.execute(
        select(MatchRecord)
        .where(
            and_(
                MatchRecord.user_a_id == user_a_id,
                MatchRecord.user_b_id == user_b_id,
            )
        )
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def _insert_record(
    db: AsyncSession,
    user_id: UUID,
    target_id: UUID,
    **values,
) -> tuple[MatchRecord, bool]:
    """
    Insert the pair's record. Returns (record, created).
    If a concurrent request inserted it first, that record is returned instead.
    """
    user_a_id, user_b_id = canonical_pair(user_id, target_id)
    record = MatchRecord(user_a_id=user_a_id, user_b_id=user_b_id, **values)
    db.add(record)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        existing = await get_match_between_users(db, user_id, target_id)
        if existing is None:
            raise
        logger.info("Match record for %s/%s created concurrently", user_a_id, user_b_id)
        return existing, False
    await db.refresh(record)
    return record, True


async def _transition(
    db: AsyncSession,
    record: MatchRecord,
    expected_statuses: tuple[str, ...],
    **values,
) -> MatchRecord:
    """Conditional update: applies only if the record is still in an expected status."""
    # Rollback expires the instance, keep the key as a plain value
    record_id = record.id
    values["updated_at"] = datetime.now(timezone.utc)
    result = await db.execute(
        update(MatchRecord)
        .where(
            MatchRecord.id == record_id,
            MatchRecord.status.in_(expected_statuses),
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        await db.rollback()
        current = await get_match_by_id(db, record_id)
        current_status = current.status if current else "gone"
        raise ConflictError(
            f"Match is already {current_status}",
            metadata={"status": current_status},
        )
    await db.commit()
    await db.refresh(record)
    logger.info("Match %s -> %s", record.id, record.status)
    return record


def _ensure_not_terminal(record: MatchRecord) -> None:
    if record.status in TERMINAL_STATUSES:
        raise ConflictError(
            f"Match is already {record.status}",
            metadata={"status": record.status},
        )


async def _validate_target(db: AsyncSession, user_id: UUID, target_id: UUID) -> None:
    if user_id == target_id:
        raise ValidationError("Cannot match with yourself", field="target_user_id")

    target_profile = await profile_service.get_profile_by_user_id(db, target_id)
    if target_profile is None or not target_profile.is_active:
        raise NotFoundError("User profile not found or not active", resource="profile")


async def express_interest(
    db: AsyncSession,
    user_id: UUID,
    target_id: UUID,
) -> MatchRecord:
    """
    Express interest in another user.
    Creates the pending record, or returns the existing pending one.
    A cancelled record is reopened as pending.
    """
    await _validate_target(db, user_id, target_id)
    await profile_service.get_profile_or_404(db, user_id)

    if await block_service.block_exists(db, user_id, target_id):
        raise BlockedError()

    record = await get_match_between_users(db, user_id, target_id)
    if record is None:
        record, created = await _insert_record(
            db, user_id, target_id, status="pending", initiated_by=user_id
        )
        if created:
            logger.info("Interest from %s to %s", user_id, target_id)
            return record

    if record.status == "pending":
        return record
    _ensure_not_terminal(record)

    # Cancelled pair, start over
    return await _transition(
        db,
        record,
        ("cancelled",),
        status="pending",
        initiated_by=user_id,
        confirmed_by=None,
        confirmed_at=None,
        cancelled_at=None,
    )


async def confirm_match(
    db: AsyncSession,
    user_id: UUID,
    target_id: UUID,
) -> MatchRecord:
    """Confirm a pending match. The confirming user is recorded."""
    if user_id == target_id:
        raise ValidationError("Cannot match with yourself", field="target_user_id")

    record = await get_match_between_users(db, user_id, target_id)
    if record is None:
        raise NotFoundError("No pending match with this user", resource="match")

    _ensure_not_terminal(record)
    if record.status != "pending":
        raise ConflictError(
            f"Match is already {record.status}",
            metadata={"status": record.status},
        )

    if settings.REQUIRE_MUTUAL_CONFIRMATION and record.initiated_by == user_id:
        raise StateError(
            "The other user has to confirm this match",
            metadata={"status": record.status},
        )

    if await block_service.block_exists(db, user_id, target_id):
        raise BlockedError()

    return await _transition(
        db,
        record,
        ("pending",),
        status="confirmed",
        confirmed_by=user_id,
        confirmed_at=datetime.now(timezone.utc),
    )


async def decline_match(
    db: AsyncSession,
    user_id: UUID,
    target_id: UUID,
) -> MatchRecord:
    """Decline a user, with or without a pending record."""
    if user_id == target_id:
        raise ValidationError("Cannot match with yourself", field="target_user_id")

    record = await get_match_between_users(db, user_id, target_id)
    if record is None:
        if await profile_service.get_profile_by_user_id(db, target_id) is None:
            raise NotFoundError("Profile not found", resource="profile")
        record, created = await _insert_record(
            db, user_id, target_id, status="declined", declined_by=user_id
        )
        if created:
            logger.info("User %s declined %s", user_id, target_id)
            return record

    _ensure_not_terminal(record)
    if record.status != "pending":
        raise ConflictError(
            f"Match is already {record.status}",
            metadata={"status": record.status},
        )

    return await _transition(
        db,
        record,
        ("pending",),
        status="declined",
        declined_by=user_id,
    )


async def cancel_match(
    db: AsyncSession,
    user_id: UUID,
    target_id: UUID,
) -> MatchRecord:
    """Cancel a pending or confirmed match."""
    record = await get_match_between_users(db, user_id, target_id)
    if record is None:
        raise NotFoundError("No match with this user", resource="match")

    if record.status not in ("pending", "confirmed"):
        raise ConflictError(
            f"Match is already {record.status}",
            metadata={"status": record.status},
        )

    return await _transition(
        db,
        record,
        ("pending", "confirmed"),
        status="cancelled",
        cancelled_at=datetime.now(timezone.utc),
    )


async def cancel_matches_for_user(
    db: AsyncSession,
    user_id: UUID,
    commit: bool = True,
) -> int:
    """
    Cancel every open or confirmed match of a user. Returns the count.
    With commit=False the caller owns the transaction.
    """
    now = datetime.now(timezone.utc)
    result = await db.execute(
        update(MatchRecord)
        .where(
            or_(MatchRecord.user_a_id == user_id, MatchRecord.user_b_id == user_id),
            MatchRecord.status.in_(("pending", "confirmed")),
        )
        .values(status="cancelled", cancelled_at=now, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    if commit:
        await db.commit()
    return result.rowcount


async def get_user_matches(
    db: AsyncSession,
    user_id: UUID,
    status: str | None = None,
    page: int = 1,
    per_page: int = 20,
) -> tuple[list[MatchRecord], int]:
    """Get the matches of a user, optionally filtered by status."""
    query = select(MatchRecord).where(
        or_(MatchRecord.user_a_id == user_id, MatchRecord.user_b_id == user_id)
    )
    if status:
        query = query.where(MatchRecord.status == status)

    # Get total count
    count_query = select(func.count()).select_from(query.subquery())
    total_result = await db.execute(count_query)
    total = total_result.scalar() or 0

    # Apply pagination and ordering
    offset = (page - 1) * per_page
    query = query.order_by(MatchRecord.created_at.desc()).offset(offset).limit(per_page)

    result = await db.execute(query)
    matches = list(result.scalars().all())

    return matches, total
