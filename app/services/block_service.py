"""Block registry: directed block relations, enforced in both directions."""

import logging
from uuid import UUID

from sqlalchemy import and_, delete, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, ValidationError
from app.models.block import BlockRelation
from app.services import user_service

logger = logging.getLogger(__name__)


async def get_block(
    db: AsyncSession,
    blocker_id: UUID,
    blocked_id: UUID,
) -> BlockRelation | None:
    """Get the relation in exactly this direction."""
    result = await db.execute(
        select(BlockRelation).where(
            BlockRelation.blocker_id == blocker_id,
            BlockRelation.blocked_id == blocked_id,
        )
    )
    return result.scalar_one_or_none()


async def create_block(
    db: AsyncSession,
    blocker_id: UUID,
    blocked_id: UUID,
) -> BlockRelation:
    """
    Block a user.
    Blocking someone who is already blocked returns the existing relation.
    """
    if blocker_id == blocked_id:
        raise ValidationError("Cannot block yourself", field="blocked_user_id")

    if await user_service.get_user_by_id(db, blocked_id) is None:
        raise NotFoundError("User not found", resource="user")

    existing = await get_block(db, blocker_id, blocked_id)
    if existing:
        return existing

    block = BlockRelation(blocker_id=blocker_id, blocked_id=blocked_id)
    db.add(block)
    try:
        await db.commit()
    except IntegrityError:
        # Concurrent request created the same relation first
        await db.rollback()
        existing = await get_block(db, blocker_id, blocked_id)
        if existing is None:
            raise
        return existing

    await db.refresh(block)
    logger.info("User %s blocked user %s", blocker_id, blocked_id)
    return block


async def remove_block(
    db: AsyncSession,
    blocker_id: UUID,
    blocked_id: UUID,
) -> None:
    """Unblock. Does nothing if no relation exists."""
    await db.execute(
        delete(BlockRelation).where(
            BlockRelation.blocker_id == blocker_id,
            BlockRelation.blocked_id == blocked_id,
        )
    )
    await db.commit()


async def block_exists(
    db: AsyncSession,
    user_a_id: UUID,
    user_b_id: UUID,
) -> bool:
    """True if either user has blocked the other."""
    result = await db.execute(
        select(BlockRelation.id)
        .where(
            or_(
                and_(
                    BlockRelation.blocker_id == user_a_id,
                    BlockRelation.blocked_id == user_b_id,
                ),
                and_(
                    BlockRelation.blocker_id == user_b_id,
                    BlockRelation.blocked_id == user_a_id,
                ),
            )
        )
        .limit(1)
    )
    return result.scalar_one_or_none() is not None


async def get_blocked_counterparts(db: AsyncSession, user_id: UUID) -> set[UUID]:
    """Every user with a block relation to or from the given user."""
    result = await db.execute(
        select(BlockRelation.blocker_id, BlockRelation.blocked_id).where(
            or_(
                BlockRelation.blocker_id == user_id,
                BlockRelation.blocked_id == user_id,
            )
        )
    )
    counterparts = set()
    for blocker_id, blocked_id in result.fetchall():
        counterparts.add(blocked_id if blocker_id == user_id else blocker_id)
    return counterparts


async def list_blocks(db: AsyncSession, blocker_id: UUID) -> list[BlockRelation]:
    """Users blocked by the given user, newest first."""
    result = await db.execute(
        select(BlockRelation)
        .where(BlockRelation.blocker_id == blocker_id)
        .order_by(BlockRelation.created_at.desc())
    )
    return list(result.scalars().all())
