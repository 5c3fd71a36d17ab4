import logging
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    ConflictError,
    MissingLinkError,
    NotAParticipantError,
    NotConfirmedError,
    NotFoundError,
)
from app.models.match import MatchRecord
from app.models.meeting import Meeting
from app.schemas.meeting import ExternalLinkMeeting, InPersonMeeting, MeetingCreate
from app.services import match_service

logger = logging.getLogger(__name__)

FINAL_MEETING_STATUSES = ("completed", "cancelled")


async def schedule_meeting(
    db: AsyncSession,
    user_id: UUID,
    payload: MeetingCreate,
) -> Meeting:
    """
    Schedule a meeting for a confirmed match.

    Checks, in order: the match exists, the caller is one of its members,
    the match is confirmed, and an external_link meeting carries a link.
    """
    match = await match_service.get_match_by_id(db, payload.match_id)
    if match is None:
        raise NotFoundError("Match not found", resource="match")

    if not match.has_participant(user_id):
        raise NotAParticipantError("Not a member of this match")

    if match.status != "confirmed":
        raise NotConfirmedError(match_status=match.status)

    meeting_link = None
    location = None
    if isinstance(payload, ExternalLinkMeeting):
        if not payload.meeting_link:
            raise MissingLinkError()
        meeting_link = payload.meeting_link
    elif isinstance(payload, InPersonMeeting):
        location = payload.location

    meeting = Meeting(
        match_id=match.id,
        scheduled_by=user_id,
        meeting_type=payload.meeting_type,
        meeting_link=meeting_link,
        location=location,
        scheduled_at=payload.scheduled_at,
        notes=payload.notes,
        status="scheduled",
    )
    db.add(meeting)
    await db.commit()
    await db.refresh(meeting)
    logger.info("Meeting %s (%s) scheduled for match %s", meeting.id, meeting.meeting_type, match.id)
    return meeting


async def get_meeting_by_id(db: AsyncSession, meeting_id: UUID) -> Meeting | None:
    result = await db.execute(
        select(Meeting)
        .where(Meeting.id == meeting_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_user_meetings(db: AsyncSession, user_id: UUID) -> list[Meeting]:
    """Meetings of every match the user is a member of, soonest first."""
    result = await db.execute(
        select(Meeting)
        .join(MatchRecord, Meeting.match_id == MatchRecord.id)
        .where(or_(MatchRecord.user_a_id == user_id, MatchRecord.user_b_id == user_id))
        .order_by(Meeting.scheduled_at.asc())
    )
    return list(result.scalars().all())


async def update_meeting_status(
    db: AsyncSession,
    user_id: UUID,
    meeting_id: UUID,
    new_status: str,
) -> Meeting:
    """Move a scheduled meeting to completed or cancelled."""
    if new_status not in FINAL_MEETING_STATUSES:
        raise ConflictError(f"Cannot move a meeting to {new_status}", field="status")

    meeting = await get_meeting_by_id(db, meeting_id)
    if meeting is None:
        raise NotFoundError("Meeting not found", resource="meeting")

    match = await match_service.get_match_by_id(db, meeting.match_id)
    if match is None or not match.has_participant(user_id):
        raise NotAParticipantError("Not a member of this match")

    result = await db.execute(
        update(Meeting)
        .where(Meeting.id == meeting.id, Meeting.status == "scheduled")
        .values(status=new_status, updated_at=datetime.now(timezone.utc))
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        await db.rollback()
        current = await get_meeting_by_id(db, meeting_id)
        current_status = current.status if current else "gone"
        raise ConflictError(
            f"Meeting is already {current_status}",
            metadata={"status": current_status},
        )

    await db.commit()
    await db.refresh(meeting)
    logger.info("Meeting %s -> %s", meeting.id, meeting.status)
    return meeting
