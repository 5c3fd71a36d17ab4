"""Reports: users flag another user or a single message for moderation."""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotAParticipantError, NotFoundError, ValidationError
from app.models.message import Message
from app.models.report import Report
from app.schemas.report import MessageReport, ReportCreate, UserReport
from app.services import message_service, user_service

logger = logging.getLogger(__name__)


async def get_open_report(
    db: AsyncSession,
    reporter_id: UUID,
    target_type: str,
    target_id: UUID,
) -> Report | None:
    """The reporter's pending report on this target, if any."""
    result = await db.execute(
        select(Report).where(
            Report.reporter_id == reporter_id,
            Report.target_type == target_type,
            Report.target_id == target_id,
            Report.status == "pending",
        )
    )
    return result.scalars().first()


async def _check_user_target(
    db: AsyncSession,
    reporter_id: UUID,
    payload: UserReport,
) -> None:
    if payload.target_id == reporter_id:
        raise ValidationError("Cannot report yourself", field="target_id")
    if await user_service.get_user_by_id(db, payload.target_id) is None:
        raise NotFoundError("User not found", resource="user")


async def _resolve_message_target(
    db: AsyncSession,
    reporter_id: UUID,
    payload: MessageReport,
) -> Message:
    """Only the recipient side of a conversation can report one of its messages."""
    message = await message_service.get_message_by_id(db, payload.target_id)
    if message is None:
        raise NotFoundError("Message not found", resource="message")

    thread = await message_service.get_thread_by_id(db, message.thread_id)
    if thread is None or not thread.has_participant(reporter_id):
        raise NotAParticipantError()
    if message.sender_id == reporter_id:
        raise ValidationError("Cannot report your own message", field="target_id")

    return message


async def submit_report(
    db: AsyncSession,
    reporter_id: UUID,
    payload: ReportCreate,
) -> Report:
    """
    File a report. Reporting the same target again while the first
    report is still pending returns that report.
    """
    message = None
    if isinstance(payload, MessageReport):
        message = await _resolve_message_target(db, reporter_id, payload)
        reported_user_id, conversation_id = message.sender_id, message.thread_id
    else:
        await _check_user_target(db, reporter_id, payload)
        reported_user_id, conversation_id = payload.target_id, None

    existing = await get_open_report(db, reporter_id, payload.target_type, payload.target_id)
    if existing:
        return existing

    if message is not None:
        message.is_reported = True

    report = Report(
        reporter_id=reporter_id,
        reported_user_id=reported_user_id,
        target_type=payload.target_type,
        target_id=payload.target_id,
        conversation_id=conversation_id,
        reason=payload.reason.value,
        description=payload.description,
    )
    db.add(report)
    await db.commit()
    await db.refresh(report)

    logger.warning(
        "User %s reported %s %s (reason=%s)",
        reporter_id,
        report.target_type,
        report.target_id,
        report.reason,
    )
    return report


async def list_my_reports(db: AsyncSession, reporter_id: UUID) -> list[Report]:
    """Reports filed by the given user, newest first."""
    result = await db.execute(
        select(Report)
        .where(Report.reporter_id == reporter_id)
        .order_by(Report.created_at.desc())
    )
    return list(result.scalars().all())
