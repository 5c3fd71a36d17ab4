"""Message service: threads, persistence, safety scan and read state."""

import logging
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    BlockedError,
    NotAParticipantError,
    NotFoundError,
    ValidationError,
)
from app.models.message import Message
from app.models.thread import Thread, scope_key_for
from app.services import block_service, user_service

logger = logging.getLogger(__name__)

# Off-platform payment and urgency signals (English, French, Arabic)
SAFETY_KEYWORDS = (
    "deposit",
    "advance",
    "urgent",
    "send money",
    "western union",
    "whatsapp",
    "cash",
    "virement",
    "transfert",
    "dépôt",
    "avance",
    "تحويل",
    "فلوس",
    "واتساب",
)

MAX_CONTENT_LENGTH = 2000


def scan_for_flags(content: str) -> list[str]:
    """Keywords found in the content, case-insensitive. Never blocks delivery."""
    lowered = content.lower()
    return [keyword for keyword in SAFETY_KEYWORDS if keyword in lowered]


def _sorted_pair(user_a_id: UUID, user_b_id: UUID) -> tuple[UUID, UUID]:
    if user_a_id > user_b_id:
        return user_b_id, user_a_id
    return user_a_id, user_b_id


async def get_thread_by_id(
    db: AsyncSession,
    thread_id: UUID,
) -> Thread | None:
    """Get a thread by ID, always reading the current counters."""
    result = await db.execute(
        select(Thread)
        .where(Thread.id == thread_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_message_by_id(db: AsyncSession, message_id: UUID) -> Message | None:
    result = await db.execute(select(Message).where(Message.id == message_id))
    return result.scalar_one_or_none()


async def _find_thread(
    db: AsyncSession,
    user_a_id: UUID,
    user_b_id: UUID,
    context_id: UUID | None,
) -> Thread | None:
    participant_a_id, participant_b_id = _sorted_pair(user_a_id, user_b_id)
    result = await db.execute(
        select(Thread).where(
            and_(
                Thread.participant_a_id == participant_a_id,
                Thread.participant_b_id == participant_b_id,
                Thread.scope_key == scope_key_for(context_id),
            )
        )
    )
    return result.scalar_one_or_none()


async def _check_recipient(
    db: AsyncSession,
    sender_id: UUID,
    recipient_id: UUID,
) -> None:
    if sender_id == recipient_id:
        raise ValidationError("Cannot message yourself", field="recipient_id")

    if await user_service.get_user_by_id(db, recipient_id) is None:
        raise NotFoundError("User not found", resource="user")

    if await block_service.block_exists(db, sender_id, recipient_id):
        raise BlockedError("You cannot message this user")


def _check_content(content: str) -> None:
    if not content or not content.strip():
        raise ValidationError("Message cannot be empty", field="content")
    if len(content) > MAX_CONTENT_LENGTH:
        raise ValidationError("Message is too long", field="content")


async def find_conversation(
    db: AsyncSession,
    user_id: UUID,
    other_id: UUID,
    context_id: UUID | None = None,
) -> Thread:
    """
    The existing thread of a pair for a housing context.
    Threads only come into being with their first message, so a pair
    that never exchanged one has no thread yet.
    """
    await _check_recipient(db, user_id, other_id)

    thread = await _find_thread(db, user_id, other_id, context_id)
    if thread is None:
        raise NotFoundError("No conversation with this user yet", resource="thread")
    return thread


async def _find_or_add_thread(
    db: AsyncSession,
    sender_id: UUID,
    recipient_id: UUID,
    context_id: UUID | None,
) -> Thread:
    """
    Find the thread, or add it to the current transaction without committing.
    At most one thread exists per (pair, context); losing the insert race
    rolls back and reads the winner's thread.
    """
    thread = await _find_thread(db, sender_id, recipient_id, context_id)
    if thread:
        return thread

    participant_a_id, participant_b_id = _sorted_pair(sender_id, recipient_id)
    thread = Thread(
        participant_a_id=participant_a_id,
        participant_b_id=participant_b_id,
        context_id=context_id,
        scope_key=scope_key_for(context_id),
        unread_a=0,
        unread_b=0,
    )
    db.add(thread)
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        thread = await _find_thread(db, sender_id, recipient_id, context_id)
        if thread is None:
            raise
        return thread

    logger.info("Thread %s opened between %s and %s", thread.id, participant_a_id, participant_b_id)
    return thread


async def authorize_thread_access(
    db: AsyncSession,
    thread_id: UUID,
    user_id: UUID,
) -> Thread:
    """
    Check, on every call, that the user may use the thread:
    the thread exists, the user is a participant, and no block
    exists between the participants in either direction.
    """
    thread = await get_thread_by_id(db, thread_id)
    if thread is None:
        raise NotFoundError("Thread not found", resource="thread")

    if not thread.has_participant(user_id):
        raise NotAParticipantError()

    other_id = thread.other_participant(user_id)
    if await block_service.block_exists(db, user_id, other_id):
        raise BlockedError("You cannot message this user")

    return thread


async def create_message(
    db: AsyncSession,
    thread: Thread,
    sender_id: UUID,
    content: str,
) -> Message:
    """
    Persist a message and update its thread in one transaction:
    last message pointer, and the recipient's unread counter.
    A thread added by _find_or_add_thread is committed together with it.
    """
    recipient_id = thread.other_participant(sender_id)
    flags = scan_for_flags(content)

    message = Message(
        thread_id=thread.id,
        sender_id=sender_id,
        recipient_id=recipient_id,
        content=content,
        status="sent",
        flags=flags,
        created_at=datetime.now(timezone.utc),
    )
    db.add(message)
    await db.flush()

    # Increment in SQL so concurrent senders never lose an update
    unread_column = "unread_a" if thread.participant_a_id == recipient_id else "unread_b"
    await db.execute(
        update(Thread)
        .where(Thread.id == thread.id)
        .values(
            {
                "last_message_id": message.id,
                "last_message_at": message.created_at,
                unread_column: getattr(Thread, unread_column) + 1,
            }
        )
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    await db.refresh(message)

    if flags:
        logger.warning(
            "Message %s in thread %s flagged: %s", message.id, thread.id, ", ".join(flags)
        )
    return message


async def send_message(
    db: AsyncSession,
    sender_id: UUID,
    thread_id: UUID,
    content: str,
) -> Message:
    """Authorize, scan and persist a message in an existing thread."""
    _check_content(content)

    thread = await authorize_thread_access(db, thread_id, sender_id)
    return await create_message(db, thread, sender_id, content)


async def send_direct_message(
    db: AsyncSession,
    sender_id: UUID,
    recipient_id: UUID,
    content: str,
    context_id: UUID | None = None,
) -> Message:
    """
    Send to a user rather than a thread. The pair's thread for the context
    is created on the first message, in the same transaction.
    """
    _check_content(content)
    await _check_recipient(db, sender_id, recipient_id)

    thread = await _find_or_add_thread(db, sender_id, recipient_id, context_id)
    return await create_message(db, thread, sender_id, content)


async def mark_messages_delivered(
    db: AsyncSession,
    message_ids: list[UUID],
) -> int:
    """Move sent messages to delivered. Read messages are left alone."""
    if not message_ids:
        return 0
    result = await db.execute(
        update(Message)
        .where(Message.id.in_(message_ids), Message.status == "sent")
        .values(status="delivered")
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return result.rowcount


async def mark_thread_as_read(
    db: AsyncSession,
    thread: Thread,
    reader_id: UUID,
) -> int:
    """Reset the reader's unread counter and mark received messages read."""
    now = datetime.now(timezone.utc)
    result = await db.execute(
        update(Message)
        .where(
            Message.thread_id == thread.id,
            Message.recipient_id == reader_id,
            Message.status != "read",
        )
        .values(status="read", read_at=now)
        .execution_options(synchronize_session=False)
    )
    unread_column = "unread_a" if thread.participant_a_id == reader_id else "unread_b"
    await db.execute(
        update(Thread)
        .where(Thread.id == thread.id)
        .values({unread_column: 0})
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return result.rowcount


async def get_messages(
    db: AsyncSession,
    thread_id: UUID,
    skip: int = 0,
    limit: int = 50,
) -> list[Message]:
    """Get messages for a thread, ordered by newest first."""
    result = await db.execute(
        select(Message)
        .where(Message.thread_id == thread_id)
        .order_by(Message.created_at.desc())
        .offset(skip)
        .limit(limit)
    )
    # Reverse to get chronological order for display
    messages = list(result.scalars().all())
    messages.reverse()
    return messages


async def get_user_threads(
    db: AsyncSession,
    user_id: UUID,
) -> list[Thread]:
    """Threads of a user, most recent activity first, hiding blocked pairs."""
    result = await db.execute(
        select(Thread).where(
            or_(Thread.participant_a_id == user_id, Thread.participant_b_id == user_id)
        )
    )
    threads = list(result.scalars().all())

    blocked = await block_service.get_blocked_counterparts(db, user_id)
    threads = [t for t in threads if t.other_participant(user_id) not in blocked]

    def _activity(thread: Thread) -> datetime:
        moment = thread.last_message_at or thread.created_at
        if moment is None:
            return datetime.min.replace(tzinfo=timezone.utc)
        return moment if moment.tzinfo else moment.replace(tzinfo=timezone.utc)

    threads.sort(key=_activity, reverse=True)
    return threads


async def get_unread_count(
    db: AsyncSession,
    user_id: UUID,
) -> int:
    """Get total unread messages count for a user."""
    result = await db.execute(
        select(
            func.coalesce(
                func.sum(Thread.unread_a).filter(Thread.participant_a_id == user_id), 0
            ),
            func.coalesce(
                func.sum(Thread.unread_b).filter(Thread.participant_b_id == user_id), 0
            ),
        )
    )
    unread_a, unread_b = result.one()
    return int(unread_a) + int(unread_b)
