"""Conversation thread between exactly two participants."""

import uuid
from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base

DIRECT_SCOPE = "direct"


def scope_key_for(context_id: uuid.UUID | None) -> str:
    """Non-null uniqueness key for the optional housing context."""
    return str(context_id) if context_id else DIRECT_SCOPE


class Thread(Base):
    __tablename__ = "threads"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    # Participants are stored sorted (participant_a_id < participant_b_id)
    participant_a_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    participant_b_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Optional housing listing the conversation is about
    context_id: Mapped[uuid.UUID | None] = mapped_column(Uuid(as_uuid=True), nullable=True)
    scope_key: Mapped[str] = mapped_column(String(64), nullable=False, default=DIRECT_SCOPE)

    last_message_id: Mapped[uuid.UUID | None] = mapped_column(Uuid(as_uuid=True), nullable=True)
    last_message_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, index=True
    )

    # Unread counters, one per participant
    unread_a: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    unread_b: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )

    __table_args__ = (
        UniqueConstraint(
            "participant_a_id", "participant_b_id", "scope_key", name="uq_threads_pair_scope"
        ),
        CheckConstraint("participant_a_id < participant_b_id", name="participant_order_check"),
    )

    @property
    def participants(self) -> tuple[uuid.UUID, uuid.UUID]:
        return (self.participant_a_id, self.participant_b_id)

    @property
    def unread_counts(self) -> dict[str, int]:
        return {
            str(self.participant_a_id): self.unread_a,
            str(self.participant_b_id): self.unread_b,
        }

    def has_participant(self, user_id: uuid.UUID) -> bool:
        return user_id in self.participants

    def other_participant(self, user_id: uuid.UUID) -> uuid.UUID:
        return self.participant_b_id if self.participant_a_id == user_id else self.participant_a_id

    def unread_for(self, user_id: uuid.UUID) -> int:
        return self.unread_a if self.participant_a_id == user_id else self.unread_b
