"""Thread and message schemas for API requests and responses."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class DirectMessageCreate(BaseModel):
    """First (or any) message to a user, optionally about a housing listing."""
    recipient_id: UUID
    content: str = Field(..., min_length=1, max_length=2000)
    context_id: UUID | None = None


class ThreadResponse(BaseModel):
    """Thread response."""
    id: UUID
    participant_a_id: UUID
    participant_b_id: UUID
    context_id: UUID | None
    last_message_id: UUID | None
    last_message_at: datetime | None
    unread_counts: dict[str, int]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ThreadListResponse(BaseModel):
    threads: list[ThreadResponse]
    total: int


class MessageCreate(BaseModel):
    """Create a new message."""
    content: str = Field(..., min_length=1, max_length=2000)


class MessageResponse(BaseModel):
    """Message response."""
    id: UUID
    thread_id: UUID
    sender_id: UUID
    recipient_id: UUID
    content: str
    status: str
    flags: list[str]
    is_reported: bool = False
    read_at: datetime | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MessageListResponse(BaseModel):
    messages: list[MessageResponse]


class MarkReadResponse(BaseModel):
    marked: int


class UnreadCountResponse(BaseModel):
    """Unread messages count."""
    count: int
