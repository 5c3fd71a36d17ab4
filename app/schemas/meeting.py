"""Meeting schemas.

Proposals are a tagged variant on ``meeting_type``; each variant only carries
the fields that make sense for it.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Literal, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


class MeetingType(str, Enum):
    video_call = "video_call"
    external_link = "external_link"
    in_person = "in_person"


class MeetingStatus(str, Enum):
    scheduled = "scheduled"
    completed = "completed"
    cancelled = "cancelled"


class _MeetingBase(BaseModel):
    match_id: UUID
    scheduled_at: datetime
    notes: str | None = Field(None, max_length=1000)


class VideoCallMeeting(_MeetingBase):
    meeting_type: Literal["video_call"]


class ExternalLinkMeeting(_MeetingBase):
    meeting_type: Literal["external_link"]
    meeting_link: str | None = Field(None, max_length=500)

    @field_validator("meeting_link")
    @classmethod
    def strip_link(cls, value: str | None) -> str | None:
        return value.strip() if value is not None else None


class InPersonMeeting(_MeetingBase):
    meeting_type: Literal["in_person"]
    location: str | None = Field(None, max_length=200)


MeetingCreate = Annotated[
    Union[VideoCallMeeting, ExternalLinkMeeting, InPersonMeeting],
    Field(discriminator="meeting_type"),
]


class MeetingResponse(BaseModel):
    id: UUID
    match_id: UUID
    scheduled_by: UUID
    meeting_type: str
    meeting_link: str | None
    location: str | None
    scheduled_at: datetime
    notes: str | None
    status: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MeetingListResponse(BaseModel):
    meetings: list[MeetingResponse]
    total: int
