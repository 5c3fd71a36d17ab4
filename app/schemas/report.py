"""
Report schemas. A report targets either a user or a single message,
told apart by ``target_type``.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Literal, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ReportReason(str, Enum):
    spam = "spam"
    fake_profile = "fake_profile"
    inappropriate = "inappropriate"
    harassment = "harassment"
    scam = "scam"
    safety_concern = "safety_concern"
    other = "other"


class ReportStatus(str, Enum):
    pending = "pending"
    reviewed = "reviewed"
    dismissed = "dismissed"
    action_taken = "action_taken"


class _ReportBase(BaseModel):
    target_id: UUID
    reason: ReportReason
    description: str | None = Field(None, max_length=1000)


class UserReport(_ReportBase):
    target_type: Literal["user"]


class MessageReport(_ReportBase):
    target_type: Literal["message"]


ReportCreate = Annotated[
    Union[UserReport, MessageReport],
    Field(discriminator="target_type"),
]


class ReportResponse(BaseModel):
    id: UUID
    target_type: str
    target_id: UUID
    reported_user_id: UUID
    conversation_id: UUID | None
    reason: str
    description: str | None
    status: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ReportListResponse(BaseModel):
    reports: list[ReportResponse]
    total: int
