from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class MatchStatus(str, Enum):
    pending = "pending"
    confirmed = "confirmed"
    declined = "declined"
    cancelled = "cancelled"


class MatchAction(BaseModel):
    """Target of an interest, confirm, decline or cancel action"""

    target_user_id: UUID


class MatchResponse(BaseModel):
    """Match details returned by API"""

    id: UUID
    user_a_id: UUID
    user_b_id: UUID
    status: str
    initiated_by: UUID | None
    confirmed_by: UUID | None
    confirmed_at: datetime | None
    declined_by: UUID | None
    cancelled_at: datetime | None
    created_at: datetime

    # Profile of the other person in the match
    other_user_profile: dict | None = None

    model_config = ConfigDict(from_attributes=True)


class MatchListResponse(BaseModel):
    """Paginated list of matches"""

    matches: list[MatchResponse]
    total: int
    page: int
    per_page: int
