from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class BlockCreate(BaseModel):
    blocked_user_id: UUID


class BlockResponse(BaseModel):
    id: UUID
    blocker_id: UUID
    blocked_id: UUID
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class BlockListResponse(BaseModel):
    blocks: list[BlockResponse]
    total: int
