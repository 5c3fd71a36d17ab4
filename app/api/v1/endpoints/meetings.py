from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.endpoints.auth import get_current_user
from app.database import get_db
from app.schemas.meeting import MeetingCreate, MeetingListResponse, MeetingResponse
from app.schemas.user import UserResponse
from app.services import meeting_service

router = APIRouter(prefix="", tags=["meetings"])


@router.post("/", response_model=MeetingResponse, status_code=status.HTTP_201_CREATED)
async def schedule_meeting(
    data: MeetingCreate,
    current_user: Annotated[UserResponse, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> MeetingResponse:
    """
    Schedule a meeting with a confirmed match.

    meeting_type is one of:
    - video_call
    - external_link (meeting_link required)
    - in_person (optional location)
    """
    meeting = await meeting_service.schedule_meeting(db, current_user.id, data)
    return MeetingResponse.model_validate(meeting)


@router.get("/", response_model=MeetingListResponse)
async def list_my_meetings(
    current_user: Annotated[UserResponse, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> MeetingListResponse:
    meetings = await meeting_service.get_user_meetings(db, current_user.id)
    return MeetingListResponse(
        meetings=[MeetingResponse.model_validate(m) for m in meetings],
        total=len(meetings),
    )


@router.post("/{meeting_id}/complete", response_model=MeetingResponse)
async def complete_meeting(
    meeting_id: UUID,
    current_user: Annotated[UserResponse, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> MeetingResponse:
    meeting = await meeting_service.update_meeting_status(
        db, current_user.id, meeting_id, "completed"
    )
    return MeetingResponse.model_validate(meeting)


@router.post("/{meeting_id}/cancel", response_model=MeetingResponse)
async def cancel_meeting(
    meeting_id: UUID,
    current_user: Annotated[UserResponse, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> MeetingResponse:
    meeting = await meeting_service.update_meeting_status(
        db, current_user.id, meeting_id, "cancelled"
    )
    return MeetingResponse.model_validate(meeting)
