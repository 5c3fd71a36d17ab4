from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.endpoints.auth import get_current_user
from app.database import get_db
from app.schemas.report import ReportCreate, ReportListResponse, ReportResponse
from app.schemas.user import UserResponse
from app.services import report_service

router = APIRouter(prefix="", tags=["reports"])


@router.post("/", response_model=ReportResponse, status_code=status.HTTP_201_CREATED)
async def submit_report(
    data: ReportCreate,
    current_user: Annotated[UserResponse, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ReportResponse:
    """
    Report a user or a message.

    A message report must come from the other participant of its thread.
    The message keeps being delivered and is marked as reported.
    """
    report = await report_service.submit_report(db, current_user.id, data)
    return ReportResponse.model_validate(report)


@router.get("/me", response_model=ReportListResponse)
async def list_my_reports(
    current_user: Annotated[UserResponse, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ReportListResponse:
    reports = await report_service.list_my_reports(db, current_user.id)
    return ReportListResponse(
        reports=[ReportResponse.model_validate(r) for r in reports],
        total=len(reports),
    )
