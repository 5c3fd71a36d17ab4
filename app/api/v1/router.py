from fastapi import APIRouter

from app.api.v1.endpoints import (
    auth,
    blocks,
    matches,
    meetings,
    messages,
    profiles,
    reports,
    ws,
)

router = APIRouter()

router.include_router(auth.router, prefix="/auth")
router.include_router(profiles.router, prefix="/profiles")
router.include_router(matches.router, prefix="/matches")
router.include_router(blocks.router, prefix="/blocks")
router.include_router(messages.router, prefix="/messages")
router.include_router(meetings.router, prefix="/meetings")
router.include_router(reports.router, prefix="/reports")
router.include_router(ws.router)
