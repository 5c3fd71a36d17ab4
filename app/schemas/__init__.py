from app.schemas.block import BlockCreate, BlockListResponse, BlockResponse
from app.schemas.compatibility import (
    CompatibilityBreakdown,
    CompatibilityResponse,
    RankedCandidate,
    RankedCandidatesResponse,
)
from app.schemas.match import MatchAction, MatchListResponse, MatchResponse, MatchStatus
from app.schemas.meeting import (
    ExternalLinkMeeting,
    InPersonMeeting,
    MeetingCreate,
    MeetingListResponse,
    MeetingResponse,
    MeetingStatus,
    MeetingType,
    VideoCallMeeting,
)
from app.schemas.message import (
    DirectMessageCreate,
    MessageCreate,
    MessageResponse,
    ThreadResponse,
)
from app.schemas.profile import (
    ProfileBrief,
    ProfileCreate,
    ProfileResponse,
    ProfileUpdate,
)
from app.schemas.report import (
    MessageReport,
    ReportCreate,
    ReportListResponse,
    ReportReason,
    ReportResponse,
    ReportStatus,
    UserReport,
)
from app.schemas.user import Token, TokenPayload, UserCreate, UserResponse

__all__ = [
    "UserCreate",
    "UserResponse",
    "Token",
    "TokenPayload",
    "ProfileCreate",
    "ProfileUpdate",
    "ProfileResponse",
    "ProfileBrief",
    "CompatibilityBreakdown",
    "CompatibilityResponse",
    "RankedCandidate",
    "RankedCandidatesResponse",
    "MatchAction",
    "MatchStatus",
    "MatchResponse",
    "MatchListResponse",
    "BlockCreate",
    "BlockResponse",
    "BlockListResponse",
    "DirectMessageCreate",
    "ThreadResponse",
    "MessageCreate",
    "MessageResponse",
    "MeetingType",
    "MeetingStatus",
    "VideoCallMeeting",
    "ExternalLinkMeeting",
    "InPersonMeeting",
    "MeetingCreate",
    "MeetingResponse",
    "MeetingListResponse",
    "ReportReason",
    "ReportStatus",
    "UserReport",
    "MessageReport",
    "ReportCreate",
    "ReportResponse",
    "ReportListResponse",
]
