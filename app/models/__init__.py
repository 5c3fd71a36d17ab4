from app.models.block import BlockRelation
from app.models.match import MatchRecord
from app.models.meeting import Meeting
from app.models.message import Message
from app.models.profile import Profile
from app.models.report import Report
from app.models.thread import Thread
from app.models.user import User

__all__ = [
    "User",
    "Profile",
    "MatchRecord",
    "BlockRelation",
    "Thread",
    "Message",
    "Meeting",
    "Report",
]
