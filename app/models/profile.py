import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base

if TYPE_CHECKING:
    from app.models.user import User


class Profile(Base):
    __tablename__ = "profiles"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    # One roommate profile per identity
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    age: Mapped[int] = mapped_column(Integer, nullable=False)
    university: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    location: Mapped[str] = mapped_column(String(200), nullable=False, index=True)

    # Lifestyle
    cleanliness_level: Mapped[int] = mapped_column(Integer, nullable=False)
    sleep_schedule: Mapped[str] = mapped_column(String(30), nullable=False)
    study_habits: Mapped[str] = mapped_column(String(30), nullable=False)
    social_level: Mapped[str] = mapped_column(String(30), nullable=False)
    personality: Mapped[str] = mapped_column(String(30), nullable=False)
    interests: Mapped[list] = mapped_column(JSON, default=list)
    smoking_preference: Mapped[str] = mapped_column(String(30), nullable=False)
    pets_tolerance: Mapped[str] = mapped_column(String(30), nullable=False)

    # Monthly budget range
    budget_min: Mapped[int] = mapped_column(Integer, nullable=False)
    budget_max: Mapped[int] = mapped_column(Integer, nullable=False)

    bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    profile_photo: Mapped[str | None] = mapped_column(String(500), nullable=True)

    # Deactivated profiles are kept so match history stays valid
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    # Relationship
    user: Mapped["User"] = relationship("User", back_populates="profile")

    __table_args__ = (
        CheckConstraint("cleanliness_level BETWEEN 1 AND 5", name="cleanliness_range_check"),
        CheckConstraint("budget_min <= budget_max", name="budget_range_check"),
    )
