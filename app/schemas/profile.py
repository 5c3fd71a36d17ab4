from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator


class SleepSchedule(str, Enum):
    early_bird = "early_bird"  # 10 PM - 6 AM
    regular = "regular"  # 11 PM - 7 AM
    night_owl = "night_owl"  # 1 AM - 9 AM
    flexible = "flexible"


class StudyHabits(str, Enum):
    quiet = "quiet"
    with_music = "with_music"
    groups = "groups"
    mixed = "mixed"


class SocialLevel(str, Enum):
    very_social = "very_social"
    social = "social"
    moderate = "moderate"
    quiet = "quiet"


class Personality(str, Enum):
    introvert = "introvert"
    extrovert = "extrovert"
    ambivert = "ambivert"


class SmokingPreference(str, Enum):
    no_smoking = "no_smoking"
    occasionally = "occasionally"
    regularly = "regularly"


class PetsTolerance(str, Enum):
    love_pets = "love_pets"
    neutral = "neutral"
    no_pets = "no_pets"


class ProfileCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    age: int = Field(..., ge=18, le=35)
    university: str = Field(..., min_length=1, max_length=200)
    location: str = Field(..., min_length=1, max_length=200)

    cleanliness_level: int = Field(..., ge=1, le=5)
    sleep_schedule: SleepSchedule
    study_habits: StudyHabits
    social_level: SocialLevel
    personality: Personality
    interests: list[str] = []
    smoking_preference: SmokingPreference
    pets_tolerance: PetsTolerance

    budget_min: int = Field(..., ge=0)
    budget_max: int = Field(..., ge=0)

    bio: str = Field(..., max_length=500)
    profile_photo: str | None = Field(None, max_length=500)

    @model_validator(mode="after")
    def check_budget_range(self) -> "ProfileCreate":
        if self.budget_min > self.budget_max:
            raise ValueError("budget_min must not exceed budget_max")
        return self


class ProfileUpdate(BaseModel):
    """All fields optional, only provided fields are changed"""

    name: str | None = Field(None, min_length=1, max_length=100)
    age: int | None = Field(None, ge=18, le=35)
    university: str | None = Field(None, min_length=1, max_length=200)
    location: str | None = Field(None, min_length=1, max_length=200)

    cleanliness_level: int | None = Field(None, ge=1, le=5)
    sleep_schedule: SleepSchedule | None = None
    study_habits: StudyHabits | None = None
    social_level: SocialLevel | None = None
    personality: Personality | None = None
    interests: list[str] | None = None
    smoking_preference: SmokingPreference | None = None
    pets_tolerance: PetsTolerance | None = None

    budget_min: int | None = Field(None, ge=0)
    budget_max: int | None = Field(None, ge=0)

    bio: str | None = Field(None, max_length=500)
    profile_photo: str | None = Field(None, max_length=500)


class ProfileResponse(BaseModel):
    id: UUID
    user_id: UUID
    name: str
    age: int
    university: str
    location: str

    cleanliness_level: int
    sleep_schedule: str
    study_habits: str
    social_level: str
    personality: str
    interests: list[str]
    smoking_preference: str
    pets_tolerance: str

    budget_min: int
    budget_max: int

    bio: str | None
    profile_photo: str | None
    is_active: bool

    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ProfileBrief(BaseModel):
    """Short profile shown next to matches and threads"""

    user_id: UUID
    name: str
    age: int
    university: str
    location: str
    profile_photo: str | None
    is_active: bool

    model_config = ConfigDict(from_attributes=True)
