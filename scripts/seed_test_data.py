"""
Seed script to populate database with test data for development/testing.
Run with: python scripts/seed_test_data.py
"""

import asyncio
import random
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from uuid import uuid4

# Add parent directory to path so we can import app
sys.path.insert(0, str(Path(__file__).parent.parent))

from faker import Faker
from sqlalchemy import func, select

from app.core.security import hash_password
from app.database import async_session_maker
from app.models.match import MatchRecord
from app.models.profile import Profile
from app.models.user import User
from app.schemas.profile import (
    PetsTolerance,
    Personality,
    SleepSchedule,
    SmokingPreference,
    SocialLevel,
    StudyHabits,
)

fake = Faker(["fr_FR", "en_US"])

# Configuration
NUM_USERS = 50
NUM_MATCHES = 20
TEST_DOMAIN = "test.roommates.local"

UNIVERSITIES = [
    "Université Mohammed V",
    "Université Hassan II",
    "Université Cadi Ayyad",
    "Université Ibn Tofail",
    "Al Akhawayn University",
]
CITIES = ["Rabat", "Casablanca", "Marrakech", "Kénitra", "Ifrane", "Fès"]
INTERESTS = [
    "Reading", "Yoga", "Photography", "Gaming", "Music", "Sports",
    "Cooking", "Art", "Travel", "Hiking", "Movies", "Coding",
]

# Hand-written profiles so every fresh database has familiar faces
FIXED_PROFILES = [
    {
        "name": "Amina Benali",
        "age": 21,
        "university": "Université Mohammed V",
        "location": "Rabat",
        "cleanliness_level": 4,
        "sleep_schedule": SleepSchedule.early_bird.value,
        "study_habits": StudyHabits.quiet.value,
        "social_level": SocialLevel.moderate.value,
        "personality": Personality.introvert.value,
        "interests": ["Reading", "Yoga", "Photography"],
        "smoking_preference": SmokingPreference.no_smoking.value,
        "pets_tolerance": PetsTolerance.love_pets.value,
        "budget_min": 2000,
        "budget_max": 3000,
        "bio": "Looking for a clean and quiet roommate who values personal space.",
    },
    {
        "name": "Youssef Alaoui",
        "age": 22,
        "university": "Université Hassan II",
        "location": "Casablanca",
        "cleanliness_level": 5,
        "sleep_schedule": SleepSchedule.night_owl.value,
        "study_habits": StudyHabits.with_music.value,
        "social_level": SocialLevel.very_social.value,
        "personality": Personality.extrovert.value,
        "interests": ["Gaming", "Music", "Sports"],
        "smoking_preference": SmokingPreference.occasionally.value,
        "pets_tolerance": PetsTolerance.neutral.value,
        "budget_min": 2500,
        "budget_max": 4000,
        "bio": "Easy-going and social person. Looking for someone fun!",
    },
    {
        "name": "Fatima Zohra",
        "age": 20,
        "university": "Université Cadi Ayyad",
        "location": "Marrakech",
        "cleanliness_level": 5,
        "sleep_schedule": SleepSchedule.regular.value,
        "study_habits": StudyHabits.groups.value,
        "social_level": SocialLevel.social.value,
        "personality": Personality.ambivert.value,
        "interests": ["Cooking", "Art", "Travel"],
        "smoking_preference": SmokingPreference.no_smoking.value,
        "pets_tolerance": PetsTolerance.love_pets.value,
        "budget_min": 1800,
        "budget_max": 2800,
        "bio": "Love cooking and trying new recipes.",
    },
]


def random_profile_data() -> dict:
    budget_min = random.randrange(1000, 3500, 100)
    return {
        "name": fake.name()[:100],
        "age": random.randint(18, 30),
        "university": random.choice(UNIVERSITIES),
        "location": random.choice(CITIES),
        "cleanliness_level": random.randint(1, 5),
        "sleep_schedule": random.choice(list(SleepSchedule)).value,
        "study_habits": random.choice(list(StudyHabits)).value,
        "social_level": random.choice(list(SocialLevel)).value,
        "personality": random.choice(list(Personality)).value,
        "interests": random.sample(INTERESTS, random.randint(0, 5)),
        "smoking_preference": random.choice(list(SmokingPreference)).value,
        "pets_tolerance": random.choice(list(PetsTolerance)).value,
        "budget_min": budget_min,
        "budget_max": budget_min + random.randrange(0, 2000, 100),
        "bio": fake.paragraph(nb_sentences=3) if random.choice([True, False]) else None,
    }


async def seed_users(db) -> list[User]:
    """Create test users, mostly active."""
    users = []

    # Password for all test users (for easy login during testing)
    test_password_hash = hash_password("Test1234!")
    statuses = ["active", "active", "active", "active", "active", "suspended"]

    print(f"Creating {NUM_USERS} test users...")

    for i in range(NUM_USERS):
        # The fixed profiles always belong to active accounts
        status = "active" if i < len(FIXED_PROFILES) else random.choice(statuses)
        user = User(
            id=uuid4(),
            email=f"user{i+1}@{TEST_DOMAIN}",
            password_hash=test_password_hash,
            status=status,
            created_at=datetime.now(timezone.utc) - timedelta(days=random.randint(1, 180)),
            last_active_at=datetime.now(timezone.utc) - timedelta(hours=random.randint(1, 720)),
        )
        db.add(user)
        users.append(user)

    await db.flush()
    print(f"  Created {len(users)} users")
    return users


async def seed_profiles(db, users: list[User]) -> list[Profile]:
    """Create a roommate profile for every test user."""
    profiles = []

    print(f"Creating profiles for {len(users)} users...")

    for i, user in enumerate(users):
        data = FIXED_PROFILES[i] if i < len(FIXED_PROFILES) else random_profile_data()
        profile = Profile(
            id=uuid4(),
            user_id=user.id,
            is_active=random.choice([True, True, True, True, False]) if i >= len(FIXED_PROFILES) else True,
            created_at=user.created_at,
            **data,
        )
        db.add(profile)
        profiles.append(profile)

    await db.flush()
    print(f"  Created {len(profiles)} profiles")
    print(f"    - Active: {len([p for p in profiles if p.is_active])}")
    return profiles


async def seed_matches(db, users: list[User]) -> list[MatchRecord]:
    """Create match records between random pairs of active users."""
    matches = []
    seen = set()

    active_users = [u for u in users if u.status == "active"]
    if len(active_users) < 2:
        print("  Not enough active users for matches")
        return matches

    statuses = ["pending", "pending", "confirmed", "declined", "cancelled"]

    print(f"Creating up to {NUM_MATCHES} matches...")

    for _ in range(NUM_MATCHES):
        first, second = random.sample(active_users, 2)
        user_a_id, user_b_id = sorted([first.id, second.id])
        if (user_a_id, user_b_id) in seen:
            continue
        seen.add((user_a_id, user_b_id))

        status = random.choice(statuses)
        now = datetime.now(timezone.utc)
        match = MatchRecord(
            id=uuid4(),
            user_a_id=user_a_id,
            user_b_id=user_b_id,
            status=status,
            initiated_by=first.id,
            confirmed_by=second.id if status == "confirmed" else None,
            confirmed_at=now if status == "confirmed" else None,
            declined_by=second.id if status == "declined" else None,
            cancelled_at=now if status == "cancelled" else None,
            created_at=now - timedelta(days=random.randint(0, 30)),
        )
        db.add(match)
        matches.append(match)

    await db.flush()
    print(f"  Created {len(matches)} matches")
    return matches


async def main():
    print("=" * 50)
    print("Seeding test data for Roommate Matching Backend")
    print("=" * 50)

    async with async_session_maker() as db:
        try:
            # Check if test users already exist
            count_result = await db.execute(
                select(func.count(User.id)).where(User.email.like(f"%@{TEST_DOMAIN}"))
            )
            existing_count = count_result.scalar() or 0

            if existing_count > 0:
                print(f"\nFound {existing_count} existing test users.")
                print("Remove them before seeding again. Aborted.")
                return

            print("\nCreating test data...")

            users = await seed_users(db)
            profiles = await seed_profiles(db, users)
            matches = await seed_matches(db, users)

            # Commit all changes
            await db.commit()

            # Print summary
            print("\n" + "=" * 50)
            print("Summary:")
            print("=" * 50)
            print(f"  Users created: {len(users)}")
            print(f"    - Active: {len([u for u in users if u.status == 'active'])}")
            print(f"    - Suspended: {len([u for u in users if u.status == 'suspended'])}")
            print(f"  Profiles created: {len(profiles)}")
            print(f"  Matches created: {len(matches)}")
            for status in ("pending", "confirmed", "declined", "cancelled"):
                print(f"    - {status.capitalize()}: {len([m for m in matches if m.status == status])}")
            print("\nTest user login (Amina):")
            print(f"  Email: user1@{TEST_DOMAIN}")
            print("  Password: Test1234!")
            print("=" * 50)

        except Exception as e:
            print(f"\nError: {e}")
            await db.rollback()
            raise


if __name__ == "__main__":
    asyncio.run(main())
