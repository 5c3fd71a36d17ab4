import os

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test_roommates.db")

from typing import AsyncGenerator, Awaitable, Callable  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

from app.config import settings  # noqa: E402
from app.database import Base, get_db  # noqa: E402
from app.main import app  # noqa: E402

TEST_DATABASE_URL = settings.DATABASE_URL

test_engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)
test_async_session_maker = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

DEFAULT_PASSWORD = "password123"

PROFILE_DEFAULTS = {
    "name": "Amina",
    "age": 21,
    "university": "Université Mohammed V",
    "location": "Rabat",
    "cleanliness_level": 4,
    "sleep_schedule": "early_bird",
    "study_habits": "quiet",
    "social_level": "moderate",
    "personality": "introvert",
    "interests": ["reading", "cooking", "yoga"],
    "smoking_preference": "no_smoking",
    "pets_tolerance": "neutral",
    "budget_min": 1500,
    "budget_max": 2500,
    "bio": "Quiet student looking for a tidy roommate near campus.",
}


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with test_async_session_maker() as session:
        yield session

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    # A fresh session per request, like the real dependency
    async def override_get_db():
        async with test_async_session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def registered_user(client: AsyncClient) -> dict:
    user_data = {
        "email": "test@example.com",
        "password": "testpassword123",
    }
    response = await client.post("/api/v1/auth/register", json=user_data)
    return {**user_data, "response": response.json()}


@pytest_asyncio.fixture
async def auth_token(client: AsyncClient, registered_user: dict) -> str:
    response = await client.post(
        "/api/v1/auth/login",
        data={
            "username": registered_user["email"],
            "password": registered_user["password"],
        },
    )
    return response.json()["access_token"]


def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def make_user(
    client: AsyncClient,
) -> Callable[..., Awaitable[tuple[str, str]]]:
    """Factory: register, login and optionally create a profile. Returns (token, user_id)."""

    async def _make_user(email: str, profile: dict | None = None, **overrides) -> tuple[str, str]:
        await client.post(
            "/api/v1/auth/register",
            json={"email": email, "password": DEFAULT_PASSWORD},
        )
        login_response = await client.post(
            "/api/v1/auth/login",
            data={"username": email, "password": DEFAULT_PASSWORD},
        )
        token = login_response.json()["access_token"]

        me_response = await client.get("/api/v1/auth/me", headers=auth_headers(token))
        user_id = me_response.json()["id"]

        if profile is not None or overrides:
            payload = {**PROFILE_DEFAULTS, **(profile or {}), **overrides}
            response = await client.post(
                "/api/v1/profiles/", json=payload, headers=auth_headers(token)
            )
            assert response.status_code == 201, response.text

        return token, user_id

    return _make_user


@pytest.fixture
def profile_data() -> dict:
    return dict(PROFILE_DEFAULTS, interests=list(PROFILE_DEFAULTS["interests"]))


@pytest.fixture
def session_factory(db_session: AsyncSession) -> async_sessionmaker[AsyncSession]:
    """Sessionmaker bound to the per-test schema."""
    return test_async_session_maker
