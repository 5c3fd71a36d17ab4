"""Tests for ranked candidates and the compatibility endpoint."""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_candidates_empty(client: AsyncClient, make_user):
    """Returns empty list when nobody else has a profile."""
    token, _ = await make_user("amina@example.com", profile={})

    response = await client.get(
        "/api/v1/matches/candidates",
        headers={"Authorization": f"Bearer {token}"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["candidates"] == []
    assert data["total_available"] == 0


@pytest.mark.asyncio
async def test_candidates_require_profile(client: AsyncClient, make_user):
    token, _ = await make_user("amina@example.com")

    response = await client.get(
        "/api/v1/matches/candidates",
        headers={"Authorization": f"Bearer {token}"},
    )

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_candidates_ranked_by_score(client: AsyncClient, make_user):
    token, user_id = await make_user("amina@example.com", profile={})
    _, far_id = await make_user(
        "youssef@example.com",
        name="Youssef",
        university="Université Hassan II",
        location="Casablanca",
        smoking_preference="regularly",
    )
    _, close_id = await make_user("fatima@example.com", name="Fatima")

    response = await client.get(
        "/api/v1/matches/candidates",
        headers={"Authorization": f"Bearer {token}"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["total_available"] == 2
    ids = [c["profile"]["user_id"] for c in data["candidates"]]
    assert ids == [close_id, far_id]
    assert user_id not in ids
    scores = [c["score"] for c in data["candidates"]]
    assert scores == sorted(scores, reverse=True)
    assert data["candidates"][0]["breakdown"]["university"]["match"] is True


@pytest.mark.asyncio
async def test_candidates_limit(client: AsyncClient, make_user):
    token, _ = await make_user("amina@example.com", profile={})
    for i in range(3):
        await make_user(f"user{i}@example.com", profile={})

    response = await client.get(
        "/api/v1/matches/candidates?limit=2",
        headers={"Authorization": f"Bearer {token}"},
    )

    assert response.status_code == 200
    data = response.json()
    assert len(data["candidates"]) == 2
    assert data["total_available"] == 3


@pytest.mark.asyncio
async def test_candidates_exclude_inactive(client: AsyncClient, make_user):
    token, _ = await make_user("amina@example.com", profile={})
    other_token, _ = await make_user("fatima@example.com", profile={})
    await client.post(
        "/api/v1/profiles/me/deactivate",
        headers={"Authorization": f"Bearer {other_token}"},
    )

    response = await client.get(
        "/api/v1/matches/candidates",
        headers={"Authorization": f"Bearer {token}"},
    )

    assert response.json()["total_available"] == 0


@pytest.mark.asyncio
async def test_candidates_exclude_confirmed_and_declined(client: AsyncClient, make_user):
    token, _ = await make_user("amina@example.com", profile={})
    _, confirmed_id = await make_user("fatima@example.com", profile={})
    _, declined_id = await make_user("youssef@example.com", profile={})
    _, pending_id = await make_user("salma@example.com", profile={})
    headers = {"Authorization": f"Bearer {token}"}

    await client.post("/api/v1/matches/interest", json={"target_user_id": confirmed_id}, headers=headers)
    await client.post("/api/v1/matches/confirm", json={"target_user_id": confirmed_id}, headers=headers)
    await client.post("/api/v1/matches/decline", json={"target_user_id": declined_id}, headers=headers)
    await client.post("/api/v1/matches/interest", json={"target_user_id": pending_id}, headers=headers)

    response = await client.get("/api/v1/matches/candidates", headers=headers)

    ids = [c["profile"]["user_id"] for c in response.json()["candidates"]]
    assert ids == [pending_id]


@pytest.mark.asyncio
async def test_candidates_exclude_blocked_both_ways(client: AsyncClient, make_user):
    token, user_id = await make_user("amina@example.com", profile={})
    _, blocked_id = await make_user("fatima@example.com", profile={})
    blocker_token, _ = await make_user("youssef@example.com", profile={})

    await client.post(
        "/api/v1/blocks/",
        json={"blocked_user_id": blocked_id},
        headers={"Authorization": f"Bearer {token}"},
    )
    await client.post(
        "/api/v1/blocks/",
        json={"blocked_user_id": user_id},
        headers={"Authorization": f"Bearer {blocker_token}"},
    )

    response = await client.get(
        "/api/v1/matches/candidates",
        headers={"Authorization": f"Bearer {token}"},
    )

    assert response.json()["total_available"] == 0


@pytest.mark.asyncio
async def test_get_compatibility(client: AsyncClient, make_user):
    token, _ = await make_user("amina@example.com", profile={})
    _, other_id = await make_user("fatima@example.com", profile={})

    response = await client.get(
        f"/api/v1/matches/compatibility/{other_id}",
        headers={"Authorization": f"Bearer {token}"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["score"] == 100
    assert set(data["breakdown"]) == {
        "university",
        "location",
        "cleanliness",
        "sleep_schedule",
        "personality",
        "social_level",
        "smoking",
        "pets",
        "budget",
        "interests",
    }


@pytest.mark.asyncio
async def test_get_compatibility_with_self(client: AsyncClient, make_user):
    token, user_id = await make_user("amina@example.com", profile={})

    response = await client.get(
        f"/api/v1/matches/compatibility/{user_id}",
        headers={"Authorization": f"Bearer {token}"},
    )

    assert response.status_code == 200
    assert response.json() == {"score": 0, "breakdown": {}}


@pytest.mark.asyncio
async def test_get_compatibility_unknown_profile(client: AsyncClient, make_user):
    token, _ = await make_user("amina@example.com", profile={})
    _, no_profile_id = await make_user("fatima@example.com")

    response = await client.get(
        f"/api/v1/matches/compatibility/{no_profile_id}",
        headers={"Authorization": f"Bearer {token}"},
    )

    assert response.status_code == 404
    assert response.json()["code"] == "RESOURCE_NOT_FOUND"
