import uuid

from sqlalchemy import func, select

from app.models.user import Profile
from tests.factories import auth_headers


FORM = {
    "display_name": "Hanako",
    "age": 25,
    "gender": "female",
    "prefecture": "13",
    "bio": "Loves hiking and onsen trips.",
}


async def test_requires_bearer_token(client):
    response = await client.get("/api/v1/profiles/me")
    assert response.status_code in (401, 403)


async def test_create_and_fetch_profile(client):
    user_id = uuid.uuid4()
    headers = auth_headers(user_id, "hanako@example.com")

    response = await client.post("/api/v1/profiles/me", json=FORM, headers=headers)
    assert response.status_code == 201
    body = response.json()
    assert body["id"] == str(user_id)
    assert body["age"] == 25
    assert body["profile_completion_rate"] == 90

    response = await client.get("/api/v1/profiles/me", headers=headers)
    assert response.status_code == 200
    assert response.json()["display_name"] == "Hanako"

    response = await client.get("/api/v1/auth/me", headers=headers)
    assert response.json() == {"id": str(user_id), "email": "hanako@example.com", "has_profile": True}


async def test_invalid_profile_returns_field_errors_and_stores_nothing(client, session_maker):
    response = await client.post(
        "/api/v1/profiles/me",
        json={**FORM, "age": "17", "height": "999"},
        headers=auth_headers(uuid.uuid4()),
    )

    assert response.status_code == 422
    body = response.json()
    assert body["detail"] == "Profile validation failed"
    assert [e["field"] for e in body["errors"]] == ["age", "height"]

    async with session_maker() as session:
        count = await session.execute(select(func.count(Profile.id)))
        assert count.scalar_one() == 0


async def test_duplicate_create_conflicts(client):
    headers = auth_headers(uuid.uuid4())
    await client.post("/api/v1/profiles/me", json=FORM, headers=headers)

    response = await client.post("/api/v1/profiles/me", json=FORM, headers=headers)
    assert response.status_code == 409


async def test_update_requires_existing_profile(client):
    response = await client.put("/api/v1/profiles/me", json=FORM, headers=auth_headers(uuid.uuid4()))
    assert response.status_code == 404


async def test_profile_exists(client, alice):
    response = await client.get("/api/v1/profiles/me/exists", headers=auth_headers(alice.id))
    assert response.json() == {"exists": True}

    response = await client.get("/api/v1/profiles/me/exists", headers=auth_headers(uuid.uuid4()))
    assert response.json() == {"exists": False}


async def test_get_other_profile(client, alice, bob):
    response = await client.get(f"/api/v1/profiles/{bob.id}", headers=auth_headers(alice.id))
    assert response.status_code == 200
    assert response.json()["display_name"] == "Bob"

    response = await client.get(f"/api/v1/profiles/{uuid.uuid4()}", headers=auth_headers(alice.id))
    assert response.status_code == 404


async def test_prefectures_fallback(client):
    response = await client.get("/api/v1/profiles/prefectures")
    assert response.status_code == 200
    assert {"code": "13", "name": "Tokyo"} in response.json()


async def test_validate_form(client):
    response = await client.post("/api/v1/profiles/validate", json={"display_name": "A"})
    body = response.json()
    assert body["valid"] is False
    assert [e["field"] for e in body["errors"]] == ["display_name", "age", "gender", "prefecture"]


async def test_validate_single_field(client):
    response = await client.post(
        "/api/v1/profiles/validate/preferred_min_age",
        json={"value": "40", "form": {"preferred_max_age": "30"}},
    )
    assert response.json() == {
        "valid": False,
        "errors": [{"field": "preferred_min_age", "message": "Minimum age must not exceed maximum age"}],
    }

    response = await client.post("/api/v1/profiles/validate/unknown", json={"value": "x"})
    assert response.status_code == 400


async def test_session_and_is_current(client, alice):
    headers = auth_headers(alice.id, "alice@example.com")

    response = await client.get("/api/v1/auth/session", headers=headers)
    assert response.json()["user_id"] == str(alice.id)

    response = await client.get(f"/api/v1/auth/is-current/{alice.id}", headers=headers)
    assert response.json() == {"is_current_user": True}

    response = await client.get(f"/api/v1/auth/is-current/{alice.id}")
    assert response.json() == {"is_current_user": False}
