"""
tests/test_profiles.py: onboarding, profile lookups and the profile builder
"""
from types import SimpleNamespace

from postgrest.exceptions import APIError

from app.core.security import get_current_user
from app.main import app

PROFILE_ID = "11111111-1111-1111-1111-111111111111"
NEW_USER_ID = "66666666-6666-6666-6666-666666666666"
URL = "/api/v1/profiles"


def _as_new_user():
    app.dependency_overrides[get_current_user] = lambda: SimpleNamespace(id=NEW_USER_ID, email="sam@example.com")


def _payload(**overrides):
    body = {
        "handle": "dr-sam",
        "fullName": "Sam Lee",
        "specialty": "Dermatology",
        "clinicName": "",
        "yearsExperience": 8,
    }
    body.update(overrides)
    return body


def test_create_profile(client, fake_db):
    _as_new_user()

    response = client.post(URL, json=_payload())

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["profile"]["handle"] == "dr-sam"
    assert data["message"] == "Your profile is live at verified.doctor/dr-sam"
    assert data["connectedWith"] is None
    assert data["connectionError"] is None

    row = next(p for p in fake_db.rows("profiles") if p["handle"] == "dr-sam")
    assert row["user_id"] == NEW_USER_ID
    assert row["full_name"] == "Sam Lee"
    assert row["clinic_name"] is None
    assert row["years_experience"] == 8
    assert row["profile_template"] == "classic"
    assert row["is_verified"] is False
    assert row["verification_status"] == "none"
    assert row["recommendation_count"] == 0


def test_create_profile_handle_rules(client, fake_db):
    _as_new_user()

    cases = [
        ("Bad_Handle", "Handle can only contain lowercase letters, numbers, and hyphens"),
        ("admin", "This handle is not available"),
        ("dr-jane", "This handle is already taken"),
    ]
    for handle, error in cases:
        response = client.post(URL, json=_payload(handle=handle))
        assert response.status_code == 400
        assert response.json() == {"error": error}

    assert fake_db.count_calls("profiles", "insert") == 0


def test_create_second_profile_rejected(auth_client, fake_db):
    response = auth_client.post(URL, json=_payload())

    assert response.status_code == 400
    assert response.json() == {"error": "You already have a profile"}
    assert len(fake_db.rows("profiles")) == 1


def test_create_profile_concurrent_claim(client, fake_db):
    _as_new_user()
    fake_db.failures[("profiles", "insert")] = APIError({
        "message": 'duplicate key value violates unique constraint "profiles_handle_key"',
        "code": "23505",
        "hint": None,
        "details": None,
    })

    response = client.post(URL, json=_payload())

    assert response.status_code == 409
    assert response.json() == {
        "error": "This handle was just claimed by someone else. Please try a different one."
    }


def test_create_profile_insert_failure(client, fake_db):
    _as_new_user()
    fake_db.failures[("profiles", "insert")] = RuntimeError("db down")

    response = client.post(URL, json=_payload())

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to create profile"}


def test_create_profile_with_invite_connects(client, fake_db):
    _as_new_user()
    fake_db.tables["invites"] = [{
        "id": "inv-1",
        "inviter_profile_id": PROFILE_ID,
        "invite_code": "a1b2c3d4e5f6",
        "used": False,
    }]

    response = client.post(URL, json=_payload(inviteCode="a1b2c3d4e5f6"))

    assert response.status_code == 200
    data = response.json()
    assert data["connectedWith"]["handle"] == "dr-jane"
    assert data["connectionError"] is None

    new_id = data["profile"]["id"]
    connection = fake_db.rows("connections")[0]
    assert connection["requester_id"] == PROFILE_ID
    assert connection["receiver_id"] == new_id
    assert connection["status"] == "accepted"
    assert fake_db.rows("invites")[0]["used"] is True
    assert fake_db.rows("invites")[0]["used_by_profile_id"] == new_id


def test_create_profile_with_bad_invite_still_creates(client, fake_db):
    _as_new_user()

    response = client.post(URL, json=_payload(inviteCode="nope"))

    assert response.status_code == 200
    data = response.json()
    assert data["profile"]["handle"] == "dr-sam"
    assert data["connectedWith"] is None
    assert data["connectionError"] == "Invalid invite code"
    assert fake_db.rows("connections") == []


def test_create_profile_requires_auth(client, fake_db):
    response = client.post(URL, json=_payload())

    assert response.status_code == 401
    assert fake_db.calls == []


def test_get_own_profile(auth_client):
    response = auth_client.get(URL)

    assert response.status_code == 200
    assert response.json()["profile"]["handle"] == "dr-jane"


def test_get_own_profile_before_onboarding(client):
    _as_new_user()

    response = client.get(URL)

    assert response.status_code == 200
    assert response.json() == {"profile": None}


def test_get_public_profile(client):
    response = client.get(f"{URL}/{PROFILE_ID}")

    assert response.status_code == 200
    assert response.json()["profile"]["full_name"] == "Dr. Jane Doe"


def test_get_unknown_profile(client):
    response = client.get(f"{URL}/33333333-3333-3333-3333-333333333333")

    assert response.status_code == 404
    assert response.json() == {"error": "Profile not found"}


def test_update_profile_writes_only_sent_fields(auth_client, fake_db):
    response = auth_client.patch(f"{URL}/{PROFILE_ID}", json={
        "bio": "Cardiologist with a focus on prevention.",
        "isAvailable": False,
        "externalBookingUrl": "",
    })

    assert response.status_code == 200
    assert response.json() == {"success": True}

    row = fake_db.rows("profiles")[0]
    assert row["bio"] == "Cardiologist with a focus on prevention."
    assert row["is_available"] is False
    assert row["external_booking_url"] is None
    assert row["full_name"] == "Dr. Jane Doe"
    assert row["updated_at"]


def test_update_someone_elses_profile(client, fake_db):
    _as_new_user()

    response = client.patch(f"{URL}/{PROFILE_ID}", json={"bio": "Not mine"})

    assert response.status_code == 403
    assert response.json() == {"error": "Forbidden"}
    assert "bio" not in fake_db.rows("profiles")[0]


def test_update_unknown_profile(auth_client):
    response = auth_client.patch(f"{URL}/33333333-3333-3333-3333-333333333333", json={"bio": "Hi"})

    assert response.status_code == 404
    assert response.json() == {"error": "Profile not found"}


def test_update_profile_validation(auth_client, fake_db):
    response = auth_client.patch(f"{URL}/{PROFILE_ID}", json={"profileTemplate": "neon"})

    assert response.status_code == 400
    assert fake_db.count_calls("profiles", "update") == 0
