from datetime import datetime, timedelta, timezone

import pytest

from fakes import add_user
from services.accounts import alias_base, generate_unique_alias, is_plan_active

NOW = datetime(2026, 10, 17, 15, 0, tzinfo=timezone.utc)


def test_signup_creates_trial_user_with_alias(client, db):
    resp = client.post("/api/signup", json={"email": "a@x.com", "name": "Ann"})

    assert resp.status_code == 200
    data = resp.json()
    assert data["success"] is True
    assert data["user"]["inbound_email"] == "ann@save.steep.news"
    assert data["user"]["plan"] == "trial"
    assert db.users[0]["email"] == "a@x.com"
    assert db.users[0]["plan_expires_at"] is not None


def test_repeat_signup_is_rejected(client):
    client.post("/api/signup", json={"email": "a@x.com", "name": "Ann"})

    resp = client.post("/api/signup", json={"email": " A@X.com ", "name": "Ann Again"})

    assert resp.status_code == 400
    assert "already exists" in resp.json()["detail"]


@pytest.mark.parametrize("body", [
    {},
    {"email": "a@x.com"},
    {"name": "Ann"},
    {"email": "   ", "name": "Ann"},
    {"email": "not-an-email", "name": "Ann"},
])
def test_signup_validation(client, body):
    resp = client.post("/api/signup", json=body)
    assert resp.status_code == 400


def test_alias_collisions_get_a_counter(client):
    client.post("/api/signup", json={"email": "a@x.com", "name": "Ann"})
    resp = client.post("/api/signup", json={"email": "b@x.com", "name": "ANN!"})

    assert resp.json()["user"]["inbound_email"] == "ann1@save.steep.news"


def test_alias_falls_back_to_random_suffix(db):
    add_user(db, email="0@x.com", inbound_email="ann@save.steep.news")
    for i in range(1, 101):
        add_user(db, email=f"{i}@x.com", inbound_email=f"ann{i}@save.steep.news")

    alias = generate_unique_alias(db, "Ann", "save.steep.news")

    assert alias.startswith("ann")
    assert alias.endswith("@save.steep.news")
    assert len(alias.split("@")[0]) == len("ann") + 4


@pytest.mark.parametrize("name, expected", [
    ("Ann", "ann"),
    ("Mary-Jane O'Neil", "maryjaneoneil"),
    ("Bartholomew Maximilian Fitzgerald", "bartholomewmaximilia"),
    ("你好", "user"),
])
def test_alias_base(name, expected):
    assert alias_base(name) == expected


@pytest.mark.parametrize("user, active", [
    ({"plan": "monthly"}, True),
    ({"plan": "lifetime"}, True),
    ({"plan": "cancelled"}, False),
    ({"plan": "trial", "plan_expires_at": (NOW + timedelta(days=1)).isoformat()}, True),
    ({"plan": "trial", "plan_expires_at": (NOW - timedelta(days=1)).isoformat()}, False),
    ({"plan": "trial", "plan_expires_at": None}, True),
])
def test_is_plan_active(user, active):
    assert is_plan_active(user, NOW) is active


def test_get_settings(client, db):
    user = add_user(db)

    resp = client.get("/api/user/settings", params={"user_id": user["id"]})

    assert resp.status_code == 200
    assert resp.json()["user"]["inbound_email"] == "ann@save.steep.news"


def test_get_settings_errors(client):
    assert client.get("/api/user/settings").status_code == 400
    assert client.get("/api/user/settings", params={"user_id": "missing"}).status_code == 404


def test_update_settings(client, db):
    user = add_user(db)

    resp = client.put("/api/user/settings", json={"user_id": user["id"], "digest_day": "Monday", "name": " Annie "})

    assert resp.status_code == 200
    assert db.users[0]["digest_day"] == "monday"
    assert db.users[0]["name"] == "Annie"


@pytest.mark.parametrize("body, status", [
    ({"digest_day": "monday"}, 400),
    ({"user_id": "USER", "digest_day": "funday"}, 400),
    ({"user_id": "USER", "name": "  "}, 400),
    ({"user_id": "USER"}, 400),
    ({"user_id": "missing", "digest_day": "monday"}, 404),
])
def test_update_settings_errors(client, db, body, status):
    user = add_user(db)
    if body.get("user_id") == "USER":
        body = {**body, "user_id": user["id"]}

    assert client.put("/api/user/settings", json=body).status_code == status
