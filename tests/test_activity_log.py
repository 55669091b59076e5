"""Tests for the activity log endpoints."""

import json
from datetime import datetime, timedelta

import pytz

import api.routes.auth as auth_routes
from config import DEFAULT_ADMIN_EMAIL, DEFAULT_ADMIN_PASSWORD

LOG_URL = "/api/logging"


def test_login_is_logged(client, admin_headers):
    r = client.get(f"{LOG_URL}/activity", params={"user_action": "LOGIN"}, headers=admin_headers)
    assert r.status_code == 200
    data = r.json()
    assert data["pagination"]["total"] == 1
    log = data["logs"][0]
    assert log["user_id"] == 1
    assert log["user_email"] == "admin@employdex.com"
    assert log["entity_type"] == "user"
    assert log["user_ip_address"] == "testclient"


def test_changes_are_logged_with_details(client, admin_headers, make_user):
    user, _ = make_user("logged@example.com", roles=["Reviewer"])

    r = client.get(
        f"{LOG_URL}/activity",
        params={"user_action": "USER_CREATED", "entity_type": "user"},
        headers=admin_headers,
    )
    log = r.json()["logs"][0]
    assert log["user_id"] == 1
    assert log["entity_id"] == str(user["user_id"])
    details = json.loads(log["activity_details"])
    assert details["user_email"] == "logged@example.com"
    assert details["roles"] == ["Reviewer"]


def test_self_registration_is_attributed_to_new_user(client, admin_headers):
    r = client.post(
        "/api/authentication/register",
        json={
            "user_email": "self@example.com",
            "password": "Password1!",
            "first_name": "Self",
            "last_name": "Made",
        },
    )
    new_id = r.json()["user_id"]
    r = client.get(
        f"{LOG_URL}/activity", params={"user_action": "USER_REGISTERED"}, headers=admin_headers
    )
    assert r.json()["logs"][0]["user_id"] == new_id


def test_filters_and_pagination(client, admin_headers, make_user):
    make_user("a@example.com")
    make_user("b@example.com")

    r = client.get(f"{LOG_URL}/activity", params={"user_id": 1}, headers=admin_headers)
    assert {log["user_id"] for log in r.json()["logs"]} == {1}

    r = client.get(f"{LOG_URL}/activity", params={"limit": 2}, headers=admin_headers)
    data = r.json()
    assert len(data["logs"]) == 2
    assert data["pagination"]["total"] >= 5

    assert client.get(f"{LOG_URL}/activity", params={"limit": 101}, headers=admin_headers).status_code == 400


def test_date_range(client, admin_headers):
    today = datetime.now(pytz.utc).date()
    tomorrow = today + timedelta(days=1)

    r = client.get(
        f"{LOG_URL}/activity",
        params={"start_date": today.isoformat(), "end_date": today.isoformat()},
        headers=admin_headers,
    )
    assert r.json()["pagination"]["total"] >= 1

    r = client.get(
        f"{LOG_URL}/activity", params={"start_date": tomorrow.isoformat()}, headers=admin_headers
    )
    assert r.json()["pagination"]["total"] == 0

    r = client.get(f"{LOG_URL}/activity", params={"start_date": "yesterday"}, headers=admin_headers)
    assert r.status_code == 400


def test_action_and_entity_types(client, admin_headers, make_user):
    make_user("types@example.com")

    actions = client.get(f"{LOG_URL}/actions", headers=admin_headers).json()["actionTypes"]
    assert "LOGIN" in actions
    assert "USER_CREATED" in actions
    assert actions == sorted(actions)

    entities = client.get(f"{LOG_URL}/entities", headers=admin_headers).json()["entityTypes"]
    assert entities == ["user"]


def test_stats(client, admin_headers, make_user):
    make_user("stats@example.com")

    r = client.get(f"{LOG_URL}/stats", headers=admin_headers)
    assert r.status_code == 200
    stats = r.json()
    assert stats["actionCounts"]["LOGIN"] == 2
    assert stats["actionCounts"]["USER_CREATED"] == 1

    today = datetime.now(pytz.utc).date().isoformat()
    assert [d["date"] for d in stats["dailyActivity"]] == [today]
    assert stats["dailyActivity"][0]["count"] == sum(stats["actionCounts"].values())

    top = stats["topUsers"][0]
    assert top["user_id"] == 1
    assert top["activity_count"] == 2


def test_activity_view_required(client, user_headers):
    assert client.get(f"{LOG_URL}/activity", headers=user_headers).status_code == 403
    assert client.get(f"{LOG_URL}/stats", headers=user_headers).status_code == 403


def _login_from(client, forwarded_for):
    r = client.post(
        "/api/authentication/login",
        json={"username": DEFAULT_ADMIN_EMAIL, "password": DEFAULT_ADMIN_PASSWORD},
        headers={"X-Forwarded-For": forwarded_for},
    )
    assert r.status_code == 200
    return {"Authorization": f"Bearer {r.json()['access_token']}"}


def _last_login_ip(client, headers):
    r = client.get(f"{LOG_URL}/activity", params={"user_action": "LOGIN", "limit": 1}, headers=headers)
    return r.json()["logs"][0]["user_ip_address"]


def test_forwarded_for_is_ignored_by_default(client):
    headers = _login_from(client, "203.0.113.9")
    assert _last_login_ip(client, headers) == "testclient"


def test_forwarded_for_is_used_behind_trusted_proxy(client, monkeypatch):
    monkeypatch.setattr(auth_routes, "TRUST_PROXY_HEADERS", True)
    headers = _login_from(client, "203.0.113.9, 10.0.0.1")
    assert _last_login_ip(client, headers) == "203.0.113.9"
