"""Tests for employee records and employee role assignments."""

import pytest

EMPLOYEES_URL = "/api/employees"


@pytest.fixture()
def employee(client, admin_headers, make_user):
    user, _ = make_user("staff@example.com", first_name="Sam", last_name="Staff")
    r = client.post(
        EMPLOYEES_URL,
        json={
            "user_id": user["user_id"],
            "department": "Engineering",
            "position": "Developer",
            "hire_date": "2024-03-01",
        },
        headers=admin_headers,
    )
    assert r.status_code == 201, r.text
    return r.json()


def test_create_employee(employee):
    assert employee["first_name"] == "Sam"
    assert employee["user_email"] == "staff@example.com"
    assert employee["hire_date"] == "2024-03-01"
    assert employee["is_active"] is True
    assert employee["roles"] == []


def test_unknown_user_is_rejected(client, admin_headers):
    r = client.post(EMPLOYEES_URL, json={"user_id": 999}, headers=admin_headers)
    assert r.status_code == 400


def test_user_can_only_be_employee_once(client, admin_headers, employee):
    r = client.post(EMPLOYEES_URL, json={"user_id": employee["user_id"]}, headers=admin_headers)
    assert r.status_code == 409


def test_invalid_hire_date(client, admin_headers, make_user):
    user, _ = make_user("late@example.com")
    r = client.post(
        EMPLOYEES_URL,
        json={"user_id": user["user_id"], "hire_date": "not-a-date"},
        headers=admin_headers,
    )
    assert r.status_code == 400
    assert r.json()["errors"][0]["field"] == "hire_date"


def test_list_and_filter(client, admin_headers, employee):
    r = client.get(EMPLOYEES_URL, headers=admin_headers)
    assert r.json()["count"] == 1

    r = client.get(EMPLOYEES_URL, params={"department": "Sales"}, headers=admin_headers)
    assert r.json()["count"] == 0


def test_update_employee(client, admin_headers, employee):
    r = client.put(
        f"{EMPLOYEES_URL}/{employee['employee_id']}",
        json={"position": "Lead Developer"},
        headers=admin_headers,
    )
    assert r.status_code == 200
    assert r.json()["position"] == "Lead Developer"
    assert r.json()["department"] == "Engineering"


def test_deactivate_keeps_record(client, admin_headers, employee):
    employee_id = employee["employee_id"]
    r = client.delete(f"{EMPLOYEES_URL}/{employee_id}", headers=admin_headers)
    assert r.status_code == 200

    r = client.get(f"{EMPLOYEES_URL}/{employee_id}", headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["is_active"] is False

    r = client.get(EMPLOYEES_URL, params={"isActive": "true"}, headers=admin_headers)
    assert r.json()["count"] == 0


def test_missing_employee(client, admin_headers):
    assert client.get(f"{EMPLOYEES_URL}/999", headers=admin_headers).status_code == 404


def test_role_assignment_lifecycle(client, admin_headers, employee, role_ids):
    url = f"{EMPLOYEES_URL}/{employee['employee_id']}/roles"
    reviewer_id = role_ids["Reviewer"]

    r = client.post(url, json={"role_id": reviewer_id}, headers=admin_headers)
    assert r.status_code == 201
    first = r.json()
    assert first["role_name"] == "Reviewer"
    assert first["assigned_by"] == 1

    r = client.get(url, headers=admin_headers)
    assert [a["role_id"] for a in r.json()] == [reviewer_id]

    assert client.delete(f"{url}/{reviewer_id}", headers=admin_headers).status_code == 200
    assert client.get(url, headers=admin_headers).json() == []
    assert client.delete(f"{url}/{reviewer_id}", headers=admin_headers).status_code == 404

    # Re-assigning reactivates the same row
    r = client.post(url, json={"role_id": reviewer_id}, headers=admin_headers)
    assert r.status_code == 201
    assert r.json()["employee_role_id"] == first["employee_role_id"]
    assert r.json()["is_active"] is True


def test_assign_unknown_role(client, admin_headers, employee):
    r = client.post(
        f"{EMPLOYEES_URL}/{employee['employee_id']}/roles",
        json={"role_id": 999},
        headers=admin_headers,
    )
    assert r.status_code == 404


def test_employee_permissions_required(client, user_headers):
    assert client.get(EMPLOYEES_URL, headers=user_headers).status_code == 403
    assert client.post(EMPLOYEES_URL, json={"user_id": 1}, headers=user_headers).status_code == 403
