"""Tests for role management, permission management and the role/permission matrix."""

from utils.seed import DEFAULT_PERMISSIONS

ROLES_URL = "/api/role_management/roles"
PERMISSIONS_URL = "/api/permission_management/permissions"


def _permission_ids(client, headers):
    r = client.get(PERMISSIONS_URL, headers=headers)
    return {p["permission_name"]: p["permission_id"] for p in r.json()["permissions"]}


def _role_permission_names(client, headers, role_id):
    r = client.get(f"{ROLES_URL}/{role_id}", headers=headers)
    return sorted(p["permission_name"] for p in r.json()["permissions"])


class TestRoles:
    def test_default_roles(self, client, admin_headers):
        r = client.get(ROLES_URL, headers=admin_headers)
        assert r.status_code == 200
        roles = {role["role_name"]: role for role in r.json()["roles"]}
        assert {"Admin", "User", "Reviewer"} <= set(roles)
        assert roles["Admin"]["is_system"] is True
        assert roles["Admin"]["user_count"] == 1
        assert len(roles["Admin"]["permissions"]) == len(DEFAULT_PERMISSIONS)

    def test_role_detail_lists_users(self, client, admin_headers, role_ids):
        r = client.get(f"{ROLES_URL}/{role_ids['Admin']}", headers=admin_headers)
        assert r.status_code == 200
        assert [u["user_email"] for u in r.json()["users"]] == ["admin@employdex.com"]

    def test_create_role_with_permissions(self, client, admin_headers):
        perms = _permission_ids(client, admin_headers)
        r = client.post(
            ROLES_URL,
            json={
                "role_name": "Auditor",
                "role_description": "Reads activity",
                "permissions": [perms["activity_view"], perms["user_view"]],
            },
            headers=admin_headers,
        )
        assert r.status_code == 201
        role = r.json()
        assert role["is_system"] is False
        assert role["user_count"] == 0
        assert _role_permission_names(client, admin_headers, role["role_id"]) == [
            "activity_view",
            "user_view",
        ]

    def test_duplicate_role_name(self, client, admin_headers):
        r = client.post(ROLES_URL, json={"role_name": "Reviewer"}, headers=admin_headers)
        assert r.status_code == 409

    def test_unknown_permission_id(self, client, admin_headers):
        r = client.post(
            ROLES_URL, json={"role_name": "Broken", "permissions": [9999]}, headers=admin_headers
        )
        assert r.status_code == 400

    def test_update_role(self, client, admin_headers, role_ids):
        perms = _permission_ids(client, admin_headers)
        r = client.put(
            f"{ROLES_URL}/{role_ids['Reviewer']}",
            json={"role_name": "Senior Reviewer", "permissions": [perms["question_view"]]},
            headers=admin_headers,
        )
        assert r.status_code == 200
        assert r.json()["role_name"] == "Senior Reviewer"
        assert _role_permission_names(client, admin_headers, role_ids["Reviewer"]) == [
            "question_view"
        ]

    def test_system_role_cannot_be_renamed(self, client, admin_headers, role_ids):
        r = client.put(
            f"{ROLES_URL}/{role_ids['User']}",
            json={"role_name": "Member"},
            headers=admin_headers,
        )
        assert r.status_code == 403

    def test_system_role_cannot_be_deleted(self, client, admin_headers, role_ids):
        r = client.delete(f"{ROLES_URL}/{role_ids['Admin']}", headers=admin_headers)
        assert r.status_code == 403

    def test_role_with_users_cannot_be_deleted(self, client, admin_headers, role_ids, make_user):
        make_user("reviewer@example.com", roles=["Reviewer"])
        r = client.delete(f"{ROLES_URL}/{role_ids['Reviewer']}", headers=admin_headers)
        assert r.status_code == 409

    def test_delete_role(self, client, admin_headers, role_ids):
        r = client.delete(f"{ROLES_URL}/{role_ids['Reviewer']}", headers=admin_headers)
        assert r.status_code == 200
        assert client.get(f"{ROLES_URL}/{role_ids['Reviewer']}", headers=admin_headers).status_code == 404

    def test_role_view_required(self, client, user_headers):
        assert client.get(ROLES_URL, headers=user_headers).status_code == 403

    def test_bulk_import(self, client, admin_headers):
        content = (
            "role_name,role_description,permissions\n"
            "Auditor,Reads logs,activity_view;user_view;not_a_permission\n"
            "Reviewer,Duplicate,question_view\n"
            ",Missing name,\n"
        ).encode("utf-8")
        r = client.post(
            f"{ROLES_URL}/bulk",
            files={"file": ("roles.csv", content, "text/csv")},
            headers=admin_headers,
        )
        assert r.status_code == 200
        data = r.json()
        assert data["successful"] == 1
        assert data["failed"] == 2
        assert [e["line"] for e in data["errors"]] == [3, 4]

        roles = client.get(ROLES_URL, headers=admin_headers).json()["roles"]
        auditor = next(role for role in roles if role["role_name"] == "Auditor")
        assert sorted(p["permission_name"] for p in auditor["permissions"]) == [
            "activity_view",
            "user_view",
        ]

    def test_role_template(self, client, admin_headers):
        r = client.get(f"{ROLES_URL}/template", headers=admin_headers)
        assert r.status_code == 200
        assert r.text.strip() == "role_name,role_description,permissions"


class TestPermissions:
    def test_list_permissions(self, client, admin_headers):
        r = client.get(PERMISSIONS_URL, headers=admin_headers)
        assert r.status_code == 200
        data = r.json()
        assert data["count"] == len(DEFAULT_PERMISSIONS)
        by_name = {p["permission_name"]: p for p in data["permissions"]}
        # Admin, User and Reviewer all hold question_view
        assert by_name["question_view"]["role_count"] == 3

    def test_create_permission_is_granted_to_admin(self, client, admin_headers, role_ids):
        r = client.post(
            PERMISSIONS_URL,
            json={"permission_name": "report_export", "permission_description": "Export reports"},
            headers=admin_headers,
        )
        assert r.status_code == 201
        permission_id = r.json()["permission_id"]
        assert "report_export" in _role_permission_names(client, admin_headers, role_ids["Admin"])

        r = client.get(f"{PERMISSIONS_URL}/{permission_id}", headers=admin_headers)
        assert [role["role_name"] for role in r.json()["roles"]] == ["Admin"]

    def test_permission_name_format(self, client, admin_headers):
        r = client.post(
            PERMISSIONS_URL,
            json={"permission_name": "Report-Export", "permission_description": "Bad"},
            headers=admin_headers,
        )
        assert r.status_code == 400
        assert r.json()["errors"][0]["field"] == "permission_name"

    def test_duplicate_permission(self, client, admin_headers):
        r = client.post(
            PERMISSIONS_URL,
            json={"permission_name": "user_view", "permission_description": "Again"},
            headers=admin_headers,
        )
        assert r.status_code == 409

    def test_update_permission(self, client, admin_headers):
        perms = _permission_ids(client, admin_headers)
        r = client.put(
            f"{PERMISSIONS_URL}/{perms['user_view']}",
            json={"permission_description": "Browse users"},
            headers=admin_headers,
        )
        assert r.status_code == 200
        assert r.json()["permission_description"] == "Browse users"

        r = client.put(
            f"{PERMISSIONS_URL}/{perms['user_view']}",
            json={"permission_name": "user_edit"},
            headers=admin_headers,
        )
        assert r.status_code == 409

    def test_missing_permission(self, client, admin_headers):
        assert client.get(f"{PERMISSIONS_URL}/9999", headers=admin_headers).status_code == 404


class TestAssignment:
    def test_matrix(self, client, admin_headers, role_ids):
        r = client.get("/api/permission_management/roles-permissions", headers=admin_headers)
        assert r.status_code == 200
        data = r.json()
        assert len(data["permissions"]) == len(DEFAULT_PERMISSIONS)
        matrix = {entry["role_name"]: entry["permission_ids"] for entry in data["roles"]}
        assert len(matrix["Admin"]) == len(DEFAULT_PERMISSIONS)
        assert len(matrix["User"]) == 3

    def test_assign_replaces_permissions(self, client, admin_headers, role_ids, make_user):
        perms = _permission_ids(client, admin_headers)
        r = client.post(
            "/api/permission_management/assign",
            json={
                "role_id": role_ids["User"],
                "permission_ids": [perms["question_view"], perms["employee_view"]],
            },
            headers=admin_headers,
        )
        assert r.status_code == 200
        assert sorted(p["permission_name"] for p in r.json()["permissions"]) == [
            "employee_view",
            "question_view",
        ]

        # New tokens carry the new permission set
        _, headers = make_user("member@example.com", roles=["User"])
        assert client.get("/api/employees", headers=headers).status_code == 200
        r = client.post(
            "/api/questions",
            json={
                "question_text": "What is the capital of France?",
                "question_type": "short_answer",
                "difficulty_level": "easy",
            },
            headers=headers,
        )
        assert r.status_code == 403

    def test_admin_cannot_lose_permissions(self, client, admin_headers, role_ids):
        perms = _permission_ids(client, admin_headers)
        r = client.post(
            "/api/permission_management/assign",
            json={"role_id": role_ids["Admin"], "permission_ids": [perms["user_view"]]},
            headers=admin_headers,
        )
        assert r.status_code == 403
        names = _role_permission_names(client, admin_headers, role_ids["Admin"])
        assert len(names) == len(DEFAULT_PERMISSIONS)

    def test_assign_unknown_role(self, client, admin_headers):
        r = client.post(
            "/api/permission_management/assign",
            json={"role_id": 9999, "permission_ids": []},
            headers=admin_headers,
        )
        assert r.status_code == 404

    def test_assign_requires_permission(self, client, reviewer_headers, role_ids):
        r = client.post(
            "/api/permission_management/assign",
            json={"role_id": role_ids["User"], "permission_ids": []},
            headers=reviewer_headers,
        )
        assert r.status_code == 403
