"""Tests for application-level behaviour: info routes, error handlers and seeding."""

from models.question_status import QuestionStatusModel, QuestionStatusTransitionModel
from models.review import ReviewStatusModel
from models.role import PermissionModel, RoleModel, RolePermissionLinkModel
from models.user import UserModel
from utils.feature_request_manager import FeatureRequestManager
from utils.seed import DEFAULT_PERMISSIONS, DEFAULT_REVIEW_STATUSES, seed_defaults


def test_root(client):
    r = client.get("/")
    assert r.status_code == 200
    assert r.json()["name"] == "EmployDEX Base API"
    assert r.json()["health"] == "/api/health"


def test_validation_errors_are_flattened(client, admin_headers):
    r = client.post("/api/user_management/users", json={}, headers=admin_headers)
    assert r.status_code == 400
    errors = r.json()["errors"]
    assert {"user_email", "password", "first_name", "last_name"} <= {e["field"] for e in errors}
    assert all(e["message"] for e in errors)


def test_unexpected_errors_are_hidden(client, user_headers, monkeypatch):
    def boom(self, user_id):
        raise RuntimeError("database exploded")

    monkeypatch.setattr(FeatureRequestManager, "list_for_user", boom)
    r = client.get("/api/feature-requests/mine", headers=user_headers)
    assert r.status_code == 500
    error = r.json()["error"]
    assert error["message"] == "An unexpected error occurred"
    assert len(error["id"]) == 32
    assert "exploded" not in r.text


def test_seed_is_idempotent(db):
    counts = (
        db.query(PermissionModel).count(),
        db.query(RoleModel).count(),
        db.query(RolePermissionLinkModel).count(),
        db.query(QuestionStatusModel).count(),
        db.query(QuestionStatusTransitionModel).count(),
        db.query(ReviewStatusModel).count(),
        db.query(UserModel).count(),
    )
    seed_defaults(db)
    assert counts == (
        db.query(PermissionModel).count(),
        db.query(RoleModel).count(),
        db.query(RolePermissionLinkModel).count(),
        db.query(QuestionStatusModel).count(),
        db.query(QuestionStatusTransitionModel).count(),
        db.query(ReviewStatusModel).count(),
        db.query(UserModel).count(),
    )
    assert counts[0] == len(DEFAULT_PERMISSIONS)
    assert counts[5] == len(DEFAULT_REVIEW_STATUSES)


def test_seed_grants_new_permissions_to_admin(db):
    db.add(PermissionModel(permission_name="report_export", permission_description="Export"))
    db.commit()
    seed_defaults(db)

    admin = db.query(RoleModel).filter(RoleModel.role_name == "Admin").one()
    assert "report_export" in {p.permission_name for p in admin.permissions}
