"""Default data: permissions, roles, question and review statuses, transitions and the admin user.

``seed_defaults`` is idempotent; it only inserts what is missing.
"""

import logging
from typing import Dict, List, Tuple

from sqlalchemy.orm import Session

from config import (
    ADMIN_ROLE_NAME,
    DEFAULT_ADMIN_EMAIL,
    DEFAULT_ADMIN_MOBILE,
    DEFAULT_ADMIN_PASSWORD,
    DEFAULT_ROLE_NAME,
    REVIEWER_ROLE_NAME,
)
from core.security import hash_password
from models.question_status import QuestionStatusModel, QuestionStatusTransitionModel
from models.review import ReviewStatusModel
from models.role import PermissionModel, RoleModel, RolePermissionLinkModel, RoleUserLinkModel
from models.user import UserModel

logger = logging.getLogger(__name__)

DEFAULT_PERMISSIONS: List[Tuple[str, str]] = [
    ("user_view", "View users"),
    ("user_create", "Create users"),
    ("user_edit", "Edit users"),
    ("user_delete", "Delete users"),
    ("role_view", "View roles"),
    ("role_create", "Create roles"),
    ("role_edit", "Edit roles"),
    ("role_delete", "Delete roles"),
    ("permission_view", "View permissions"),
    ("permission_assign", "Assign permissions to roles"),
    ("employee_view", "View employees"),
    ("employee_create", "Create employees"),
    ("employee_edit", "Edit employees"),
    ("employee_delete", "Deactivate employees"),
    ("question_view", "View questions"),
    ("question_create", "Create questions"),
    ("question_edit", "Edit any question"),
    ("question_delete", "Delete any question"),
    ("category_view", "View question categories"),
    ("category_create", "Create question categories"),
    ("category_edit", "Edit question categories and move their questions"),
    ("category_delete", "Delete question categories"),
    ("review_view", "View question reviews"),
    ("review_create", "Open question reviews"),
    ("review_edit", "Change the status of question reviews"),
    ("review_comment", "Comment on question reviews"),
    ("review_assign", "Assign question reviews and see every review"),
    ("activity_view", "View activity logs"),
    ("feature_request_manage", "Review and manage feature requests"),
]

# role name -> (description, is_system, permission names)
DEFAULT_ROLES: Dict[str, Tuple[str, bool, List[str]]] = {
    ADMIN_ROLE_NAME: ("System administrator with full access", True, []),
    DEFAULT_ROLE_NAME: (
        "Standard user",
        True,
        ["question_view", "question_create", "category_view"],
    ),
    REVIEWER_ROLE_NAME: (
        "Reviews and approves questions",
        False,
        [
            "question_view",
            "question_create",
            "question_edit",
            "category_view",
            "review_view",
            "review_create",
            "review_edit",
            "review_comment",
        ],
    ),
}

# (name, display name, description, is_default)
DEFAULT_STATUSES: List[Tuple[str, str, str, bool]] = [
    ("draft", "Draft", "Question is being written", True),
    ("pending_review", "Pending Review", "Question is waiting for review", False),
    ("approved", "Approved", "Question has been approved", False),
    ("rejected", "Rejected", "Question has been rejected", False),
    ("needs_revision", "Needs Revision", "Question needs changes before approval", False),
]

# (name, display name, is_closing)
DEFAULT_REVIEW_STATUSES: List[Tuple[str, str, bool]] = [
    ("pending", "Pending", False),
    ("in_progress", "In Progress", False),
    ("approved", "Approved", True),
    ("rejected", "Rejected", True),
]

_REVIEW_TRANSITIONS = [
    ("pending_review", "approved"),
    ("pending_review", "rejected"),
    ("pending_review", "needs_revision"),
]

# role name -> allowed (from, to) status pairs
DEFAULT_TRANSITIONS: Dict[str, List[Tuple[str, str]]] = {
    DEFAULT_ROLE_NAME: [
        ("draft", "pending_review"),
        ("needs_revision", "pending_review"),
    ],
    REVIEWER_ROLE_NAME: list(_REVIEW_TRANSITIONS),
    ADMIN_ROLE_NAME: _REVIEW_TRANSITIONS + [
        ("rejected", "draft"),
        ("approved", "draft"),
    ],
}


def _seed_permissions(db: Session) -> Dict[str, PermissionModel]:
    existing = {p.permission_name: p for p in db.query(PermissionModel).all()}
    for name, description in DEFAULT_PERMISSIONS:
        if name not in existing:
            permission = PermissionModel(permission_name=name, permission_description=description)
            db.add(permission)
            existing[name] = permission
    db.flush()
    return existing


def _seed_roles(db: Session, permissions: Dict[str, PermissionModel]) -> Dict[str, RoleModel]:
    roles = {r.role_name: r for r in db.query(RoleModel).all()}
    for name, (description, is_system, permission_names) in DEFAULT_ROLES.items():
        created = name not in roles
        if created:
            roles[name] = RoleModel(role_name=name, role_description=description, is_system=is_system)
            db.add(roles[name])
            db.flush()
        role = roles[name]

        linked = {
            permission_id
            for (permission_id,) in db.query(RolePermissionLinkModel.permission_id)
            .filter(RolePermissionLinkModel.role_id == role.role_id)
            .all()
        }
        if name == ADMIN_ROLE_NAME:
            # Admin always holds every permission, including ones added later
            wanted = [p.permission_id for p in permissions.values()]
        elif created:
            wanted = [permissions[p].permission_id for p in permission_names]
        else:
            wanted = []
        for permission_id in wanted:
            if permission_id not in linked:
                db.add(RolePermissionLinkModel(role_id=role.role_id, permission_id=permission_id))
    db.flush()
    return roles


def _seed_statuses(db: Session) -> Dict[str, QuestionStatusModel]:
    statuses = {s.name: s for s in db.query(QuestionStatusModel).all()}
    has_default = any(s.is_default for s in statuses.values())
    for name, display_name, description, is_default in DEFAULT_STATUSES:
        if name not in statuses:
            statuses[name] = QuestionStatusModel(
                name=name,
                display_name=display_name,
                description=description,
                is_default=is_default and not has_default,
            )
            db.add(statuses[name])
    db.flush()
    return statuses


def _seed_transitions(
    db: Session, roles: Dict[str, RoleModel], statuses: Dict[str, QuestionStatusModel]
) -> None:
    existing = {
        (t.from_status_id, t.to_status_id, t.role_id)
        for t in db.query(QuestionStatusTransitionModel).all()
    }
    for role_name, pairs in DEFAULT_TRANSITIONS.items():
        role = roles[role_name]
        for from_name, to_name in pairs:
            key = (statuses[from_name].status_id, statuses[to_name].status_id, role.role_id)
            if key not in existing:
                db.add(
                    QuestionStatusTransitionModel(
                        from_status_id=key[0], to_status_id=key[1], role_id=key[2]
                    )
                )
                existing.add(key)
    db.flush()


def _seed_review_statuses(db: Session) -> None:
    existing = {name for (name,) in db.query(ReviewStatusModel.name).all()}
    for name, display_name, is_closing in DEFAULT_REVIEW_STATUSES:
        if name not in existing:
            db.add(ReviewStatusModel(name=name, display_name=display_name, is_closing=is_closing))
    db.flush()


def _seed_admin(db: Session, admin_role: RoleModel) -> None:
    if db.query(UserModel).filter(UserModel.user_email == DEFAULT_ADMIN_EMAIL).first():
        return
    admin = UserModel(
        user_email=DEFAULT_ADMIN_EMAIL,
        mobile_number=DEFAULT_ADMIN_MOBILE,
        first_name="System",
        last_name="Administrator",
        password_hash=hash_password(DEFAULT_ADMIN_PASSWORD),
        is_active=True,
    )
    db.add(admin)
    db.flush()
    db.add(RoleUserLinkModel(user_id=admin.user_id, role_id=admin_role.role_id))
    logger.info("Created default admin user: %s", DEFAULT_ADMIN_EMAIL)


def seed_defaults(db: Session) -> None:
    """Insert whatever default rows are missing, then commit."""
    permissions = _seed_permissions(db)
    roles = _seed_roles(db, permissions)
    statuses = _seed_statuses(db)
    _seed_transitions(db, roles, statuses)
    _seed_review_statuses(db)
    _seed_admin(db, roles[ADMIN_ROLE_NAME])
    db.commit()
    logger.info("Default data seeded")
