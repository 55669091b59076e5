"""Dependency injection module for FastAPI.

This module provides dependency injection functions for FastAPI routes.
Every manager is built around the request-scoped database session.
"""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.orm import Session

from core.database import get_db
from utils import activity_log_manager
from utils import auth_manager
from utils import category_manager
from utils import employee_manager
from utils import feature_request_manager
from utils import permission_manager
from utils import question_manager
from utils import question_status_manager
from utils import question_tag_manager
from utils import review_manager
from utils import role_manager
from utils import user_manager
from utils import vote_manager


def get_auth_manager(db: Session = Depends(get_db)) -> auth_manager.AuthManager:
    """Get AuthManager instance with request-scoped DB session.

    Args:
        db: Database session.

    Returns:
        AuthManager instance.
    """
    return auth_manager.AuthManager(db)


def get_user_manager(db: Session = Depends(get_db)) -> user_manager.UserManager:
    """Get UserManager instance with request-scoped DB session.

    Args:
        db: Database session.

    Returns:
        UserManager instance.
    """
    return user_manager.UserManager(db)


def get_role_manager(db: Session = Depends(get_db)) -> role_manager.RoleManager:
    """Get RoleManager instance with request-scoped DB session."""
    return role_manager.RoleManager(db)


def get_permission_manager(
    db: Session = Depends(get_db),
) -> permission_manager.PermissionManager:
    """Get PermissionManager instance with request-scoped DB session."""
    return permission_manager.PermissionManager(db)


def get_employee_manager(db: Session = Depends(get_db)) -> employee_manager.EmployeeManager:
    """Get EmployeeManager instance with request-scoped DB session."""
    return employee_manager.EmployeeManager(db)


def get_question_manager(db: Session = Depends(get_db)) -> question_manager.QuestionManager:
    """Get QuestionManager instance with request-scoped DB session."""
    return question_manager.QuestionManager(db)


def get_question_status_manager(
    db: Session = Depends(get_db),
) -> question_status_manager.QuestionStatusManager:
    """Get QuestionStatusManager instance with request-scoped DB session."""
    return question_status_manager.QuestionStatusManager(db)


def get_category_manager(db: Session = Depends(get_db)) -> category_manager.CategoryManager:
    """Get CategoryManager instance with request-scoped DB session."""
    return category_manager.CategoryManager(db)


def get_question_tag_manager(
    db: Session = Depends(get_db),
) -> question_tag_manager.QuestionTagManager:
    """Get QuestionTagManager instance with request-scoped DB session."""
    return question_tag_manager.QuestionTagManager(db)


def get_review_manager(db: Session = Depends(get_db)) -> review_manager.ReviewManager:
    """Get ReviewManager instance with request-scoped DB session."""
    return review_manager.ReviewManager(db)


def get_vote_manager(db: Session = Depends(get_db)) -> vote_manager.VoteManager:
    """Get VoteManager instance with request-scoped DB session."""
    return vote_manager.VoteManager(db)


def get_feature_request_manager(
    db: Session = Depends(get_db),
) -> feature_request_manager.FeatureRequestManager:
    """Get FeatureRequestManager instance with request-scoped DB session."""
    return feature_request_manager.FeatureRequestManager(db)


def get_activity_log_manager(
    db: Session = Depends(get_db),
) -> activity_log_manager.ActivityLogManager:
    """Get ActivityLogManager instance with request-scoped DB session."""
    return activity_log_manager.ActivityLogManager(db)


# Type aliases for dependency injection
AuthManagerDep = Annotated[auth_manager.AuthManager, Depends(get_auth_manager)]
UserManagerDep = Annotated[user_manager.UserManager, Depends(get_user_manager)]
RoleManagerDep = Annotated[role_manager.RoleManager, Depends(get_role_manager)]
PermissionManagerDep = Annotated[
    permission_manager.PermissionManager, Depends(get_permission_manager)
]
EmployeeManagerDep = Annotated[
    employee_manager.EmployeeManager, Depends(get_employee_manager)
]
QuestionManagerDep = Annotated[
    question_manager.QuestionManager, Depends(get_question_manager)
]
QuestionStatusManagerDep = Annotated[
    question_status_manager.QuestionStatusManager,
    Depends(get_question_status_manager),
]
CategoryManagerDep = Annotated[
    category_manager.CategoryManager, Depends(get_category_manager)
]
QuestionTagManagerDep = Annotated[
    question_tag_manager.QuestionTagManager, Depends(get_question_tag_manager)
]
ReviewManagerDep = Annotated[review_manager.ReviewManager, Depends(get_review_manager)]
VoteManagerDep = Annotated[vote_manager.VoteManager, Depends(get_vote_manager)]
FeatureRequestManagerDep = Annotated[
    feature_request_manager.FeatureRequestManager,
    Depends(get_feature_request_manager),
]
ActivityLogManagerDep = Annotated[
    activity_log_manager.ActivityLogManager, Depends(get_activity_log_manager)
]
