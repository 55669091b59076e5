"""Database models.

Importing this package registers every table with ``Base.metadata``.
"""

from .base import Base
from .user import UserModel
from .role import PermissionModel, RoleModel, RolePermissionLinkModel, RoleUserLinkModel
from .refresh_token import RefreshTokenModel
from .employee import EmployeeModel, EmployeeRoleModel
from .question_status import (
    QuestionStatusHistoryModel,
    QuestionStatusModel,
    QuestionStatusTransitionModel,
)
from .question_category import QuestionCategoryModel, QuestionTagModel, question_tag_links
from .question import QuestionModel, QuestionOptionModel, QuestionVersionModel
from .comment import CommentModel
from .vote import VoteModel
from .feature_request import FeatureRequestModel
from .activity_log import ActivityLogModel
from .review import (
    ReviewAssignmentModel,
    ReviewCommentModel,
    ReviewHistoryModel,
    ReviewModel,
    ReviewStatusModel,
)

__all__ = [
    "Base",
    "UserModel",
    "RoleModel",
    "PermissionModel",
    "RolePermissionLinkModel",
    "RoleUserLinkModel",
    "RefreshTokenModel",
    "EmployeeModel",
    "EmployeeRoleModel",
    "QuestionStatusModel",
    "QuestionStatusTransitionModel",
    "QuestionStatusHistoryModel",
    "QuestionModel",
    "QuestionOptionModel",
    "QuestionVersionModel",
    "QuestionCategoryModel",
    "QuestionTagModel",
    "question_tag_links",
    "CommentModel",
    "VoteModel",
    "FeatureRequestModel",
    "ActivityLogModel",
    "ReviewStatusModel",
    "ReviewModel",
    "ReviewHistoryModel",
    "ReviewCommentModel",
    "ReviewAssignmentModel",
]
