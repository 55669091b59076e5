"""Feature request utilities."""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from core.exceptions import NotFoundError, ValidationError
from models.feature_request import FeatureRequestModel
from utils.activity_logger import ActivityLogger, ActorContext

logger = logging.getLogger(__name__)

DENIED = "denied"


class FeatureRequestManager:
    """Manages feature requests submitted by users."""

    def __init__(self, db: Session):
        self.db = db
        self.activity = ActivityLogger(db)

    def get_feature_request(self, feature_request_id: int) -> FeatureRequestModel:
        model = (
            self.db.query(FeatureRequestModel)
            .filter(FeatureRequestModel.feature_request_id == feature_request_id)
            .first()
        )
        if model is None:
            raise NotFoundError("Feature request", feature_request_id)
        return model

    def create_feature_request(
        self, data: Dict[str, Any], actor: ActorContext
    ) -> FeatureRequestModel:
        model = FeatureRequestModel(
            main_function=data["main_function"],
            sub_function=data.get("sub_function"),
            feature_name=data["feature_name"],
            feature_description=data["feature_description"],
            benefits=data.get("benefits"),
            priority=data["priority"],
            requested_by_user_id=actor.user_id,
        )
        self.db.add(model)
        self.db.flush()
        self.activity.record(
            actor,
            "FEATURE_REQUEST_CREATED",
            entity_type="feature_request",
            entity_id=model.feature_request_id,
            details={"feature_name": model.feature_name},
        )
        self.db.commit()
        self.db.refresh(model)
        logger.info("Feature request %s submitted by user %s", model.feature_request_id, actor.user_id)
        return model

    def list_for_user(self, user_id: int) -> List[FeatureRequestModel]:
        return (
            self.db.query(FeatureRequestModel)
            .filter(FeatureRequestModel.requested_by_user_id == user_id)
            .order_by(FeatureRequestModel.created_at.desc())
            .all()
        )

    def list_all(self, status: Optional[str] = None) -> List[FeatureRequestModel]:
        query = self.db.query(FeatureRequestModel)
        if status:
            query = query.filter(FeatureRequestModel.status == status)
        return query.order_by(FeatureRequestModel.created_at.desc()).all()

    def update_feature_request(
        self,
        feature_request_id: int,
        changes: Dict[str, Any],
        actor: Optional[ActorContext] = None,
    ) -> FeatureRequestModel:
        """Update status, priority or denial reason.

        Raises:
            ValidationError: If nothing is updated or a denial has no reason.
            NotFoundError: If the request does not exist.
        """
        updates = {k: v for k, v in changes.items() if v is not None}
        if not updates:
            raise ValidationError("No valid fields to update")

        model = self.get_feature_request(feature_request_id)
        new_status = updates.get("status", model.status)
        denial_reason = updates.get("denial_reason", model.denial_reason)
        if new_status == DENIED and not (denial_reason or "").strip():
            raise ValidationError(
                "A denial reason is required when denying a request",
                errors=[{"field": "denial_reason", "message": "Denial reason is required"}],
            )

        for field, value in updates.items():
            setattr(model, field, value)
        self.activity.record(
            actor,
            "FEATURE_REQUEST_UPDATED",
            entity_type="feature_request",
            entity_id=feature_request_id,
            details=updates,
        )
        self.db.commit()
        self.db.refresh(model)
        return model
