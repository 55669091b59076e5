"""Read side of the activity log: filtered listing and statistics."""

import logging
from datetime import date, datetime, time, timedelta
from typing import Any, Dict, List, Optional, Tuple

import pytz
from sqlalchemy import func
from sqlalchemy.orm import Session

from core.exceptions import ValidationError
from models.activity_log import ActivityLogModel
from models.user import UserModel

logger = logging.getLogger(__name__)

DAILY_ACTIVITY_DAYS = 7
TOP_USERS_LIMIT = 5


def _parse_bound(value: str) -> datetime:
    try:
        if len(value) == 10:
            parsed = datetime.combine(date.fromisoformat(value), time.min)
        else:
            parsed = datetime.fromisoformat(value)
    except ValueError as e:
        raise ValidationError(
            f"Invalid date: {value}",
            errors=[{"field": "date", "message": "Use YYYY-MM-DD or an ISO timestamp"}],
        ) from e
    if parsed.tzinfo is None:
        parsed = pytz.utc.localize(parsed)
    return parsed.astimezone(pytz.utc)


def _lower_bound(value: str) -> str:
    return _parse_bound(value).isoformat()


def _upper_bound(value: str) -> str:
    """Exclusive upper bound; a bare date covers its whole day."""
    parsed = _parse_bound(value)
    if len(value) == 10:
        parsed += timedelta(days=1)
    else:
        parsed += timedelta(microseconds=1)
    return parsed.isoformat()


class ActivityLogManager:
    """Queries over activity_logs."""

    def __init__(self, db: Session):
        self.db = db

    def list_logs(
        self,
        user_action: Optional[str] = None,
        user_id: Optional[int] = None,
        entity_type: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        page: int = 1,
        limit: int = 50,
    ) -> Tuple[List[ActivityLogModel], int]:
        """List activity, newest first.

        Args:
            user_action: Exact action name.
            user_id: Acting user.
            entity_type: Kind of affected record.
            start_date: Inclusive lower bound (ISO date or datetime).
            end_date: Inclusive upper bound; a bare date covers the whole day.
            page: 1-based page number.
            limit: Page size.

        Returns:
            Tuple of (logs on the page, total matching).
        """
        query = self.db.query(ActivityLogModel)
        if user_action:
            query = query.filter(ActivityLogModel.user_action == user_action)
        if user_id is not None:
            query = query.filter(ActivityLogModel.user_id == user_id)
        if entity_type:
            query = query.filter(ActivityLogModel.entity_type == entity_type)
        if start_date:
            query = query.filter(ActivityLogModel.created_at >= _lower_bound(start_date))
        if end_date:
            query = query.filter(ActivityLogModel.created_at < _upper_bound(end_date))

        total = query.count()
        logs = (
            query.order_by(ActivityLogModel.created_at.desc(), ActivityLogModel.log_id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return logs, total

    def action_types(self) -> List[str]:
        rows = (
            self.db.query(ActivityLogModel.user_action)
            .distinct()
            .order_by(ActivityLogModel.user_action)
            .all()
        )
        return [action for (action,) in rows]

    def entity_types(self) -> List[str]:
        rows = (
            self.db.query(ActivityLogModel.entity_type)
            .filter(ActivityLogModel.entity_type.isnot(None))
            .distinct()
            .order_by(ActivityLogModel.entity_type)
            .all()
        )
        return [entity_type for (entity_type,) in rows]

    def stats(self) -> Dict[str, Any]:
        """Action counts, per-day activity of the last week and the most active users."""
        action_counts = dict(
            self.db.query(ActivityLogModel.user_action, func.count(ActivityLogModel.log_id))
            .group_by(ActivityLogModel.user_action)
            .all()
        )

        since = (datetime.now(pytz.utc) - timedelta(days=DAILY_ACTIVITY_DAYS)).isoformat()
        day = func.substr(ActivityLogModel.created_at, 1, 10)
        daily = (
            self.db.query(day.label("date"), func.count(ActivityLogModel.log_id))
            .filter(ActivityLogModel.created_at >= since)
            .group_by(day)
            .order_by(day)
            .all()
        )

        activity_count = func.count(ActivityLogModel.log_id).label("activity_count")
        top_users = (
            self.db.query(
                UserModel.user_id,
                UserModel.first_name,
                UserModel.last_name,
                UserModel.user_email,
                activity_count,
            )
            .join(ActivityLogModel, ActivityLogModel.user_id == UserModel.user_id)
            .group_by(
                UserModel.user_id,
                UserModel.first_name,
                UserModel.last_name,
                UserModel.user_email,
            )
            .order_by(activity_count.desc(), UserModel.user_id)
            .limit(TOP_USERS_LIMIT)
            .all()
        )

        return {
            "actionCounts": action_counts,
            "dailyActivity": [{"date": day_value, "count": count} for day_value, count in daily],
            "topUsers": [
                {
                    "user_id": row.user_id,
                    "first_name": row.first_name,
                    "last_name": row.last_name,
                    "user_email": row.user_email,
                    "activity_count": row.activity_count,
                }
                for row in top_users
            ],
        }
