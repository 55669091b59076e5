"""Activity logging utilities.

The activity log is an append-only trail of user actions. ``ActivityLogger``
adds rows to the caller's session without committing, so the log entry is
written in the same transaction as the change it records.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from sqlalchemy.orm import Session

from models.activity_log import ActivityLogModel

logger = logging.getLogger(__name__)


@dataclass
class ActorContext:
    """Who performed an action and from where."""

    user_id: Optional[int]
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


class ActivityLogger:
    """Writes activity log rows into an existing session."""

    def __init__(self, db: Session):
        self.db = db

    def record(
        self,
        actor: Optional[ActorContext],
        action: str,
        *,
        entity_type: Optional[str] = None,
        entity_id: Optional[Any] = None,
        details: Optional[Union[str, Dict[str, Any]]] = None,
    ) -> ActivityLogModel:
        """Add one activity row to the session.

        Args:
            actor: Acting user and request origin; None for system actions.
            action: Upper-case action name, e.g. ``USER_CREATED``.
            entity_type: Kind of record affected, e.g. ``user``.
            entity_id: Identifier of the affected record.
            details: Free text or a dict (stored as JSON).

        Returns:
            The pending ActivityLogModel; committed by the caller.
        """
        if isinstance(details, dict):
            details = json.dumps(details, sort_keys=True, default=str)
        entry = ActivityLogModel(
            user_id=actor.user_id if actor else None,
            user_action=action,
            entity_type=entity_type,
            entity_id=str(entity_id) if entity_id is not None else None,
            activity_details=details,
            user_ip_address=actor.ip_address if actor else None,
            user_agent=actor.user_agent if actor else None,
        )
        self.db.add(entry)
        logger.debug("Activity %s on %s %s", action, entity_type, entity_id)
        return entry
