"""Activity log schema definitions."""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from schemas.common import Pagination


class ActivityLogOut(BaseModel):
    log_id: int
    user_id: Optional[int] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    user_email: Optional[str] = None
    user_action: str
    entity_type: Optional[str] = None
    entity_id: Optional[str] = None
    activity_details: Optional[str] = None
    user_ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: str


class ActivityLogPage(BaseModel):
    logs: List[ActivityLogOut]
    pagination: Pagination


class ActionTypesResponse(BaseModel):
    actionTypes: List[str]


class EntityTypesResponse(BaseModel):
    entityTypes: List[str]


class DailyActivity(BaseModel):
    date: str
    count: int


class TopUser(BaseModel):
    user_id: int
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    user_email: Optional[str] = None
    activity_count: int


class ActivityStats(BaseModel):
    actionCounts: Dict[str, int] = Field(default_factory=dict)
    dailyActivity: List[DailyActivity] = Field(default_factory=list)
    topUsers: List[TopUser] = Field(default_factory=list)
