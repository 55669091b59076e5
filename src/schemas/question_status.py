"""Question status workflow schema definitions."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from schemas.common import Pagination


class QuestionStatusOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    status_id: int
    name: str
    display_name: str
    description: Optional[str] = None
    is_active: bool
    is_default: bool
    created_at: str
    updated_at: str


class CreateQuestionStatusRequest(BaseModel):
    name: str = Field(min_length=2, max_length=50, pattern=r"^[a-z0-9_]+$")
    display_name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    is_active: bool = True
    is_default: bool = False


class UpdateQuestionStatusRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=50, pattern=r"^[a-z0-9_]+$")
    display_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    is_active: Optional[bool] = None
    is_default: Optional[bool] = None


class TransitionOut(BaseModel):
    transition_id: int
    from_status_id: int
    from_status_name: str
    to_status_id: int
    to_status_name: str
    to_status_display_name: str
    role_id: int
    role_name: str
    is_active: bool


class CreateTransitionRequest(BaseModel):
    from_status_id: int = Field(ge=1)
    to_status_id: int = Field(ge=1)
    role_id: int = Field(ge=1)


class UpdateQuestionStatusBody(BaseModel):
    to_status_id: int = Field(ge=1)
    comments: Optional[str] = Field(default=None, max_length=500)


class StatusHistoryOut(BaseModel):
    history_id: int
    question_id: int
    from_status_id: Optional[int] = None
    from_status_name: Optional[str] = None
    to_status_id: int
    to_status_name: str
    changed_by: Optional[int] = None
    changed_by_name: Optional[str] = None
    comments: Optional[str] = None
    created_at: str


class StatusHistoryPage(BaseModel):
    history: List[StatusHistoryOut]
    pagination: Pagination
