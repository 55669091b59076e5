"""Question review schema definitions."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from schemas.common import Pagination


class ReviewStatusOut(BaseModel):
    status_id: int
    name: str
    display_name: str
    is_closing: bool


class ReviewHistoryOut(BaseModel):
    history_id: int
    status_id: Optional[int] = None
    status_name: Optional[str] = None
    changed_by: Optional[int] = None
    comments: Optional[str] = None
    created_at: str


class ReviewCommentOut(BaseModel):
    comment_id: int
    review_id: int
    user_id: Optional[int] = None
    user_email: Optional[str] = None
    author_name: Optional[str] = None
    comment_text: str
    created_at: str


class ReviewAssignmentOut(BaseModel):
    assignment_id: int
    user_id: int
    user_email: str
    assigned_by: Optional[int] = None
    is_active: bool
    assigned_at: str


class ReviewOut(BaseModel):
    review_id: int
    question_id: int
    question_text: str
    category_name: Optional[str] = None
    status_id: int
    status_name: str
    created_by: Optional[int] = None
    created_by_email: Optional[str] = None
    assigned_to: Optional[int] = None
    assigned_to_email: Optional[str] = None
    updated_by: Optional[int] = None
    notes: Optional[str] = None
    priority: int
    due_date: Optional[str] = None
    is_active: bool
    created_at: str
    updated_at: str


class ReviewDetailOut(ReviewOut):
    history: List[ReviewHistoryOut] = Field(default_factory=list)
    comments: List[ReviewCommentOut] = Field(default_factory=list)
    assignments: List[ReviewAssignmentOut] = Field(default_factory=list)


class ReviewListResponse(BaseModel):
    reviews: List[ReviewOut]
    pagination: Pagination


class CreateReviewRequest(BaseModel):
    question_id: int = Field(ge=1)
    assigned_to: Optional[int] = Field(default=None, ge=1)
    notes: Optional[str] = Field(default=None, max_length=5000)
    priority: int = Field(default=2, ge=1, le=3, description="1 (low) to 3 (high).")
    due_date: Optional[datetime] = None


class UpdateReviewStatusRequest(BaseModel):
    status_id: int = Field(ge=1)
    comment: Optional[str] = Field(default=None, max_length=1000)


class ReviewCommentRequest(BaseModel):
    comment: str = Field(min_length=1, max_length=1000)


class AssignReviewRequest(BaseModel):
    user_id: int = Field(ge=1)


class ReviewStatistics(BaseModel):
    total_reviews: int
    pending_reviews: int
    in_progress_reviews: int
    approved_reviews: int
    rejected_reviews: int
    reviewers_count: int
    avg_days_to_resolution: Optional[float] = None
