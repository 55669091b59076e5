"""Question bank schema definitions."""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from schemas.common import Pagination
from schemas.question_category import TagOut

QuestionType = Literal[
    "multiple_choice",
    "true_false",
    "short_answer",
    "essay",
    "matching",
    "fill_blank",
]

DifficultyLevel = Literal["easy", "medium", "hard"]


class QuestionOptionIn(BaseModel):
    text: str = Field(min_length=1, max_length=2000)
    is_correct: bool = False


class QuestionOptionOut(BaseModel):
    option_id: int
    text: str
    is_correct: bool
    order: int


class QuestionOut(BaseModel):
    question_id: int
    question_text: str
    question_type: str
    difficulty_level: str
    explanation: Optional[str] = None
    status_id: int
    status_name: str
    status_display_name: str
    category_id: Optional[int] = None
    category_name: Optional[str] = None
    tags: List[TagOut] = Field(default_factory=list)
    created_by: Optional[int] = None
    updated_by: Optional[int] = None
    upvote_count: int
    downvote_count: int
    version_count: int = 0
    options: List[QuestionOptionOut] = Field(default_factory=list)
    created_at: str
    updated_at: str


class QuestionListResponse(BaseModel):
    questions: List[QuestionOut]
    pagination: Pagination


class CreateQuestionRequest(BaseModel):
    question_text: str = Field(min_length=10, max_length=5000)
    question_type: QuestionType
    difficulty_level: DifficultyLevel
    explanation: Optional[str] = Field(default=None, max_length=5000)
    options: List[QuestionOptionIn] = Field(default_factory=list)
    category_id: Optional[int] = Field(default=None, ge=1)
    tag_ids: List[int] = Field(default_factory=list)


class UpdateQuestionRequest(BaseModel):
    question_text: Optional[str] = Field(default=None, min_length=10, max_length=5000)
    question_type: Optional[QuestionType] = None
    difficulty_level: Optional[DifficultyLevel] = None
    explanation: Optional[str] = Field(default=None, max_length=5000)
    options: Optional[List[QuestionOptionIn]] = Field(
        default=None,
        description="When present, replaces all options.",
    )
    category_id: Optional[int] = Field(
        default=None,
        ge=1,
        description="Send null explicitly to remove the question from its category.",
    )
    tag_ids: Optional[List[int]] = Field(
        default=None,
        description="When present, replaces all tags.",
    )
    change_summary: Optional[str] = Field(default=None, max_length=500)


class QuestionVersionOut(BaseModel):
    version_id: int
    question_id: int
    version_number: int
    snapshot: Dict[str, Any]
    change_summary: Optional[str] = None
    created_by: Optional[int] = None
    created_at: str


class QuestionStatistics(BaseModel):
    total: int
    by_status: Dict[str, int]
    by_type: Dict[str, int]
    by_difficulty: Dict[str, int]


class CommentOut(BaseModel):
    comment_id: int
    question_id: int
    user_id: Optional[int] = None
    author_name: Optional[str] = None
    comment_text: str
    upvote_count: int
    downvote_count: int
    created_at: str
    updated_at: str


class CreateCommentRequest(BaseModel):
    comment_text: str = Field(min_length=1, max_length=2000)
