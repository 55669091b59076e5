"""Vote schema definitions."""

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from schemas.common import Pagination

TargetType = Literal["question", "comment"]
VoteType = Literal["upvote", "downvote"]


class CastVoteRequest(BaseModel):
    target_type: TargetType
    target_id: int = Field(ge=1)
    vote_type: VoteType


class VoteOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    vote_id: int
    target_type: str
    target_id: int
    user_id: int
    vote_type: str
    created_at: str
    updated_at: str


class VoteSummary(BaseModel):
    target_type: str
    target_id: int
    upvotes: int
    downvotes: int
    score: int
    user_vote: Optional[str] = None


class CastVoteResponse(BaseModel):
    action: Literal["added", "removed", "updated"]
    vote: Optional[VoteOut] = None
    summary: VoteSummary


class VotePage(BaseModel):
    votes: List[VoteOut]
    pagination: Pagination
