"""Feature request schema definitions."""

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

Priority = Literal["low", "medium", "high"]
FeatureRequestStatus = Literal["pending", "under_review", "approved", "denied", "implemented"]


class FeatureRequestOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    feature_request_id: int
    main_function: str
    sub_function: Optional[str] = None
    feature_name: str
    feature_description: str
    benefits: Optional[str] = None
    priority: str
    status: str
    denial_reason: Optional[str] = None
    requested_by_user_id: Optional[int] = None
    created_at: str
    updated_at: str


class FeatureRequestListResponse(BaseModel):
    count: int
    feature_requests: List[FeatureRequestOut]


class CreateFeatureRequest(BaseModel):
    main_function: str = Field(min_length=1, max_length=100)
    sub_function: Optional[str] = Field(default=None, max_length=100)
    feature_name: str = Field(min_length=1, max_length=200)
    feature_description: str = Field(min_length=1, max_length=5000)
    benefits: Optional[str] = Field(default=None, max_length=5000)
    priority: Priority


class UpdateFeatureRequest(BaseModel):
    status: Optional[FeatureRequestStatus] = None
    priority: Optional[Priority] = None
    denial_reason: Optional[str] = Field(default=None, max_length=2000)
