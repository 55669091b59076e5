"""Question category and tag schema definitions."""

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class CategoryOut(BaseModel):
    category_id: int
    name: str
    description: Optional[str] = None
    parent_id: Optional[int] = None
    parent_name: Optional[str] = None
    is_active: bool
    questions_count: int = 0
    children_count: int = 0
    created_by: Optional[int] = None
    updated_by: Optional[int] = None
    created_at: str
    updated_at: str
    children: Optional[List["CategoryOut"]] = Field(
        default=None,
        description="Only filled in when the list is requested as a tree.",
    )


class CategoryListResponse(BaseModel):
    count: int
    categories: List[CategoryOut]


class CreateCategoryRequest(BaseModel):
    name: str = Field(min_length=2, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    parent_id: Optional[int] = Field(default=None, ge=1)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 2:
            raise ValueError("Category name must be between 2 and 100 characters")
        return v


class UpdateCategoryRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    parent_id: Optional[int] = Field(
        default=None,
        ge=1,
        description="Send null explicitly to make the category a root category.",
    )
    is_active: Optional[bool] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if len(v) < 2:
            raise ValueError("Category name must be between 2 and 100 characters")
        return v


class MoveQuestionsRequest(BaseModel):
    target_category_id: Optional[int] = Field(
        default=None,
        ge=1,
        description="Destination category; null leaves the questions uncategorized.",
    )


class MoveQuestionsResponse(BaseModel):
    message: str
    moved: int


class TopCategory(BaseModel):
    category_id: int
    name: str
    question_count: int


class CategoryStatistics(BaseModel):
    total_categories: int
    root_categories: int
    subcategories: int
    questions_with_category: int
    questions_without_category: int
    top_category: Optional[TopCategory] = None


class TagOut(BaseModel):
    tag_id: int
    name: str


class TagWithCountOut(TagOut):
    question_count: int
    created_at: str


class CreateTagRequest(BaseModel):
    name: str = Field(min_length=1, max_length=50)

    @field_validator("name")
    @classmethod
    def normalize_name(cls, v: str) -> str:
        v = v.strip().lower()
        if not v:
            raise ValueError("Tag name cannot be blank")
        return v
