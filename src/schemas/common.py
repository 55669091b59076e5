"""Shared response shapes: pagination and bulk import results."""

from typing import List

from pydantic import BaseModel, Field


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class BulkImportRowError(BaseModel):
    """A single rejected CSV row."""

    row: int = Field(description="1-based data row number (header excluded).")
    line: int = Field(description="Line number in the uploaded file (header is line 1).")
    error: str


class BulkImportResult(BaseModel):
    successful: int = 0
    failed: int = 0
    errors: List[BulkImportRowError] = Field(default_factory=list)


class MessageResponse(BaseModel):
    message: str


def total_pages(total: int, limit: int) -> int:
    """Number of pages needed to show ``total`` rows ``limit`` at a time."""
    if limit <= 0:
        return 0
    return (total + limit - 1) // limit
