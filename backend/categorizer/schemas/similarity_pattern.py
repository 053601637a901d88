"""Similarity pattern (rule) schemas."""

from datetime import datetime

from pydantic import Field, model_validator

from categorizer.schemas.base import CamelModel
from categorizer.services.pattern_matcher import PatternType


class SimilarityPatternCreate(CamelModel):
    pattern_type: str = PatternType.CONTAINS.value  # exact, contains, starts_with, regex
    pattern_value: str = Field(min_length=1)
    category_id: int | None = None
    parent_category_id: int | None = None
    confidence_score: float = Field(default=1.0, ge=0.0)

    @model_validator(mode="after")
    def _requires_target(self):
        if self.category_id is None and self.parent_category_id is None:
            raise ValueError("categoryId or parentCategoryId is required")
        return self


class SimilarityPatternUpdate(CamelModel):
    pattern_type: str | None = None
    pattern_value: str | None = Field(default=None, min_length=1)
    category_id: int | None = None
    parent_category_id: int | None = None
    confidence_score: float | None = Field(default=None, ge=0.0)


class SimilarityPatternResponse(CamelModel):
    id: int
    pattern_type: str
    pattern_value: str
    category_id: int | None
    parent_category_id: int | None
    confidence_score: float
    usage_count: int
    created_at: datetime
    updated_at: datetime


class PatternMatchRequest(CamelModel):
    description: str


class PatternMatchResponse(CamelModel):
    matched: bool
    pattern_id: int | None = None
    category_id: int | None = None
    parent_category_id: int | None = None
    confidence_score: float | None = None
