"""Similarity pattern (categorization rule) API routes."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from categorizer.api.deps import get_db
from categorizer.schemas.similarity_pattern import (
    PatternMatchRequest,
    PatternMatchResponse,
    SimilarityPatternCreate,
    SimilarityPatternResponse,
    SimilarityPatternUpdate,
)
from categorizer.services.category_service import CategoryService
from categorizer.services.pattern_matcher import PatternMatcher
from categorizer.services.rule_service import RuleService

router = APIRouter()


@router.get("", response_model=list[SimilarityPatternResponse])
async def list_patterns(db: AsyncSession = Depends(get_db)):
    """List all patterns in the order the matcher considers them."""
    service = RuleService(db)
    return await service.list_patterns()


@router.post("", response_model=SimilarityPatternResponse, status_code=201)
async def create_pattern(
    data: SimilarityPatternCreate,
    db: AsyncSession = Depends(get_db),
):
    service = RuleService(db)
    return await service.create_pattern(data)


@router.post("/match", response_model=PatternMatchResponse)
async def match_description(
    data: PatternMatchRequest,
    db: AsyncSession = Depends(get_db),
):
    """Dry run: which pattern would categorize this description."""
    matcher = PatternMatcher(RuleService(db), CategoryService(db))
    match = await matcher.match(data.description)
    if match is None:
        return {"matched": False}
    return {
        "matched": True,
        "pattern_id": match.pattern_id,
        "category_id": match.category_id,
        "parent_category_id": match.parent_category_id,
        "confidence_score": match.confidence,
    }


@router.get("/{pattern_id}", response_model=SimilarityPatternResponse)
async def get_pattern(pattern_id: int, db: AsyncSession = Depends(get_db)):
    service = RuleService(db)
    return await service.get_pattern(pattern_id)


@router.patch("/{pattern_id}", response_model=SimilarityPatternResponse)
async def update_pattern(
    pattern_id: int,
    data: SimilarityPatternUpdate,
    db: AsyncSession = Depends(get_db),
):
    service = RuleService(db)
    return await service.update_pattern(pattern_id, data)


@router.delete("/{pattern_id}", status_code=204)
async def delete_pattern(pattern_id: int, db: AsyncSession = Depends(get_db)):
    service = RuleService(db)
    await service.delete_pattern(pattern_id)
