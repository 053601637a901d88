"""Similarity pattern store tests."""

import pytest
from pydantic import ValidationError as SchemaValidationError

from categorizer.core.exceptions import NotFoundError, ValidationError
from categorizer.schemas.similarity_pattern import (
    SimilarityPatternCreate,
    SimilarityPatternUpdate,
)
from categorizer.services.rule_service import RuleService
from tests.helpers import make_category, make_parent, make_pattern


@pytest.mark.asyncio
async def test_list_is_in_matching_order(db):
    grocery = await make_category(db, "Grocery")
    low = await make_pattern(db, "ALDI", category=grocery, confidence_score=0.5)
    high = await make_pattern(db, "TESCO", category=grocery, confidence_score=0.9)
    high_too = await make_pattern(db, "LIDL", category=grocery, confidence_score=0.9)
    service = RuleService(db)
    await service.increment_usage(high_too.id)

    patterns = await service.list_patterns()

    assert [p.id for p in patterns] == [high_too.id, high.id, low.id]


@pytest.mark.asyncio
async def test_list_with_category_only(db):
    food = await make_parent(db, "Food")
    grocery = await make_category(db, "Grocery", food)
    concrete = await make_pattern(db, "TESCO", category=grocery)
    await make_pattern(db, "RESTAURANT", parent=food)

    patterns = await RuleService(db).list_patterns(with_category_only=True)

    assert [p.id for p in patterns] == [concrete.id]


@pytest.mark.asyncio
async def test_create_update_delete(db):
    grocery = await make_category(db, "Grocery")
    service = RuleService(db)

    pattern = await service.create_pattern(
        SimilarityPatternCreate(pattern_value="TESCO", category_id=grocery.id)
    )
    assert pattern.pattern_type == "contains"
    assert pattern.usage_count == 0

    updated = await service.update_pattern(
        pattern.id, SimilarityPatternUpdate(pattern_type="starts_with", confidence_score=0.7)
    )
    assert updated.pattern_type == "starts_with"
    assert updated.confidence_score == 0.7

    await service.delete_pattern(pattern.id)
    with pytest.raises(NotFoundError):
        await service.get_pattern(pattern.id)


@pytest.mark.asyncio
async def test_create_requires_existing_target(db):
    service = RuleService(db)
    with pytest.raises(NotFoundError):
        await service.create_pattern(
            SimilarityPatternCreate(pattern_value="TESCO", category_id=999)
        )
    with pytest.raises(SchemaValidationError):
        SimilarityPatternCreate(pattern_value="TESCO")


@pytest.mark.asyncio
async def test_update_cannot_drop_every_target(db):
    grocery = await make_category(db, "Grocery")
    pattern = await make_pattern(db, "TESCO", category=grocery)

    with pytest.raises(ValidationError):
        await RuleService(db).update_pattern(
            pattern.id, SimilarityPatternUpdate(category_id=None)
        )


@pytest.mark.asyncio
async def test_increment_usage(db):
    grocery = await make_category(db, "Grocery")
    pattern = await make_pattern(db, "TESCO", category=grocery)
    service = RuleService(db)

    await service.increment_usage(pattern.id)
    await service.increment_usage(pattern.id)

    await db.refresh(pattern)
    assert pattern.usage_count == 2
    assert await service.count_for_category(grocery.id) == 1
