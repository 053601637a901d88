"""Similarity pattern (rule) store.

Manages CRUD operations on rules and the usage counter the engine bumps
each time a rule categorizes a transaction.
"""

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from categorizer.core.exceptions import NotFoundError, ValidationError
from categorizer.models.category import Category, ParentCategory
from categorizer.models.similarity_pattern import SimilarityPattern
from categorizer.schemas.similarity_pattern import (
    SimilarityPatternCreate,
    SimilarityPatternUpdate,
)

logger = structlog.get_logger()


class RuleService:
    def __init__(self, db: AsyncSession):
        self.db = db

    # ── Queries ────────────────────────────────────────

    async def list_patterns(self, with_category_only: bool = False) -> list[SimilarityPattern]:
        """All rules in matching order: confidence desc, usage desc, id asc.

        ``with_category_only`` drops rules that only name a parent category
        (the batch categorizer cannot resolve those).
        """
        query = select(SimilarityPattern).order_by(
            SimilarityPattern.confidence_score.desc(),
            SimilarityPattern.usage_count.desc(),
            SimilarityPattern.id,
        )
        if with_category_only:
            query = query.where(SimilarityPattern.category_id.is_not(None))
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_pattern(self, pattern_id: int) -> SimilarityPattern:
        pattern = await self.db.get(SimilarityPattern, pattern_id, populate_existing=True)
        if not pattern:
            raise NotFoundError("SimilarityPattern")
        return pattern

    async def count_for_category(self, category_id: int) -> int:
        result = await self.db.execute(
            select(func.count(SimilarityPattern.id)).where(
                SimilarityPattern.category_id == category_id
            )
        )
        return result.scalar_one()

    async def count_for_parent(self, parent_category_id: int) -> int:
        result = await self.db.execute(
            select(func.count(SimilarityPattern.id)).where(
                SimilarityPattern.parent_category_id == parent_category_id
            )
        )
        return result.scalar_one()

    # ── CRUD ───────────────────────────────────────────

    async def create_pattern(self, data: SimilarityPatternCreate) -> SimilarityPattern:
        await self._check_targets(data.category_id, data.parent_category_id)

        pattern = SimilarityPattern(
            pattern_type=data.pattern_type,
            pattern_value=data.pattern_value,
            category_id=data.category_id,
            parent_category_id=data.parent_category_id,
            confidence_score=data.confidence_score,
            usage_count=0,
        )
        self.db.add(pattern)
        await self.db.flush()
        await self.db.refresh(pattern)

        logger.info(
            "pattern_created",
            pattern_id=pattern.id,
            pattern_type=pattern.pattern_type,
            category_id=pattern.category_id,
        )
        return pattern

    async def update_pattern(
        self, pattern_id: int, data: SimilarityPatternUpdate
    ) -> SimilarityPattern:
        pattern = await self.get_pattern(pattern_id)
        update_data = data.model_dump(exclude_unset=True)

        category_id = update_data.get("category_id", pattern.category_id)
        parent_category_id = update_data.get("parent_category_id", pattern.parent_category_id)
        if category_id is None and parent_category_id is None:
            raise ValidationError("A pattern needs a category or a parent category")
        await self._check_targets(
            update_data.get("category_id"), update_data.get("parent_category_id")
        )

        for key, value in update_data.items():
            setattr(pattern, key, value)
        await self.db.flush()
        await self.db.refresh(pattern)
        return pattern

    async def delete_pattern(self, pattern_id: int) -> None:
        pattern = await self.get_pattern(pattern_id)
        await self.db.delete(pattern)
        await self.db.flush()
        logger.info("pattern_deleted", pattern_id=pattern_id)

    async def increment_usage(self, pattern_id: int) -> None:
        """Bump the usage counter in the database, not on a loaded copy."""
        await self.db.execute(
            update(SimilarityPattern)
            .where(SimilarityPattern.id == pattern_id)
            .values(usage_count=SimilarityPattern.usage_count + 1)
            .execution_options(synchronize_session="fetch")
        )

    # ── Helpers ─────────────────────────────────────────

    async def _check_targets(
        self, category_id: int | None, parent_category_id: int | None
    ) -> None:
        if category_id is not None and not await self.db.get(Category, category_id):
            raise NotFoundError("Category")
        if parent_category_id is not None and not await self.db.get(
            ParentCategory, parent_category_id
        ):
            raise NotFoundError("ParentCategory")
