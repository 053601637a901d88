"""Batch auto-categorization of uncategorized transactions."""

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from categorizer.models.category import Category
from categorizer.models.transaction import Transaction
from categorizer.models.transaction_category import TransactionCategory
from categorizer.services.categorization_state import CategorizationStateMachine
from categorizer.services.pattern_matcher import RuleSet
from categorizer.services.rule_service import RuleService

logger = structlog.get_logger()


class AutoCategorizer:
    """Runs every rule with a concrete category over unlinked transactions.

    Each transaction is handled in its own savepoint: one failure is logged
    and the scan moves on. Running it again only looks at transactions that
    are still unlinked, so an interrupted run can simply be repeated.
    """

    def __init__(
        self,
        db: AsyncSession,
        rule_store: RuleService | None = None,
        state_machine: CategorizationStateMachine | None = None,
    ):
        self.db = db
        self.rule_store = rule_store or RuleService(db)
        self.state = state_machine or CategorizationStateMachine(db)

    async def _uncategorized(self) -> list[Transaction]:
        result = await self.db.execute(
            select(Transaction)
            .outerjoin(
                TransactionCategory,
                TransactionCategory.transaction_id == Transaction.id,
            )
            .where(TransactionCategory.id.is_(None))
            .order_by(Transaction.id)
        )
        return list(result.scalars().all())

    async def run_once(self) -> dict:
        """Returns {categorized, total}."""
        transactions = await self._uncategorized()
        # Rows are read once up front so a rolled-back item can't expire them mid-scan
        work = [(txn.id, txn.description1) for txn in transactions]

        rules = await self.rule_store.list_patterns(with_category_only=True)
        if not rules:
            logger.info("auto_categorize_skipped", reason="no_rules", total=len(work))
            return {"categorized": 0, "total": len(work)}

        rule_set = RuleSet(rules)
        categories: dict[int, Category | None] = {}

        categorized = 0
        for transaction_id, description in work:
            if not description or not description.strip():
                continue

            match = rule_set.best_match(description)
            if match is None:
                continue

            try:
                if match.category_id not in categories:
                    categories[match.category_id] = await self.db.get(Category, match.category_id)
                category = categories[match.category_id]
                if category is None:
                    continue

                async with self.db.begin_nested():
                    if await self.state.assign_propagated(transaction_id, category):
                        await self.rule_store.increment_usage(match.pattern_id)
                        categorized += 1
            except SQLAlchemyError:
                logger.exception(
                    "auto_categorize_item_failed",
                    transaction_id=transaction_id,
                    pattern_id=match.pattern_id,
                )

        logger.info(
            "auto_categorize_finished",
            rules=len(rule_set),
            categorized=categorized,
            total=len(work),
        )
        return {"categorized": categorized, "total": len(work)}
