"""User-initiated category assignment with optional propagation.

Assigning a category to one transaction can relabel look-alike transactions
that are still uncategorized and dated on or after it. Transactions the user
already categorized, or that a rule already labelled, are left alone.
"""

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from categorizer.config import settings
from categorizer.core.exceptions import NotFoundError
from categorizer.models.category import Category
from categorizer.models.transaction import CategorizationStatus, Transaction
from categorizer.services.categorization_state import CategorizationStateMachine
from categorizer.services.similarity import SimilarityFinder
from categorizer.utils.dates import parse_transaction_date

logger = structlog.get_logger()


class AssignmentService:
    def __init__(
        self,
        db: AsyncSession,
        similarity_finder: SimilarityFinder | None = None,
        state_machine: CategorizationStateMachine | None = None,
        forward_only: bool | None = None,
    ):
        self.db = db
        self.similarity_finder = similarity_finder or SimilarityFinder(db)
        self.state = state_machine or CategorizationStateMachine(db)
        self.forward_only = (
            settings.propagate_forward_only if forward_only is None else forward_only
        )

    async def assign(
        self,
        transaction_id: int,
        category_id: int,
        apply_to_similar: bool = False,
    ) -> dict:
        """Assign ``category_id`` to a transaction as a manual decision.

        Returns {transaction_id, category_id, assignment_id,
        similar_transactions_updated}.
        """
        transaction = await self.db.get(Transaction, transaction_id, populate_existing=True)
        if not transaction:
            raise NotFoundError("Transaction")
        category = await self.db.get(Category, category_id)
        if not category:
            raise NotFoundError("Category")

        link = await self.state.assign_direct(transaction.id, category)
        assignment_id = link.id

        updated = 0
        if apply_to_similar:
            updated = await self._propagate(transaction, category)

        logger.info(
            "assignment_completed",
            transaction_id=transaction_id,
            category_id=category_id,
            apply_to_similar=apply_to_similar,
            similar_transactions_updated=updated,
        )
        return {
            "transaction_id": transaction_id,
            "category_id": category_id,
            "assignment_id": assignment_id,
            "similar_transactions_updated": updated,
        }

    async def _propagate(self, reference: Transaction, category: Category) -> int:
        reference_id, category_id = reference.id, category.id
        reference_date = parse_transaction_date(reference.transaction_date)
        candidates = await self.similarity_finder.find_similar(reference)

        updated = 0
        for candidate in candidates:
            candidate_id = candidate.id
            if candidate_id == reference_id:
                continue
            if not self._is_eligible_date(reference_date, candidate):
                continue

            # The candidate list may be stale; trust the stored status only
            status = await self.state.current_status(candidate_id)
            if status != CategorizationStatus.NONE:
                continue

            try:
                if await self.state.assign_propagated(candidate_id, category):
                    updated += 1
            except SQLAlchemyError:
                logger.exception(
                    "propagation_failed",
                    reference_id=reference_id,
                    transaction_id=candidate_id,
                    category_id=category_id,
                )
        return updated

    def _is_eligible_date(self, reference_date, candidate: Transaction) -> bool:
        if not self.forward_only:
            return True
        candidate_date = parse_transaction_date(candidate.transaction_date)
        if reference_date is None or candidate_date is None:
            return False
        return candidate_date >= reference_date
