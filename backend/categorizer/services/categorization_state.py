"""Categorization state machine.

Every write to a transaction's category link and categorization status goes
through here. Allowed transitions::

    none   -> manual   direct assignment
    none   -> auto     propagation / rule match
    auto   -> manual   direct assignment
    manual -> manual   direct assignment (re-categorize)
    *      -> none     removal

Propagation never touches ``manual`` or ``auto`` rows. The guard is a single
conditional UPDATE, so two concurrent propagations cannot both win.
"""

from dataclasses import dataclass

import structlog
from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from categorizer.models.category import Category
from categorizer.models.transaction import CategorizationStatus, Transaction
from categorizer.models.transaction_category import TransactionCategory

logger = structlog.get_logger()


@dataclass(frozen=True)
class CategorizationPatch:
    """The only fields of a transaction the engine is allowed to change."""

    status: CategorizationStatus
    category_id: int | None


CLEARED = CategorizationPatch(status=CategorizationStatus.NONE, category_id=None)


class CategorizationStateMachine:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def current_status(self, transaction_id: int) -> CategorizationStatus | None:
        """Status as stored right now, bypassing any loaded instance."""
        result = await self.db.execute(
            select(Transaction.categorization_status).where(
                Transaction.id == transaction_id
            )
        )
        return result.scalar_one_or_none()

    async def retract_link(self, transaction_id: int) -> int:
        result = await self.db.execute(
            delete(TransactionCategory)
            .where(TransactionCategory.transaction_id == transaction_id)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount

    async def _create_link(
        self, transaction_id: int, category: Category
    ) -> TransactionCategory:
        link = TransactionCategory(
            transaction_id=transaction_id,
            category_id=category.id,
            parent_category_id=category.parent_id,
        )
        self.db.add(link)
        await self.db.flush()
        return link

    async def _apply(
        self,
        transaction_id: int,
        patch: CategorizationPatch,
        only_if: CategorizationStatus | None = None,
    ) -> bool:
        stmt = update(Transaction).where(Transaction.id == transaction_id)
        if only_if is not None:
            stmt = stmt.where(Transaction.categorization_status == only_if)
        result = await self.db.execute(
            stmt.values(
                categorization_status=patch.status,
                category_id=patch.category_id,
            ).execution_options(synchronize_session="fetch")
        )
        return result.rowcount == 1

    # ── Transitions ────────────────────────────────────

    async def assign_direct(
        self, transaction_id: int, category: Category
    ) -> TransactionCategory:
        """User-initiated assignment. Legal from any state, ends in ``manual``."""
        retracted = await self.retract_link(transaction_id)
        link = await self._create_link(transaction_id, category)
        await self._apply(
            transaction_id,
            CategorizationPatch(status=CategorizationStatus.MANUAL, category_id=category.id),
        )
        logger.info(
            "category_assigned",
            transaction_id=transaction_id,
            category_id=category.id,
            replaced=retracted > 0,
        )
        return link

    async def assign_propagated(self, transaction_id: int, category: Category) -> bool:
        """Rule- or similarity-driven assignment; only from ``none``.

        Returns ``False`` without touching anything when the transaction
        already has a category. Runs inside a savepoint so a failed link
        insert also undoes the status change.
        """
        async with self.db.begin_nested():
            claimed = await self._apply(
                transaction_id,
                CategorizationPatch(status=CategorizationStatus.AUTO, category_id=category.id),
                only_if=CategorizationStatus.NONE,
            )
            if not claimed:
                return False
            await self._create_link(transaction_id, category)

        logger.debug(
            "category_propagated",
            transaction_id=transaction_id,
            category_id=category.id,
        )
        return True

    async def remove(self, transaction_id: int, category_id: int | None = None) -> bool:
        """Drop the category link and reset to ``none``.

        With ``category_id`` only a link to that category is removed.
        Returns whether a link existed.
        """
        stmt = delete(TransactionCategory).where(
            TransactionCategory.transaction_id == transaction_id
        )
        if category_id is not None:
            stmt = stmt.where(TransactionCategory.category_id == category_id)
        result = await self.db.execute(
            stmt.execution_options(synchronize_session="fetch")
        )
        if result.rowcount == 0:
            return False

        await self._apply(transaction_id, CLEARED)
        logger.info(
            "category_removed",
            transaction_id=transaction_id,
            category_id=category_id,
        )
        return True
