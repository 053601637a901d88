"""Transaction management service: search, creation, import, deletion."""

from datetime import date
from math import ceil

import structlog
from sqlalchemy import delete, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from categorizer.config import settings
from categorizer.core.exceptions import NotFoundError
from categorizer.models.category import Category
from categorizer.models.transaction import CategorizationStatus, Transaction
from categorizer.models.transaction_category import TransactionCategory
from categorizer.schemas.transaction import TransactionCreate
from categorizer.services.categorization_state import CategorizationStateMachine
from categorizer.services.category_service import CategoryService
from categorizer.services.pattern_matcher import PatternMatcher, RuleSet
from categorizer.services.rule_service import RuleService
from categorizer.services.similarity import SimilarityFinder, escape_like
from categorizer.utils.dates import parse_transaction_date

logger = structlog.get_logger()

# Fields copied verbatim from the request; everything else is engine-owned
_IMPORT_FIELDS = (
    "account_number",
    "transaction_date",
    "description1",
    "description2",
    "description3",
    "debit_amount",
    "credit_amount",
    "balance",
    "currency",
    "transaction_type",
    "local_currency_amount",
    "local_currency",
)


def _same(column, value):
    return column.is_(None) if value is None else column == value


class TransactionService:
    def __init__(
        self,
        db: AsyncSession,
        matcher: PatternMatcher | None = None,
        state_machine: CategorizationStateMachine | None = None,
        rule_store: RuleService | None = None,
    ):
        self.db = db
        self.rule_store = rule_store or RuleService(db)
        self.matcher = matcher or PatternMatcher(self.rule_store, CategoryService(db))
        self.state = state_machine or CategorizationStateMachine(db)

    # ── Queries ────────────────────────────────────────

    async def list_transactions(
        self,
        page: int = 1,
        per_page: int = 50,
        search: str | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
        status: CategorizationStatus | None = None,
    ) -> dict:
        """List transactions with pagination and filters.

        Dates are stored as the bank's text, so the date range is applied
        after parsing; rows whose date can't be parsed are left out of any
        ranged query.
        """
        query = select(Transaction)
        if search:
            pattern = f"%{escape_like(search)}%"
            query = query.where(
                or_(
                    Transaction.description1.ilike(pattern, escape="\\"),
                    Transaction.description2.ilike(pattern, escape="\\"),
                    Transaction.description3.ilike(pattern, escape="\\"),
                )
            )
        if status is not None:
            query = query.where(Transaction.categorization_status == status)

        result = await self.db.execute(query.order_by(Transaction.id))
        transactions = list(result.scalars().all())

        if date_from or date_to:
            transactions = [
                txn
                for txn in transactions
                if self._in_range(parse_transaction_date(txn.transaction_date), date_from, date_to)
            ]

        total = len(transactions)
        offset = (page - 1) * per_page
        return {
            "data": transactions[offset : offset + per_page],
            "meta": {
                "total": total,
                "page": page,
                "per_page": per_page,
                "pages": ceil(total / per_page) if per_page else 0,
            },
        }

    async def get_transaction(self, transaction_id: int) -> Transaction:
        txn = await self.db.get(Transaction, transaction_id, populate_existing=True)
        if not txn:
            raise NotFoundError("Transaction")
        return txn

    async def find_similar(self, transaction_id: int) -> list[Transaction]:
        """Preview which transactions a propagation from this one would consider."""
        txn = await self.get_transaction(transaction_id)
        similar = await SimilarityFinder(self.db).find_similar(txn)
        return [candidate for candidate in similar if candidate.id != txn.id]

    async def find_duplicate(self, data: TransactionCreate) -> Transaction | None:
        """An existing row with the same account, date, description and amounts."""
        result = await self.db.execute(
            select(Transaction)
            .where(
                Transaction.account_number == data.account_number,
                Transaction.transaction_date == data.transaction_date,
                Transaction.description1 == data.description1,
                _same(Transaction.debit_amount, data.debit_amount),
                _same(Transaction.credit_amount, data.credit_amount),
            )
            .order_by(Transaction.id)
            .limit(1)
        )
        return result.scalar_one_or_none()

    # ── Mutations ──────────────────────────────────────

    async def create(
        self,
        data: TransactionCreate,
        auto_apply_categories: bool | None = None,
    ) -> Transaction:
        """Create one transaction.

        An explicit ``category_id`` is a manual decision and skips the rules.
        Otherwise, with ``auto_apply_categories``, the best matching rule is
        applied. A duplicate of an existing row returns that row unchanged.
        """
        if auto_apply_categories is None:
            auto_apply_categories = settings.auto_apply_categories_default

        category = None
        if data.category_id is not None:
            category = await self.db.get(Category, data.category_id)
            if not category:
                raise NotFoundError("Category")

        existing = await self.find_duplicate(data)
        if existing:
            logger.info("transaction_duplicate_skipped", transaction_id=existing.id)
            return existing

        txn = await self._insert(data)
        if category is not None:
            await self.state.assign_direct(txn.id, category)
        elif auto_apply_categories:
            rule_set = await self.matcher.load()
            await self._auto_apply(txn.id, txn.description1, rule_set)

        await self.db.refresh(txn)
        return txn

    async def import_batch(
        self,
        rows: list[TransactionCreate],
        auto_apply_categories: bool | None = None,
    ) -> dict:
        """Insert many transactions, skipping duplicates.

        Each row gets its own savepoint; a failing row is counted in
        ``errors`` and the rest of the batch still goes in.

        Returns {total, added, duplicates, categorized, errors}.
        """
        if auto_apply_categories is None:
            auto_apply_categories = settings.auto_apply_categories_default

        rule_set = await self.matcher.load() if auto_apply_categories else None
        added = duplicates = categorized = errors = 0

        for index, row in enumerate(rows):
            category = None
            if row.category_id is not None:
                category = await self.db.get(Category, row.category_id)
                if not category:
                    logger.warning(
                        "import_row_unknown_category", row=index, category_id=row.category_id
                    )
                    errors += 1
                    continue

            try:
                async with self.db.begin_nested():
                    if await self.find_duplicate(row):
                        duplicates += 1
                        continue
                    txn = await self._insert(row)
                    transaction_id, description = txn.id, txn.description1
                    if category is not None:
                        await self.state.assign_direct(transaction_id, category)
                added += 1
            except SQLAlchemyError:
                logger.exception("import_row_failed", row=index)
                errors += 1
                continue

            if category is None and rule_set is not None:
                if await self._auto_apply(transaction_id, description, rule_set):
                    categorized += 1

        logger.info(
            "transactions_imported",
            total=len(rows),
            added=added,
            duplicates=duplicates,
            categorized=categorized,
            errors=errors,
        )
        return {
            "total": len(rows),
            "added": added,
            "duplicates": duplicates,
            "categorized": categorized,
            "errors": errors,
        }

    async def delete_transaction(self, transaction_id: int) -> None:
        """Hard-delete a transaction together with its category link."""
        txn = await self.get_transaction(transaction_id)
        await self.db.execute(
            delete(TransactionCategory)
            .where(TransactionCategory.transaction_id == transaction_id)
            .execution_options(synchronize_session="fetch")
        )
        await self.db.delete(txn)
        await self.db.flush()
        logger.info("transaction_deleted", transaction_id=transaction_id)

    # ── Helpers ─────────────────────────────────────────

    async def _insert(self, data: TransactionCreate) -> Transaction:
        txn = Transaction(
            **{field: getattr(data, field) for field in _IMPORT_FIELDS},
            categorization_status=CategorizationStatus.NONE,
        )
        self.db.add(txn)
        await self.db.flush()
        return txn

    async def _auto_apply(
        self, transaction_id: int, description: str | None, rule_set: RuleSet
    ) -> bool:
        match = rule_set.best_match(description)
        if match is None:
            return False
        category = await self.db.get(Category, match.category_id)
        if category is None:
            return False

        try:
            async with self.db.begin_nested():
                applied = await self.state.assign_propagated(transaction_id, category)
                if applied:
                    await self.rule_store.increment_usage(match.pattern_id)
        except SQLAlchemyError:
            logger.exception(
                "auto_apply_failed",
                transaction_id=transaction_id,
                pattern_id=match.pattern_id,
            )
            return False
        return applied

    @staticmethod
    def _in_range(value: date | None, date_from: date | None, date_to: date | None) -> bool:
        if value is None:
            return False
        if date_from and value < date_from:
            return False
        if date_to and value > date_to:
            return False
        return True
