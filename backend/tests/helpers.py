"""Factories for test data."""

from decimal import Decimal

from categorizer.models import (
    Category,
    ParentCategory,
    SimilarityPattern,
    Transaction,
)


async def make_parent(db, name: str = "Food") -> ParentCategory:
    parent = ParentCategory(name=name)
    db.add(parent)
    await db.flush()
    return parent


async def make_category(db, name: str = "Grocery", parent: ParentCategory | None = None) -> Category:
    category = Category(name=name, parent_id=parent.id if parent else None)
    db.add(category)
    await db.flush()
    return category


async def make_transaction(
    db,
    description1: str,
    transaction_date: str = "01/06/2025",
    debit_amount: Decimal | None = Decimal("10.00"),
    **kwargs,
) -> Transaction:
    kwargs.setdefault("account_number", "40-11-22 12345678")
    txn = Transaction(
        description1=description1,
        transaction_date=transaction_date,
        debit_amount=debit_amount,
        **kwargs,
    )
    db.add(txn)
    await db.flush()
    return txn


async def make_pattern(
    db,
    pattern_value: str,
    category: Category | None = None,
    parent: ParentCategory | None = None,
    pattern_type: str = "contains",
    confidence_score: float = 1.0,
) -> SimilarityPattern:
    pattern = SimilarityPattern(
        pattern_type=pattern_type,
        pattern_value=pattern_value,
        category_id=category.id if category else None,
        parent_category_id=parent.id if parent else None,
        confidence_score=confidence_score,
        usage_count=0,
    )
    db.add(pattern)
    await db.flush()
    return pattern
