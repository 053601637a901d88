"""Batch auto-categorizer tests."""

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from categorizer.models import CategorizationStatus, TransactionCategory
from categorizer.services.auto_categorizer import AutoCategorizer
from categorizer.services.categorization_state import CategorizationStateMachine
from tests.helpers import make_category, make_parent, make_pattern, make_transaction


@pytest.mark.asyncio
async def test_run_once_categorizes_matching_transactions(db):
    shopping = await make_category(db, "Online shopping")
    rule = await make_pattern(db, "AMAZON", category=shopping)
    amazon = await make_transaction(db, "AMAZON MKTPLACE PMTS")
    other = await make_transaction(db, "LOCAL BAKERY")
    blank = await make_transaction(db, "")

    result = await AutoCategorizer(db).run_once()

    assert result == {"categorized": 1, "total": 3}
    await db.refresh(amazon)
    await db.refresh(other)
    await db.refresh(blank)
    await db.refresh(rule)
    assert amazon.categorization_status == CategorizationStatus.AUTO
    assert amazon.category_id == shopping.id
    assert other.categorization_status == CategorizationStatus.NONE
    assert blank.categorization_status == CategorizationStatus.NONE
    assert rule.usage_count == 1


@pytest.mark.asyncio
async def test_second_run_only_sees_remaining_transactions(db):
    shopping = await make_category(db, "Online shopping")
    await make_pattern(db, "AMAZON", category=shopping)
    await make_transaction(db, "AMAZON MKTPLACE PMTS")
    await make_transaction(db, "LOCAL BAKERY")
    categorizer = AutoCategorizer(db)

    await categorizer.run_once()
    result = await categorizer.run_once()

    assert result == {"categorized": 0, "total": 1}


@pytest.mark.asyncio
async def test_without_rules_nothing_happens(db):
    await make_transaction(db, "AMAZON MKTPLACE PMTS")
    await make_transaction(db, "LOCAL BAKERY")
    assert await AutoCategorizer(db).run_once() == {"categorized": 0, "total": 2}


@pytest.mark.asyncio
async def test_parent_only_rules_are_ignored(db):
    transport = await make_parent(db, "Transport")
    await make_category(db, "Fuel", transport)
    await make_pattern(db, "SHELL", parent=transport)
    txn = await make_transaction(db, "SHELL OIL 1234")

    result = await AutoCategorizer(db).run_once()

    assert result == {"categorized": 0, "total": 1}
    await db.refresh(txn)
    assert txn.categorization_status == CategorizationStatus.NONE


@pytest.mark.asyncio
async def test_highest_confidence_rule_is_used(db):
    grocery = await make_category(db, "Grocery")
    convenience = await make_category(db, "Convenience")
    await make_pattern(db, "TESCO", category=grocery, confidence_score=0.8)
    express_rule = await make_pattern(
        db, "TESCO EXPRESS", category=convenience, pattern_type="exact", confidence_score=0.95
    )
    txn = await make_transaction(db, "TESCO EXPRESS")

    await AutoCategorizer(db).run_once()

    await db.refresh(txn)
    await db.refresh(express_rule)
    assert txn.category_id == convenience.id
    assert express_rule.usage_count == 1


@pytest.mark.asyncio
async def test_broken_regex_does_not_stop_the_batch(db):
    grocery = await make_category(db, "Grocery")
    await make_pattern(db, "(", category=grocery, pattern_type="regex")
    await make_pattern(db, "LIDL", category=grocery, confidence_score=0.5)
    txn = await make_transaction(db, "LIDL GB 0042")

    result = await AutoCategorizer(db).run_once()

    assert result == {"categorized": 1, "total": 1}
    await db.refresh(txn)
    assert txn.category_id == grocery.id


class FailsAfterWriting(CategorizationStateMachine):
    """Writes the category, then errors out for one transaction."""

    def __init__(self, db, failing_id: int):
        super().__init__(db)
        self.failing_id = failing_id

    async def assign_propagated(self, transaction_id, category):
        applied = await super().assign_propagated(transaction_id, category)
        if transaction_id == self.failing_id:
            raise OperationalError("UPDATE transactions", {}, Exception("database is locked"))
        return applied


@pytest.mark.asyncio
async def test_failed_item_is_rolled_back_and_the_scan_continues(db):
    shopping = await make_category(db, "Online shopping")
    rule = await make_pattern(db, "AMAZON", category=shopping)
    failing = await make_transaction(db, "AMAZON MKTPLACE PMTS")
    healthy = await make_transaction(db, "AMAZON PRIME")

    categorizer = AutoCategorizer(db, state_machine=FailsAfterWriting(db, failing.id))
    result = await categorizer.run_once()

    assert result == {"categorized": 1, "total": 2}
    await db.refresh(failing)
    await db.refresh(healthy)
    await db.refresh(rule)
    assert failing.categorization_status == CategorizationStatus.NONE
    assert failing.category_id is None
    assert healthy.categorization_status == CategorizationStatus.AUTO
    assert rule.usage_count == 1
    links = await db.execute(select(TransactionCategory.transaction_id))
    assert list(links.scalars().all()) == [healthy.id]
