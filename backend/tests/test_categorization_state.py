"""Categorization state machine tests."""

import pytest
from sqlalchemy import func, select

from categorizer.models import CategorizationStatus, TransactionCategory
from categorizer.services.categorization_state import CategorizationStateMachine
from tests.helpers import make_category, make_parent, make_transaction


async def link_count(db, transaction_id: int) -> int:
    result = await db.execute(
        select(func.count(TransactionCategory.id)).where(
            TransactionCategory.transaction_id == transaction_id
        )
    )
    return result.scalar_one()


@pytest.mark.asyncio
async def test_direct_assignment_is_manual_and_denormalizes_parent(db):
    food = await make_parent(db, "Food")
    grocery = await make_category(db, "Grocery", food)
    txn = await make_transaction(db, "TESCO STORES 1001")
    state = CategorizationStateMachine(db)

    link = await state.assign_direct(txn.id, grocery)

    await db.refresh(txn)
    assert txn.categorization_status == CategorizationStatus.MANUAL
    assert txn.category_id == grocery.id
    assert link.parent_category_id == food.id
    assert await state.current_status(txn.id) == CategorizationStatus.MANUAL


@pytest.mark.asyncio
async def test_reassignment_keeps_a_single_link(db):
    grocery = await make_category(db, "Grocery")
    dining = await make_category(db, "Dining")
    txn = await make_transaction(db, "TESCO STORES 1001")
    state = CategorizationStateMachine(db)

    await state.assign_direct(txn.id, grocery)
    await state.assign_direct(txn.id, dining)
    await state.assign_direct(txn.id, dining)

    assert await link_count(db, txn.id) == 1
    await db.refresh(txn)
    assert txn.category_id == dining.id
    assert txn.categorization_status == CategorizationStatus.MANUAL


@pytest.mark.asyncio
async def test_direct_assignment_overrides_auto(db):
    grocery = await make_category(db, "Grocery")
    dining = await make_category(db, "Dining")
    txn = await make_transaction(db, "TESCO STORES 1001")
    state = CategorizationStateMachine(db)

    assert await state.assign_propagated(txn.id, grocery) is True
    await state.assign_direct(txn.id, dining)

    await db.refresh(txn)
    assert txn.categorization_status == CategorizationStatus.MANUAL
    assert txn.category_id == dining.id
    assert await link_count(db, txn.id) == 1


@pytest.mark.asyncio
async def test_propagation_only_applies_to_uncategorized(db):
    grocery = await make_category(db, "Grocery")
    dining = await make_category(db, "Dining")
    fresh = await make_transaction(db, "TESCO STORES 1001")
    manual = await make_transaction(db, "TESCO STORES 1002")
    state = CategorizationStateMachine(db)
    await state.assign_direct(manual.id, dining)

    assert await state.assign_propagated(fresh.id, grocery) is True
    assert await state.assign_propagated(fresh.id, dining) is False
    assert await state.assign_propagated(manual.id, grocery) is False

    await db.refresh(fresh)
    await db.refresh(manual)
    assert fresh.categorization_status == CategorizationStatus.AUTO
    assert fresh.category_id == grocery.id
    assert manual.categorization_status == CategorizationStatus.MANUAL
    assert manual.category_id == dining.id
    assert await link_count(db, fresh.id) == 1
    assert await link_count(db, manual.id) == 1


@pytest.mark.asyncio
async def test_remove_resets_to_none(db):
    grocery = await make_category(db, "Grocery")
    txn = await make_transaction(db, "TESCO STORES 1001")
    state = CategorizationStateMachine(db)
    await state.assign_direct(txn.id, grocery)

    assert await state.remove(txn.id, grocery.id) is True

    await db.refresh(txn)
    assert txn.categorization_status == CategorizationStatus.NONE
    assert txn.category_id is None
    assert await link_count(db, txn.id) == 0


@pytest.mark.asyncio
async def test_remove_with_other_category_is_a_no_op(db):
    grocery = await make_category(db, "Grocery")
    dining = await make_category(db, "Dining")
    txn = await make_transaction(db, "TESCO STORES 1001")
    state = CategorizationStateMachine(db)
    await state.assign_direct(txn.id, grocery)

    assert await state.remove(txn.id, dining.id) is False

    await db.refresh(txn)
    assert txn.categorization_status == CategorizationStatus.MANUAL
    assert await link_count(db, txn.id) == 1


@pytest.mark.asyncio
async def test_current_status_of_unknown_transaction(db):
    assert await CategorizationStateMachine(db).current_status(999) is None
