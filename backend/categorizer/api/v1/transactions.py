"""Transaction API routes."""

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from categorizer.api.deps import get_db
from categorizer.models.transaction import CategorizationStatus
from categorizer.schemas.categorization import AutoCategorizeResult
from categorizer.schemas.transaction import (
    ImportResult,
    TransactionCreateRequest,
    TransactionImportRequest,
    TransactionPage,
    TransactionResponse,
)
from categorizer.services.auto_categorizer import AutoCategorizer
from categorizer.services.transaction_service import TransactionService

router = APIRouter()


@router.get("", response_model=TransactionPage)
async def list_transactions(
    page: int = Query(1, ge=1),
    per_page: int = Query(50, ge=1, le=200),
    search: str | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    status: CategorizationStatus | None = None,
    db: AsyncSession = Depends(get_db),
):
    """List transactions with pagination and filters."""
    service = TransactionService(db)
    return await service.list_transactions(
        page=page,
        per_page=per_page,
        search=search,
        date_from=date_from,
        date_to=date_to,
        status=status,
    )


@router.post("", response_model=TransactionResponse, status_code=201)
async def create_transaction(
    data: TransactionCreateRequest,
    db: AsyncSession = Depends(get_db),
):
    """Create a transaction, categorizing it from the rules unless told not to."""
    service = TransactionService(db)
    return await service.create(data, auto_apply_categories=data.auto_apply_categories)


@router.post("/import", response_model=ImportResult)
async def import_transactions(
    data: TransactionImportRequest,
    db: AsyncSession = Depends(get_db),
):
    """Import a batch of already-parsed statement rows."""
    service = TransactionService(db)
    return await service.import_batch(
        data.transactions, auto_apply_categories=data.auto_apply_categories
    )


@router.post("/auto-categorize", response_model=AutoCategorizeResult)
async def auto_categorize(db: AsyncSession = Depends(get_db)):
    """Run every rule over the transactions that have no category yet."""
    return await AutoCategorizer(db).run_once()


@router.get("/{transaction_id}", response_model=TransactionResponse)
async def get_transaction(transaction_id: int, db: AsyncSession = Depends(get_db)):
    service = TransactionService(db)
    return await service.get_transaction(transaction_id)


@router.get("/{transaction_id}/similar", response_model=list[TransactionResponse])
async def get_similar_transactions(
    transaction_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Transactions a propagation from this one would look at."""
    service = TransactionService(db)
    return await service.find_similar(transaction_id)


@router.delete("/{transaction_id}", status_code=204)
async def delete_transaction(transaction_id: int, db: AsyncSession = Depends(get_db)):
    service = TransactionService(db)
    await service.delete_transaction(transaction_id)
