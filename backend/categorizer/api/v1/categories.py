"""Category API routes, including per-transaction assignment."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from categorizer.api.deps import get_db
from categorizer.core.exceptions import NotFoundError
from categorizer.schemas.categorization import (
    AssignCategoryRequest,
    AssignmentResult,
    RemoveCategoryResult,
)
from categorizer.schemas.category import (
    CategoryCreate,
    CategoryResponse,
    CategoryTree,
    CategoryUpdate,
)
from categorizer.services.assignment_service import AssignmentService
from categorizer.services.categorization_state import CategorizationStateMachine
from categorizer.services.category_service import CategoryService
from categorizer.services.transaction_service import TransactionService

router = APIRouter()


@router.get("", response_model=CategoryTree)
async def list_categories(db: AsyncSession = Depends(get_db)):
    """List parent categories with their categories."""
    service = CategoryService(db)
    return await service.get_category_tree()


@router.post("", response_model=CategoryResponse, status_code=201)
async def create_category(data: CategoryCreate, db: AsyncSession = Depends(get_db)):
    service = CategoryService(db)
    return await service.create_category(data)


@router.get("/{category_id}", response_model=CategoryResponse)
async def get_category(category_id: int, db: AsyncSession = Depends(get_db)):
    service = CategoryService(db)
    return await service.get_category(category_id)


@router.put("/{category_id}", response_model=CategoryResponse)
async def update_category(
    category_id: int,
    data: CategoryUpdate,
    db: AsyncSession = Depends(get_db),
):
    service = CategoryService(db)
    return await service.update_category(category_id, data)


@router.delete("/{category_id}", status_code=204)
async def delete_category(category_id: int, db: AsyncSession = Depends(get_db)):
    """Delete a category no rule or transaction refers to."""
    service = CategoryService(db)
    await service.delete_category(category_id)


# ── Transaction assignment ────────────────────────


@router.get("/transaction/{transaction_id}", response_model=list[CategoryResponse])
async def get_transaction_categories(
    transaction_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Categories currently linked to a transaction (zero or one)."""
    service = CategoryService(db)
    return await service.categories_for_transaction(transaction_id)


@router.post("/transaction/{transaction_id}", response_model=AssignmentResult)
async def assign_category(
    transaction_id: int,
    data: AssignCategoryRequest,
    db: AsyncSession = Depends(get_db),
):
    """Assign a category to a transaction, optionally to similar ones too."""
    service = AssignmentService(db)
    return await service.assign(
        transaction_id, data.category_id, apply_to_similar=data.apply_to_similar
    )


@router.delete(
    "/transaction/{transaction_id}/category/{category_id}",
    response_model=RemoveCategoryResult,
)
async def remove_category(
    transaction_id: int,
    category_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Remove a transaction's category and mark it uncategorized."""
    await TransactionService(db).get_transaction(transaction_id)
    removed = await CategorizationStateMachine(db).remove(transaction_id, category_id)
    if not removed:
        raise NotFoundError("Category assignment")
    return {"transaction_id": transaction_id, "category_id": category_id, "removed": True}
