"""Parent category API routes."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from categorizer.api.deps import get_db
from categorizer.schemas.category import (
    ParentCategoryCreate,
    ParentCategoryResponse,
    ParentCategoryUpdate,
)
from categorizer.services.category_service import CategoryService

router = APIRouter()


@router.get("", response_model=list[ParentCategoryResponse])
async def list_parent_categories(db: AsyncSession = Depends(get_db)):
    service = CategoryService(db)
    return await service.list_parents()


@router.post("", response_model=ParentCategoryResponse, status_code=201)
async def create_parent_category(
    data: ParentCategoryCreate,
    db: AsyncSession = Depends(get_db),
):
    service = CategoryService(db)
    return await service.create_parent(data)


@router.get("/{parent_id}", response_model=ParentCategoryResponse)
async def get_parent_category(parent_id: int, db: AsyncSession = Depends(get_db)):
    service = CategoryService(db)
    return await service.get_parent(parent_id)


@router.put("/{parent_id}", response_model=ParentCategoryResponse)
async def update_parent_category(
    parent_id: int,
    data: ParentCategoryUpdate,
    db: AsyncSession = Depends(get_db),
):
    service = CategoryService(db)
    return await service.update_parent(parent_id, data)


@router.delete("/{parent_id}", status_code=204)
async def delete_parent_category(parent_id: int, db: AsyncSession = Depends(get_db)):
    """Delete a parent category; refused while it still has categories."""
    service = CategoryService(db)
    await service.delete_parent(parent_id)
