"""Category and parent category schemas."""

from datetime import datetime

from categorizer.schemas.base import CamelModel


class ParentCategoryCreate(CamelModel):
    name: str
    description: str | None = None


class ParentCategoryUpdate(CamelModel):
    name: str | None = None
    description: str | None = None


class ParentCategoryResponse(CamelModel):
    id: int
    name: str
    description: str | None
    created_at: datetime


class CategoryCreate(CamelModel):
    name: str
    parent_id: int | None = None
    description: str | None = None


class CategoryUpdate(CamelModel):
    name: str | None = None
    parent_id: int | None = None
    description: str | None = None


class CategoryResponse(CamelModel):
    id: int
    name: str
    parent_id: int | None
    description: str | None
    created_at: datetime


class CategoryTreeNode(CamelModel):
    """A parent category with its children, for the tree listing."""

    id: int
    name: str
    description: str | None = None
    categories: list[CategoryResponse] = []


class CategoryTree(CamelModel):
    parents: list[CategoryTreeNode]
    # Categories attached to no parent
    unassigned: list[CategoryResponse]
