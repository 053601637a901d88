"""Category store: parent categories, categories and the tree view."""

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from categorizer.core.exceptions import AlreadyExistsError, ConflictError, NotFoundError
from categorizer.models.category import Category, ParentCategory
from categorizer.models.transaction import Transaction
from categorizer.models.transaction_category import TransactionCategory
from categorizer.schemas.category import (
    CategoryCreate,
    CategoryUpdate,
    ParentCategoryCreate,
    ParentCategoryUpdate,
)
from categorizer.services.rule_service import RuleService

logger = structlog.get_logger()


class CategoryService:
    def __init__(self, db: AsyncSession, rule_store: RuleService | None = None):
        self.db = db
        self.rules = rule_store or RuleService(db)

    # ── Parent categories ──────────────────────────────

    async def list_parents(self) -> list[ParentCategory]:
        result = await self.db.execute(select(ParentCategory).order_by(ParentCategory.name))
        return list(result.scalars().all())

    async def get_parent(self, parent_id: int) -> ParentCategory:
        parent = await self.db.get(ParentCategory, parent_id)
        if not parent:
            raise NotFoundError("ParentCategory")
        return parent

    async def create_parent(self, data: ParentCategoryCreate) -> ParentCategory:
        await self._ensure_parent_name_free(data.name)
        parent = ParentCategory(name=data.name, description=data.description)
        self.db.add(parent)
        await self.db.flush()
        await self.db.refresh(parent)
        return parent

    async def update_parent(self, parent_id: int, data: ParentCategoryUpdate) -> ParentCategory:
        parent = await self.get_parent(parent_id)
        update_data = data.model_dump(exclude_unset=True)
        if update_data.get("name") and update_data["name"].lower() != parent.name.lower():
            await self._ensure_parent_name_free(update_data["name"])
        for key, value in update_data.items():
            setattr(parent, key, value)
        await self.db.flush()
        await self.db.refresh(parent)
        return parent

    async def delete_parent(self, parent_id: int) -> None:
        """Delete a parent category that no category or rule points at."""
        parent = await self.get_parent(parent_id)

        children = await self.db.execute(
            select(func.count(Category.id)).where(Category.parent_id == parent_id)
        )
        if children.scalar_one():
            raise ConflictError("Parent category still has categories")

        if await self.rules.count_for_parent(parent_id):
            raise ConflictError("Parent category is still used by similarity patterns")

        await self.db.delete(parent)
        await self.db.flush()

    # ── Categories ─────────────────────────────────────

    async def list_categories(self) -> list[Category]:
        result = await self.db.execute(select(Category).order_by(Category.name, Category.id))
        return list(result.scalars().all())

    async def get_category(self, category_id: int) -> Category:
        category = await self.db.get(Category, category_id)
        if not category:
            raise NotFoundError("Category")
        return category

    async def get_category_tree(self) -> dict:
        """Parents (by name) with their categories (by name), plus orphans."""
        parents = await self.list_parents()
        categories = await self.list_categories()

        nodes = {
            p.id: {
                "id": p.id,
                "name": p.name,
                "description": p.description,
                "categories": [],
            }
            for p in parents
        }
        unassigned = []
        for category in categories:
            if category.parent_id in nodes:
                nodes[category.parent_id]["categories"].append(category)
            else:
                unassigned.append(category)

        return {"parents": list(nodes.values()), "unassigned": unassigned}

    async def create_category(self, data: CategoryCreate) -> Category:
        if data.parent_id is not None:
            await self.get_parent(data.parent_id)
        await self._ensure_category_name_free(data.name, data.parent_id)

        category = Category(
            name=data.name,
            parent_id=data.parent_id,
            description=data.description,
        )
        self.db.add(category)
        await self.db.flush()
        await self.db.refresh(category)

        logger.info("category_created", category_id=category.id, parent_id=category.parent_id)
        return category

    async def update_category(self, category_id: int, data: CategoryUpdate) -> Category:
        category = await self.get_category(category_id)
        update_data = data.model_dump(exclude_unset=True)

        parent_changed = (
            "parent_id" in update_data and update_data["parent_id"] != category.parent_id
        )
        if parent_changed and update_data["parent_id"] is not None:
            await self.get_parent(update_data["parent_id"])

        name = update_data.get("name") or category.name
        parent_id = update_data.get("parent_id", category.parent_id)
        if name != category.name or parent_changed:
            await self._ensure_category_name_free(name, parent_id, exclude_id=category.id)

        for key, value in update_data.items():
            setattr(category, key, value)

        if parent_changed:
            # Keep the denormalized parent on existing links in step
            await self.db.execute(
                update(TransactionCategory)
                .where(TransactionCategory.category_id == category.id)
                .values(parent_category_id=category.parent_id)
                .execution_options(synchronize_session="fetch")
            )

        await self.db.flush()
        await self.db.refresh(category)
        return category

    async def delete_category(self, category_id: int) -> None:
        """Delete a category nothing refers to any more."""
        category = await self.get_category(category_id)

        if await self.rules.count_for_category(category_id):
            raise ConflictError("Category is still used by similarity patterns")

        links = await self.db.execute(
            select(func.count(TransactionCategory.id)).where(
                TransactionCategory.category_id == category_id
            )
        )
        if links.scalar_one():
            raise ConflictError("Category is still assigned to transactions")

        await self.db.delete(category)
        await self.db.flush()
        logger.info("category_deleted", category_id=category_id)

    # ── Lookups used by the engine ─────────────────────

    async def first_child_by_parent(self) -> dict[int, int]:
        """Map each parent category id to its first child by name."""
        result = await self.db.execute(
            select(Category.parent_id, Category.id)
            .where(Category.parent_id.is_not(None))
            .order_by(Category.parent_id, Category.name, Category.id)
        )
        first_children: dict[int, int] = {}
        for parent_id, category_id in result.all():
            first_children.setdefault(parent_id, category_id)
        return first_children

    async def categories_for_transaction(self, transaction_id: int) -> list[Category]:
        if not await self.db.get(Transaction, transaction_id):
            raise NotFoundError("Transaction")
        result = await self.db.execute(
            select(Category)
            .join(TransactionCategory, TransactionCategory.category_id == Category.id)
            .where(TransactionCategory.transaction_id == transaction_id)
        )
        return list(result.scalars().all())

    # ── Helpers ─────────────────────────────────────────

    async def _ensure_parent_name_free(self, name: str) -> None:
        result = await self.db.execute(
            select(ParentCategory.id).where(func.lower(ParentCategory.name) == name.lower())
        )
        if result.first() is not None:
            raise AlreadyExistsError("ParentCategory")

    async def _ensure_category_name_free(
        self, name: str, parent_id: int | None, exclude_id: int | None = None
    ) -> None:
        """Category names are unique within a parent, ignoring case."""
        query = select(Category.id).where(func.lower(Category.name) == name.lower())
        if parent_id is None:
            query = query.where(Category.parent_id.is_(None))
        else:
            query = query.where(Category.parent_id == parent_id)
        if exclude_id is not None:
            query = query.where(Category.id != exclude_id)
        result = await self.db.execute(query)
        if result.first() is not None:
            raise AlreadyExistsError("Category")
