"""Category hierarchy models (parent → category, two levels)."""

from sqlalchemy import ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from categorizer.models.base import Base, CreatedAtMixin


class ParentCategory(Base, CreatedAtMixin):
    __tablename__ = "parent_categories"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Relationships
    categories = relationship(
        "Category", back_populates="parent", order_by="Category.name"
    )


class Category(Base, CreatedAtMixin):
    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    # Always a ParentCategory, never another Category: no grandchildren
    parent_id: Mapped[int | None] = mapped_column(
        ForeignKey("parent_categories.id"), nullable=True, index=True
    )
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Relationships
    parent = relationship("ParentCategory", back_populates="categories")
    transactions = relationship("Transaction", back_populates="category")
