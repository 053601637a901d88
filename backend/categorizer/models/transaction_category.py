"""Transaction ↔ category link."""

from sqlalchemy import ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from categorizer.models.base import Base, CreatedAtMixin


class TransactionCategory(Base, CreatedAtMixin):
    """The single active category of a transaction.

    ``transaction_id`` is unique: replacing a category means deleting the old
    row first. ``parent_category_id`` is copied from the category so that
    per-parent aggregations don't need the join.
    """

    __tablename__ = "transaction_categories"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    transaction_id: Mapped[int] = mapped_column(
        ForeignKey("transactions.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    category_id: Mapped[int] = mapped_column(
        ForeignKey("categories.id"), nullable=False, index=True
    )
    parent_category_id: Mapped[int | None] = mapped_column(
        ForeignKey("parent_categories.id"), nullable=True, index=True
    )

    # Relationships
    transaction = relationship("Transaction", back_populates="category_link")
    category = relationship("Category")
