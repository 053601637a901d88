"""Similarity pattern (categorization rule) model."""

from sqlalchemy import CheckConstraint, Float, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from categorizer.models.base import Base, TimestampMixin


class SimilarityPattern(Base, TimestampMixin):
    """A user-authored rule mapping matching descriptions to a category.

    The target is a concrete category, a parent category, or both. With
    only a parent, the matcher picks the parent's first child by name.
    ``confidence_score`` orders competing matches; ``usage_count`` goes up
    by one each time the rule categorizes a transaction.
    """

    __tablename__ = "transaction_similarity_patterns"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    pattern_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default="contains"
    )  # exact, contains, starts_with, regex
    pattern_value: Mapped[str] = mapped_column(String(500), nullable=False)
    category_id: Mapped[int | None] = mapped_column(
        ForeignKey("categories.id"), nullable=True
    )
    parent_category_id: Mapped[int | None] = mapped_column(
        ForeignKey("parent_categories.id"), nullable=True
    )
    confidence_score: Mapped[float] = mapped_column(Float, nullable=False, default=1.0)
    usage_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Relationships
    category = relationship("Category")
    parent_category = relationship("ParentCategory")

    __table_args__ = (
        CheckConstraint(
            "category_id IS NOT NULL OR parent_category_id IS NOT NULL",
            name="ck_pattern_has_target",
        ),
        Index("idx_patterns_category", "category_id"),
        Index("idx_patterns_parent_category", "parent_category_id"),
    )
