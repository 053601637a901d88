"""SQLAlchemy models."""

from categorizer.models.base import Base
from categorizer.models.category import Category, ParentCategory
from categorizer.models.similarity_pattern import SimilarityPattern
from categorizer.models.transaction import CategorizationStatus, Transaction
from categorizer.models.transaction_category import TransactionCategory

__all__ = [
    "Base",
    "ParentCategory",
    "Category",
    "Transaction",
    "CategorizationStatus",
    "TransactionCategory",
    "SimilarityPattern",
]
