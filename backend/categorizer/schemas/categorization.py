"""Category assignment and auto-categorization schemas."""

from categorizer.schemas.base import CamelModel


class AssignCategoryRequest(CamelModel):
    category_id: int
    apply_to_similar: bool = False


class AssignmentResult(CamelModel):
    transaction_id: int
    category_id: int
    assignment_id: int
    similar_transactions_updated: int


class AutoCategorizeResult(CamelModel):
    categorized: int
    total: int


class RemoveCategoryResult(CamelModel):
    transaction_id: int
    category_id: int
    removed: bool
