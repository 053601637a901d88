"""Transaction schemas for request/response validation."""

from datetime import datetime
from decimal import Decimal

from pydantic import Field, model_validator

from categorizer.models.transaction import CategorizationStatus
from categorizer.schemas.base import CamelModel


class TransactionCreate(CamelModel):
    account_number: str = Field(min_length=1)
    transaction_date: str = Field(min_length=1)  # DD/MM/YYYY as exported
    description1: str = ""
    description2: str | None = None
    description3: str | None = None
    debit_amount: Decimal | None = None
    credit_amount: Decimal | None = None
    balance: Decimal | None = None
    currency: str = "EUR"
    transaction_type: str | None = None
    local_currency_amount: Decimal | None = None
    local_currency: str | None = None
    # Explicit category: assigned as a manual decision, rules are skipped
    category_id: int | None = None

    @model_validator(mode="after")
    def _debit_xor_credit(self):
        if (self.debit_amount is None) == (self.credit_amount is None):
            raise ValueError("exactly one of debitAmount or creditAmount is required")
        return self


class TransactionCreateRequest(TransactionCreate):
    auto_apply_categories: bool | None = None


class TransactionImportRequest(CamelModel):
    transactions: list[TransactionCreate]
    auto_apply_categories: bool | None = None


class TransactionResponse(CamelModel):
    id: int
    account_number: str
    transaction_date: str
    description1: str
    description2: str | None = None
    description3: str | None = None
    debit_amount: Decimal | None = None
    credit_amount: Decimal | None = None
    balance: Decimal | None = None
    currency: str
    transaction_type: str | None = None
    local_currency_amount: Decimal | None = None
    local_currency: str | None = None
    categorization_status: CategorizationStatus
    category_id: int | None = None
    created_at: datetime


class ImportResult(CamelModel):
    total: int
    added: int
    duplicates: int
    categorized: int
    errors: int


class TransactionPage(CamelModel):
    data: list[TransactionResponse]
    meta: dict  # {total, page, per_page, pages}
