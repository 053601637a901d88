"""Transaction model."""

import enum
from decimal import Decimal

from sqlalchemy import Enum, ForeignKey, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from categorizer.models.base import Base, CreatedAtMixin


class CategorizationStatus(str, enum.Enum):
    """How a transaction got its current category."""

    NONE = "none"
    MANUAL = "manual"
    AUTO = "auto"


class Transaction(Base, CreatedAtMixin):
    """A bank statement line item.

    Everything except ``categorization_status`` and ``category_id`` is fixed
    at import time. Those two fields are only written by
    :class:`~categorizer.services.categorization_state.CategorizationStateMachine`.
    """

    __tablename__ = "transactions"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    account_number: Mapped[str] = mapped_column(String(64), nullable=False)
    # Day-first text as exported by the bank (DD/MM/YYYY), sometimes ISO
    transaction_date: Mapped[str] = mapped_column(String(20), nullable=False)
    description1: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    description2: Mapped[str | None] = mapped_column(String(500), nullable=True)
    description3: Mapped[str | None] = mapped_column(String(500), nullable=True)
    debit_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    credit_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    balance: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    currency: Mapped[str] = mapped_column(String(3), default="EUR")
    transaction_type: Mapped[str | None] = mapped_column(String(20), nullable=True)
    local_currency_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    local_currency: Mapped[str | None] = mapped_column(String(3), nullable=True)

    categorization_status: Mapped[CategorizationStatus] = mapped_column(
        Enum(
            CategorizationStatus,
            name="categorization_status",
            native_enum=False,
            length=10,
            values_callable=lambda members: [m.value for m in members],
        ),
        nullable=False,
        default=CategorizationStatus.NONE,
    )
    category_id: Mapped[int | None] = mapped_column(
        ForeignKey("categories.id"), nullable=True
    )

    # Relationships
    category = relationship("Category", back_populates="transactions")
    category_link = relationship(
        "TransactionCategory",
        back_populates="transaction",
        uselist=False,
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("idx_transactions_status", "categorization_status"),
        Index("idx_transactions_account", "account_number"),
    )
