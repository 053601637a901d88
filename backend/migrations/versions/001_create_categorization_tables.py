"""Create categorization tables.

Revision ID: 001
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        server_default=sa.text("CURRENT_TIMESTAMP"),
        nullable=False,
    )


def upgrade() -> None:
    op.create_table(
        "parent_categories",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name", name="uq_parent_categories_name"),
    )

    op.create_table(
        "categories",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("parent_id", sa.Integer(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["parent_id"], ["parent_categories.id"]),
    )
    op.create_index("ix_categories_parent_id", "categories", ["parent_id"])

    op.create_table(
        "transactions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("account_number", sa.String(64), nullable=False),
        sa.Column("transaction_date", sa.String(20), nullable=False),
        sa.Column("description1", sa.String(500), server_default="", nullable=False),
        sa.Column("description2", sa.String(500), nullable=True),
        sa.Column("description3", sa.String(500), nullable=True),
        sa.Column("debit_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("credit_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("balance", sa.Numeric(12, 2), nullable=True),
        sa.Column("currency", sa.String(3), server_default="EUR", nullable=False),
        sa.Column("transaction_type", sa.String(20), nullable=True),
        sa.Column("local_currency_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("local_currency", sa.String(3), nullable=True),
        sa.Column(
            "categorization_status",
            sa.String(10),
            server_default="none",
            nullable=False,
        ),
        sa.Column("category_id", sa.Integer(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["category_id"], ["categories.id"]),
        sa.CheckConstraint(
            "categorization_status IN ('none', 'manual', 'auto')",
            name="categorization_status",
        ),
    )
    op.create_index("idx_transactions_status", "transactions", ["categorization_status"])
    op.create_index("idx_transactions_account", "transactions", ["account_number"])

    op.create_table(
        "transaction_categories",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("transaction_id", sa.Integer(), nullable=False),
        sa.Column("category_id", sa.Integer(), nullable=False),
        sa.Column("parent_category_id", sa.Integer(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["transaction_id"], ["transactions.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["category_id"], ["categories.id"]),
        sa.ForeignKeyConstraint(["parent_category_id"], ["parent_categories.id"]),
        # One active category per transaction
        sa.UniqueConstraint("transaction_id", name="uq_transaction_categories_transaction_id"),
    )
    op.create_index(
        "ix_transaction_categories_category_id", "transaction_categories", ["category_id"]
    )
    op.create_index(
        "ix_transaction_categories_parent_category_id",
        "transaction_categories",
        ["parent_category_id"],
    )

    op.create_table(
        "transaction_similarity_patterns",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("pattern_type", sa.String(20), server_default="contains", nullable=False),
        sa.Column("pattern_value", sa.String(500), nullable=False),
        sa.Column("category_id", sa.Integer(), nullable=True),
        sa.Column("parent_category_id", sa.Integer(), nullable=True),
        sa.Column("confidence_score", sa.Float(), server_default="1.0", nullable=False),
        sa.Column("usage_count", sa.Integer(), server_default="0", nullable=False),
        _created_at(),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["category_id"], ["categories.id"]),
        sa.ForeignKeyConstraint(["parent_category_id"], ["parent_categories.id"]),
        sa.CheckConstraint(
            "category_id IS NOT NULL OR parent_category_id IS NOT NULL",
            name="ck_pattern_has_target",
        ),
    )
    op.create_index(
        "idx_patterns_category", "transaction_similarity_patterns", ["category_id"]
    )
    op.create_index(
        "idx_patterns_parent_category",
        "transaction_similarity_patterns",
        ["parent_category_id"],
    )


def downgrade() -> None:
    op.drop_index("idx_patterns_parent_category", table_name="transaction_similarity_patterns")
    op.drop_index("idx_patterns_category", table_name="transaction_similarity_patterns")
    op.drop_table("transaction_similarity_patterns")
    op.drop_index(
        "ix_transaction_categories_parent_category_id", table_name="transaction_categories"
    )
    op.drop_index("ix_transaction_categories_category_id", table_name="transaction_categories")
    op.drop_table("transaction_categories")
    op.drop_index("idx_transactions_account", table_name="transactions")
    op.drop_index("idx_transactions_status", table_name="transactions")
    op.drop_table("transactions")
    op.drop_index("ix_categories_parent_id", table_name="categories")
    op.drop_table("categories")
    op.drop_table("parent_categories")
