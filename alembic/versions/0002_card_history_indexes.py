"""add composite indexes for history and summary queries

Revision ID: 0002_card_history_indexes
Revises: 0001_initial
Create Date: 2026-10-19

- (card_id, created_at): card detail history and per-card listings, newest first
- (card_id, status): success/failure counts in the transaction summary
"""

from alembic import op


revision = "0002_card_history_indexes"
down_revision = "0001_initial"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_index(
        "ix_transactions_card_created",
        "transactions",
        ["card_id", "created_at"],
        unique=False,
    )
    op.create_index(
        "ix_transactions_card_status",
        "transactions",
        ["card_id", "status"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_transactions_card_status", table_name="transactions")
    op.drop_index("ix_transactions_card_created", table_name="transactions")
