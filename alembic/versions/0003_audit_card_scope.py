"""scope audit entries to cards

Revision ID: 0003_audit_card_scope
Revises: 0002_card_history_indexes
Create Date: 2026-10-20

- audit_logs.card_id: card an entry refers to, kept after the card is deleted
- (user_id, card_id): per-card audit listing
- resource restricted to user, card and transaction
"""

from alembic import op
import sqlalchemy as sa


revision = "0003_audit_card_scope"
down_revision = "0002_card_history_indexes"
branch_labels = None
depends_on = None


def upgrade() -> None:
    with op.batch_alter_table("audit_logs") as batch_op:
        batch_op.add_column(sa.Column("card_id", sa.Integer(), nullable=True))
        batch_op.create_check_constraint(
            "ck_audit_logs_resource", "resource IN ('user', 'card', 'transaction')"
        )
    op.create_index("ix_audit_logs_user_card", "audit_logs", ["user_id", "card_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_audit_logs_user_card", table_name="audit_logs")
    with op.batch_alter_table("audit_logs") as batch_op:
        batch_op.drop_constraint("ck_audit_logs_resource", type_="check")
        batch_op.drop_column("card_id")
