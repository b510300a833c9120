"""Purchase tables: users, payments and tickets."""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "20251018_01"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "user_data",
        sa.Column("id_user", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=200), nullable=False, server_default=""),
        sa.Column("email", sa.String(length=320), nullable=True),
        sa.Column("id_card", sa.String(length=50), nullable=True),
    )

    op.create_table(
        "pay_data",
        sa.Column("id_pay", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("validated", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("id_user", sa.Integer(), sa.ForeignKey("user_data.id_user"), nullable=False),
    )
    op.create_index("ix_pay_data_id_user", "pay_data", ["id_user"], unique=False)

    op.create_table(
        "tickets",
        sa.Column("id_tickets", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("tickets", sa.String(length=50), nullable=False),
        sa.Column("email_send", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("pay_id", sa.Integer(), sa.ForeignKey("pay_data.id_pay"), nullable=False),
    )
    op.create_index("ix_tickets_pay_id", "tickets", ["pay_id"], unique=False)
    op.create_index("ix_tickets_email_send", "tickets", ["email_send"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_tickets_email_send", table_name="tickets")
    op.drop_index("ix_tickets_pay_id", table_name="tickets")
    op.drop_table("tickets")
    op.drop_index("ix_pay_data_id_user", table_name="pay_data")
    op.drop_table("pay_data")
    op.drop_table("user_data")
