"""Initial schema: key-value ledger storage and the sale journal

Revision ID: 20261019_nibso_initial
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_nibso_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "kv_entries",
        sa.Column("key", sa.String(length=128), nullable=False),
        sa.Column("value", sa.Text(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.PrimaryKeyConstraint("key"),
    )

    op.create_table(
        "sale_events",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("transaction_id", sa.String(length=64), nullable=False),
        sa.Column("sale_date", sa.String(length=10), nullable=False),
        sa.Column("total", sa.Float(), nullable=False),
        sa.Column("lines_json", sa.Text(), nullable=False),
        sa.Column("member_id", sa.String(length=64), nullable=True),
        sa.Column("is_delivery", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("occurred_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("transaction_id"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_sale_events_sale_date", "sale_events", ["sale_date"], unique=False)


def downgrade():
    op.drop_index("ix_sale_events_sale_date", table_name="sale_events")
    op.drop_table("sale_events")
    op.drop_table("kv_entries")
