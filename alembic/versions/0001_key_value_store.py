"""Key-value item store tables with materialized secondary indexes."""

from __future__ import annotations

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "0001_key_value_store"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "kv_items",
        sa.Column("table_name", sa.Text(), primary_key=True, nullable=False),
        sa.Column("item_key", sa.Text(), primary_key=True, nullable=False),
        sa.Column("attributes", sa.JSON(), nullable=False),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
    )
    op.create_table(
        "kv_item_indexes",
        sa.Column("table_name", sa.Text(), primary_key=True, nullable=False),
        sa.Column("index_name", sa.Text(), primary_key=True, nullable=False),
        sa.Column("item_key", sa.Text(), primary_key=True, nullable=False),
        sa.Column("index_value", sa.Text(), nullable=False),
    )
    op.create_index(
        "ix_kv_item_indexes_lookup",
        "kv_item_indexes",
        ["table_name", "index_name", "index_value"],
    )


def downgrade() -> None:
    op.drop_index("ix_kv_item_indexes_lookup", table_name="kv_item_indexes")
    op.drop_table("kv_item_indexes")
    op.drop_table("kv_items")
