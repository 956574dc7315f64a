"""SQLAlchemy metadata definitions for the key-value item store."""

from __future__ import annotations

import sqlalchemy as sa

metadata = sa.MetaData()

kv_items = sa.Table(
    "kv_items",
    metadata,
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

kv_item_indexes = sa.Table(
    "kv_item_indexes",
    metadata,
    sa.Column("table_name", sa.Text(), primary_key=True, nullable=False),
    sa.Column("index_name", sa.Text(), primary_key=True, nullable=False),
    sa.Column("item_key", sa.Text(), primary_key=True, nullable=False),
    sa.Column("index_value", sa.Text(), nullable=False),
)

sa.Index(
    "ix_kv_item_indexes_lookup",
    kv_item_indexes.c.table_name,
    kv_item_indexes.c.index_name,
    kv_item_indexes.c.index_value,
)
