"""SQLAlchemy adapter emulating a schemaless key-value item store.

Items are stored whole as JSON typed-attribute maps. Every configured
secondary index is materialized in `kv_item_indexes`, keyed by the canonical
JSON encoding of the indexed typed attribute, and rewritten in the same
transaction as the item itself.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass
from typing import cast

import sqlalchemy as sa
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from credential_lifecycle.application.ports.key_value_store_port import (
    AttributeAction,
    AttributeUpdate,
    AttributeValue,
    Item,
    KeyValueStoreError,
    KeyValueStorePort,
)
from credential_lifecycle.infrastructure.db.metadata import kv_item_indexes, kv_items


@dataclass(frozen=True)
class KeyValueTableSpec:
    """Primary key attribute and indexed attributes of one logical table."""

    primary_key: str
    indexed_attributes: tuple[str, ...] = ()


class SqlAlchemyKeyValueStore(KeyValueStorePort):
    """Key-value store backed by SQLAlchemy async sessions."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        tables: Mapping[str, KeyValueTableSpec],
    ) -> None:
        self._session_factory = session_factory
        self._tables = dict(tables)

    async def query_index(
        self,
        *,
        table: str,
        index_name: str,
        attribute: str,
        value: AttributeValue,
    ) -> list[Item]:
        """Return items whose indexed attribute equals the typed value."""

        spec = self._spec(table)
        if attribute not in spec.indexed_attributes or index_name != f"{attribute}-index":
            raise KeyValueStoreError(f"unknown index {index_name} on table {table}")

        statement = (
            sa.select(kv_items.c.attributes)
            .join(
                kv_item_indexes,
                sa.and_(
                    kv_item_indexes.c.table_name == kv_items.c.table_name,
                    kv_item_indexes.c.item_key == kv_items.c.item_key,
                ),
            )
            .where(
                kv_item_indexes.c.table_name == table,
                kv_item_indexes.c.index_name == index_name,
                kv_item_indexes.c.index_value == _encode(value),
            )
            .order_by(kv_items.c.item_key)
        )

        try:
            async with self._session_factory() as session:
                result = await session.execute(statement)
        except SQLAlchemyError as error:
            raise KeyValueStoreError(f"query on {table}.{index_name} failed") from error

        return [cast(Item, row["attributes"]) for row in result.mappings().all()]

    async def put_item(self, *, table: str, item: Item) -> None:
        """Insert or replace one full item and its index entries."""

        spec = self._spec(table)
        key_attribute = item.get(spec.primary_key)
        if key_attribute is None:
            raise KeyValueStoreError(f"item for {table} is missing {spec.primary_key}")
        item_key = _encode(key_attribute)

        try:
            async with self._session_factory() as session, session.begin():
                await session.execute(
                    sa.delete(kv_items).where(
                        kv_items.c.table_name == table,
                        kv_items.c.item_key == item_key,
                    )
                )
                await session.execute(
                    sa.insert(kv_items).values(
                        table_name=table,
                        item_key=item_key,
                        attributes=dict(item),
                    )
                )
                await self._rewrite_indexes(
                    session,
                    table=table,
                    item_key=item_key,
                    spec=spec,
                    item=item,
                )
        except SQLAlchemyError as error:
            raise KeyValueStoreError(f"put on {table} failed") from error

    async def update_item(
        self,
        *,
        table: str,
        key: Item,
        updates: dict[str, AttributeUpdate],
    ) -> None:
        """Apply attribute updates in one transaction, creating the item if absent."""

        spec = self._spec(table)
        key_attribute = key.get(spec.primary_key)
        if key_attribute is None or len(key) != 1:
            raise KeyValueStoreError(f"key for {table} must be exactly {spec.primary_key}")
        if spec.primary_key in updates:
            raise KeyValueStoreError(f"primary key {spec.primary_key} cannot be updated")
        item_key = _encode(key_attribute)

        try:
            async with self._session_factory() as session, session.begin():
                result = await session.execute(
                    sa.select(kv_items.c.attributes).where(
                        kv_items.c.table_name == table,
                        kv_items.c.item_key == item_key,
                    )
                )
                row = result.mappings().first()
                existing = row is not None
                item: Item = dict(cast(Item, row["attributes"])) if row is not None else dict(key)

                for attribute, update in updates.items():
                    if update.action is AttributeAction.DELETE:
                        item.pop(attribute, None)
                    elif update.value is not None:
                        item[attribute] = update.value
                    else:
                        raise KeyValueStoreError(f"PUT on {attribute} requires a value")

                if existing:
                    await session.execute(
                        sa.update(kv_items)
                        .where(
                            kv_items.c.table_name == table,
                            kv_items.c.item_key == item_key,
                        )
                        .values(attributes=item, updated_at=sa.func.current_timestamp())
                    )
                else:
                    await session.execute(
                        sa.insert(kv_items).values(
                            table_name=table,
                            item_key=item_key,
                            attributes=item,
                        )
                    )
                await self._rewrite_indexes(
                    session,
                    table=table,
                    item_key=item_key,
                    spec=spec,
                    item=item,
                )
        except SQLAlchemyError as error:
            raise KeyValueStoreError(f"update on {table} failed") from error

    async def _rewrite_indexes(
        self,
        session: AsyncSession,
        *,
        table: str,
        item_key: str,
        spec: KeyValueTableSpec,
        item: Item,
    ) -> None:
        await session.execute(
            sa.delete(kv_item_indexes).where(
                kv_item_indexes.c.table_name == table,
                kv_item_indexes.c.item_key == item_key,
            )
        )
        rows = [
            {
                "table_name": table,
                "index_name": f"{attribute}-index",
                "item_key": item_key,
                "index_value": _encode(item[attribute]),
            }
            for attribute in spec.indexed_attributes
            if attribute in item
        ]
        if rows:
            await session.execute(sa.insert(kv_item_indexes), rows)

    def _spec(self, table: str) -> KeyValueTableSpec:
        spec = self._tables.get(table)
        if spec is None:
            raise KeyValueStoreError(f"unknown table {table}")
        return spec


def _encode(value: AttributeValue) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"))
