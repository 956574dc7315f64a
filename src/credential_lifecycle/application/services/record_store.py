"""Generic record access over a schemaless key-value store.

A `RecordStore` is configured with one table, its primary key and the fields
it is allowed to write. It converts plain Python values into typed attributes
before they reach the store and strips the type tags again on read. Indexes
follow the `<field>-index` naming convention.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Mapping
from typing import Any

from credential_lifecycle.application.errors import StorageUnavailableError
from credential_lifecycle.application.ports.key_value_store_port import (
    AttributeAction,
    AttributeUpdate,
    AttributeValue,
    Item,
    KeyValueStoreError,
    KeyValueStorePort,
)

logger = logging.getLogger(__name__)

_TYPE_TAGS = frozenset({"S", "N", "BOOL"})


class UnsupportedAttributeTypeError(TypeError):
    """Raised when a value has no typed attribute representation."""

    def __init__(self, *, field: str, value: object) -> None:
        super().__init__(
            f"unsupported attribute type for {field}: {type(value).__name__}"
        )
        self.field = field


class RecordStore:
    """Allowlisted CRUD primitives for one key-value table."""

    def __init__(
        self,
        *,
        store: KeyValueStorePort,
        table: str,
        fields: Iterable[str],
        primary_key: str,
    ) -> None:
        self._store = store
        self._table = table
        self._fields = tuple(fields)
        self._primary_key = primary_key
        if primary_key not in self._fields:
            raise ValueError(f"primary key {primary_key} must be an allowed field")

    @property
    def table(self) -> str:
        return self._table

    async def find_by(self, field: str, value: Any) -> dict[str, Any] | None:
        """Return the first record whose indexed field equals value, or None."""

        try:
            items = await self._store.query_index(
                table=self._table,
                index_name=f"{field}-index",
                attribute=field,
                value=to_attribute(field, value),
            )
        except KeyValueStoreError as error:
            raise StorageUnavailableError(
                f"lookup on {self._table}.{field} failed"
            ) from error

        if not items:
            return None
        return from_item(items[0])

    async def insert(self, fields: Mapping[str, Any]) -> None:
        """Write one new record containing only allowlisted fields."""

        item: Item = {}
        for key, value in fields.items():
            if key not in self._fields:
                logger.debug("record_field_dropped table=%s field=%s", self._table, key)
                continue
            if value is None:
                continue
            item[key] = to_attribute(key, value)

        if self._primary_key not in item:
            raise ValueError(f"record is missing primary key {self._primary_key}")

        try:
            await self._store.put_item(table=self._table, item=item)
        except KeyValueStoreError as error:
            raise StorageUnavailableError(f"insert into {self._table} failed") from error

    async def update_field(self, key: Any, field: str, value: Any) -> None:
        """Set or remove one field; None removes the attribute."""

        await self.update_fields(key, {field: value})

    async def update_fields(self, key: Any, changes: Mapping[str, Any]) -> None:
        """Apply several field changes in one storage operation.

        A None value removes the attribute from the stored item instead of
        storing a null. Fields outside the allowlist are ignored.
        """

        updates: dict[str, AttributeUpdate] = {}
        for field, value in changes.items():
            if field not in self._fields:
                logger.debug("record_field_dropped table=%s field=%s", self._table, field)
                continue
            if field == self._primary_key:
                raise ValueError(f"primary key {field} is immutable")
            if value is None:
                updates[field] = AttributeUpdate(action=AttributeAction.DELETE)
            else:
                updates[field] = AttributeUpdate(
                    action=AttributeAction.PUT,
                    value=to_attribute(field, value),
                )

        if not updates:
            return

        try:
            await self._store.update_item(
                table=self._table,
                key={self._primary_key: to_attribute(self._primary_key, key)},
                updates=updates,
            )
        except KeyValueStoreError as error:
            raise StorageUnavailableError(f"update of {self._table} failed") from error


def to_attribute(field: str, value: Any) -> AttributeValue:
    """Wrap one plain value into its typed attribute."""

    if isinstance(value, bool):
        return {"BOOL": value}
    if isinstance(value, str):
        return {"S": value}
    if isinstance(value, int) or (isinstance(value, float) and math.isfinite(value)):
        return {"N": str(value)}
    raise UnsupportedAttributeTypeError(field=field, value=value)


def from_attribute(attribute: AttributeValue) -> Any:
    """Unwrap one typed attribute; unknown shapes are returned as-is."""

    if len(attribute) != 1:
        return attribute
    tag, raw = next(iter(attribute.items()))
    if tag not in _TYPE_TAGS:
        return attribute
    if tag == "N":
        text = str(raw)
        if any(marker in text for marker in (".", "e", "E")):
            return float(text)
        return int(text)
    return raw


def from_item(item: Item) -> dict[str, Any]:
    """Strip type tags from every attribute of one stored item."""

    return {key: from_attribute(attribute) for key, attribute in item.items()}
