"""Port for schemaless key-value item storage with typed attributes."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Protocol

AttributeValue = dict[str, object]
"""One typed attribute, e.g. `{"S": "text"}`, `{"N": "42"}` or `{"BOOL": True}`."""

Item = dict[str, AttributeValue]


class AttributeAction(StrEnum):
    """Supported partial-update actions for one attribute."""

    PUT = "PUT"
    DELETE = "DELETE"


@dataclass(frozen=True)
class AttributeUpdate:
    """One attribute change applied by `update_item`."""

    action: AttributeAction
    value: AttributeValue | None = None


class KeyValueStoreError(RuntimeError):
    """Raised for any failure reported by the underlying key-value store."""


class KeyValueStorePort(Protocol):
    """Schemaless key-value store contract."""

    async def query_index(
        self,
        *,
        table: str,
        index_name: str,
        attribute: str,
        value: AttributeValue,
    ) -> list[Item]:
        """Return items whose indexed attribute equals the typed value."""

    async def put_item(self, *, table: str, item: Item) -> None:
        """Insert or replace one full item."""

    async def update_item(
        self,
        *,
        table: str,
        key: Item,
        updates: dict[str, AttributeUpdate],
    ) -> None:
        """Apply all attribute updates to one item as a single operation."""
