from __future__ import annotations

from pathlib import Path

import pytest
import sqlalchemy as sa
from alembic.config import Config

from alembic import command
from credential_lifecycle.application.errors import StorageUnavailableError
from credential_lifecycle.application.ports.key_value_store_port import (
    AttributeAction,
    AttributeUpdate,
    KeyValueStoreError,
)
from credential_lifecycle.application.services.record_store import RecordStore
from credential_lifecycle.infrastructure.db.key_value_store import (
    KeyValueTableSpec,
    SqlAlchemyKeyValueStore,
)
from credential_lifecycle.infrastructure.db.session import create_session_factory

TABLE = "test_Credentials"


def _upgrade_head(tmp_path: Path, filename: str) -> tuple[str, str]:
    db_path = tmp_path / filename
    sync_url = f"sqlite+pysqlite:///{db_path}"
    async_url = f"sqlite+aiosqlite:///{db_path}"

    alembic_config = Config("alembic.ini")
    alembic_config.set_main_option("sqlalchemy.url", sync_url)
    command.upgrade(alembic_config, "head")

    return sync_url, async_url


def _store(async_url: str) -> SqlAlchemyKeyValueStore:
    return SqlAlchemyKeyValueStore(
        create_session_factory(async_url),
        tables={TABLE: KeyValueTableSpec(primary_key="id", indexed_attributes=("email",))},
    )


def _records(store: SqlAlchemyKeyValueStore) -> RecordStore:
    return RecordStore(
        store=store,
        table=TABLE,
        fields=("id", "email", "verified", "verificationToken", "resetTokenExpiresAt"),
        primary_key="id",
    )


@pytest.mark.asyncio
async def test_put_and_query_by_index_round_trips_typed_attributes(tmp_path: Path) -> None:
    _, async_url = _upgrade_head(tmp_path, "kv_put_query.db")
    records = _records(_store(async_url))

    await records.insert(
        {
            "id": "id-1",
            "email": "a@b.com",
            "verified": False,
            "verificationToken": "tok",
            "resetTokenExpiresAt": 1_700_000_600,
            "password": "never-stored",
        }
    )

    found = await records.find_by("email", "a@b.com")
    assert found == {
        "id": "id-1",
        "email": "a@b.com",
        "verified": False,
        "verificationToken": "tok",
        "resetTokenExpiresAt": 1_700_000_600,
    }
    assert await records.find_by("email", "other@b.com") is None


@pytest.mark.asyncio
async def test_update_with_none_removes_attribute_and_keeps_empty_string(
    tmp_path: Path,
) -> None:
    sync_url, async_url = _upgrade_head(tmp_path, "kv_update_delete.db")
    records = _records(_store(async_url))
    await records.insert({"id": "id-1", "email": "a@b.com", "verified": False})
    await records.update_field("id-1", "verificationToken", "")

    await records.update_fields("id-1", {"verified": True, "verificationToken": None})
    after_delete = await records.find_by("email", "a@b.com")
    await records.update_field("id-1", "verificationToken", "")
    after_empty = await records.find_by("email", "a@b.com")

    assert after_delete == {"id": "id-1", "email": "a@b.com", "verified": True}
    assert after_empty is not None
    assert after_empty["verificationToken"] == ""

    engine = sa.create_engine(sync_url)
    with engine.begin() as connection:
        count = connection.execute(sa.text("SELECT COUNT(*) FROM kv_items")).scalar_one()
    assert count == 1


@pytest.mark.asyncio
async def test_index_entries_follow_indexed_attribute_changes(tmp_path: Path) -> None:
    _, async_url = _upgrade_head(tmp_path, "kv_reindex.db")
    store = _store(async_url)
    records = _records(store)
    await records.insert({"id": "id-1", "email": "old@b.com"})

    await store.update_item(
        table=TABLE,
        key={"id": {"S": "id-1"}},
        updates={"email": AttributeUpdate(action=AttributeAction.PUT, value={"S": "new@b.com"})},
    )

    assert await records.find_by("email", "old@b.com") is None
    found = await records.find_by("email", "new@b.com")
    assert found == {"id": "id-1", "email": "new@b.com"}


@pytest.mark.asyncio
async def test_put_item_replaces_existing_item(tmp_path: Path) -> None:
    _, async_url = _upgrade_head(tmp_path, "kv_replace.db")
    records = _records(_store(async_url))

    await records.insert({"id": "id-1", "email": "a@b.com", "verificationToken": "t1"})
    await records.insert({"id": "id-1", "email": "a@b.com", "verified": True})

    assert await records.find_by("email", "a@b.com") == {
        "id": "id-1",
        "email": "a@b.com",
        "verified": True,
    }


@pytest.mark.asyncio
async def test_unknown_index_or_table_is_a_store_error(tmp_path: Path) -> None:
    _, async_url = _upgrade_head(tmp_path, "kv_unknown.db")
    store = _store(async_url)

    with pytest.raises(KeyValueStoreError):
        await store.query_index(
            table=TABLE,
            index_name="verified-index",
            attribute="verified",
            value={"BOOL": True},
        )
    with pytest.raises(KeyValueStoreError):
        await store.put_item(table="Unknown", item={"id": {"S": "x"}})


@pytest.mark.asyncio
async def test_missing_schema_surfaces_storage_unavailable(tmp_path: Path) -> None:
    async_url = f"sqlite+aiosqlite:///{tmp_path / 'kv_no_schema.db'}"
    records = _records(_store(async_url))

    with pytest.raises(StorageUnavailableError):
        await records.find_by("email", "a@b.com")
