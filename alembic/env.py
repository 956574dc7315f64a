"""Alembic environment for the key-value item and index tables."""

from __future__ import annotations

import asyncio
import os
from logging.config import fileConfig
from pathlib import Path

from dotenv import load_dotenv
from sqlalchemy import engine_from_config, pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import async_engine_from_config

from alembic import context
from credential_lifecycle.infrastructure.db.metadata import metadata

config = context.config

_DEFAULT_ALEMBIC_URL = "sqlite:///./credentials.db"
_ASYNC_DRIVERS = ("+asyncpg", "+aiosqlite")

# DATABASE_URL from .env only replaces the ini default, never a URL set by a caller.
load_dotenv(Path(__file__).resolve().parents[1] / ".env")
_env_url = os.getenv("DATABASE_URL")
if _env_url and config.get_main_option("sqlalchemy.url") == _DEFAULT_ALEMBIC_URL:
    config.set_main_option("sqlalchemy.url", _env_url)

if config.config_file_name is not None:
    fileConfig(config.config_file_name, disable_existing_loggers=False)


def _configured_url() -> str:
    return config.get_main_option("sqlalchemy.url") or _DEFAULT_ALEMBIC_URL


def _engine_options() -> dict[str, str]:
    options = config.get_section(config.config_ini_section, {})
    options["sqlalchemy.url"] = _configured_url()
    return options


def run_migrations_offline() -> None:
    """Emit migration SQL without a live connection."""

    context.configure(
        url=_configured_url(),
        target_metadata=metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def _run_with_connection(connection: Connection) -> None:
    context.configure(
        connection=connection,
        target_metadata=metadata,
        render_as_batch=connection.dialect.name == "sqlite",
    )
    with context.begin_transaction():
        context.run_migrations()


async def _run_async_migrations() -> None:
    connectable = async_engine_from_config(
        _engine_options(),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    async with connectable.connect() as connection:
        await connection.run_sync(_run_with_connection)
    await connectable.dispose()


def run_migrations_online() -> None:
    """Run migrations against the configured database, sync or async driver."""

    if any(driver in _configured_url() for driver in _ASYNC_DRIVERS):
        asyncio.run(_run_async_migrations())
        return

    connectable = engine_from_config(
        _engine_options(),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        _run_with_connection(connection)


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
