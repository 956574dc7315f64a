"""Async SQLAlchemy engine and session factory for the item store."""

from __future__ import annotations

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine


def create_session_factory(database_url: str) -> async_sessionmaker[AsyncSession]:
    """Create the session factory used by `SqlAlchemyKeyValueStore`.

    Server databases get pre-ping so connections dropped by the server are
    replaced before a credential read or write uses them.
    """

    is_sqlite = make_url(database_url).get_backend_name() == "sqlite"
    engine = create_async_engine(database_url, pool_pre_ping=not is_sqlite)
    return async_sessionmaker(engine, expire_on_commit=False)
