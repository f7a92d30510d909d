"""Database module."""
from __future__ import annotations

import orjson
from attrs import frozen
from huskytrack.registration.entities.base import import_entities, metadata
from huskytrack.registration.serialization.json import json_default
from sqlalchemy import event, make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    async_sessionmaker,
    create_async_engine,
)

SQLITE_BUSY_TIMEOUT = 30.0
"""Seconds a SQLite connection waits for the write lock."""


@frozen
class DBConfig:
    """Database configuration class."""

    engine: AsyncEngine
    session_factory: async_sessionmaker

    @classmethod
    def create(cls, url: str) -> DBConfig:
        """Create a :class:`DBConfig`.

        Sessions do not expire objects on commit, so models can be built from
        entities after their transaction ends.
        """
        is_sqlite = make_url(url).get_backend_name() == "sqlite"
        engine = create_async_engine(
            url,
            json_serializer=_json_dumps,
            connect_args={"timeout": SQLITE_BUSY_TIMEOUT} if is_sqlite else {},
        )
        if is_sqlite:
            _use_immediate_transactions(engine)
        session_factory = async_sessionmaker(bind=engine, expire_on_commit=False)
        return cls(engine, session_factory)

    async def close(self):
        """Tear down the DB engine."""
        await self.engine.dispose()

    async def create_tables(self):
        """Create all database tables."""
        import_entities()
        async with self.engine.begin() as conn:
            await conn.run_sync(metadata.create_all)

    async def drop_tables(self):
        """Drop all database tables."""
        async with self.engine.begin() as conn:
            await conn.run_sync(metadata.drop_all)


def _use_immediate_transactions(engine: AsyncEngine):
    """Start SQLite transactions with ``BEGIN IMMEDIATE``.

    SQLite has no ``SELECT ... FOR UPDATE``. Taking the write lock when the
    transaction begins makes concurrent writers wait on the busy timeout
    instead of failing part way through.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # disable the driver's own transaction handling
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def _json_dumps(v):
    return orjson.dumps(v, default=json_default).decode()
