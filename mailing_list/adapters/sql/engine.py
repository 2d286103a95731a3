"""
Connection pool factory.

One SQLAlchemy Engine per process; its QueuePool bounds concurrent
queries and fails acquisition after ``acquire_timeout_seconds``.
Connections are opened lazily on first use.
"""

from __future__ import annotations

import sqlite3
from typing import Any

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.engine import URL, make_url
from sqlalchemy.pool import StaticPool

from mailing_list.settings.models import DatabaseSettings


def database_url(settings: DatabaseSettings) -> URL:
    """Build the connection URL; an explicit ``url`` wins over the parts."""
    if settings.url is not None:
        return make_url(settings.url.get_secret_value())

    return URL.create(
        drivername="postgresql+psycopg2",
        username=settings.username,
        password=settings.password.get_secret_value(),
        host=settings.host,
        port=settings.port,
        database=settings.database_name,
        query={"sslmode": "require" if settings.require_ssl else "prefer"},
    )


def _enable_sqlite_foreign_keys(dbapi_conn: sqlite3.Connection, _record: Any) -> None:
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys = ON;")
    cursor.close()


def create_pool(settings: DatabaseSettings) -> Engine:
    """
    Create the shared engine.

    Args:
        settings: Database settings

    Returns:
        Engine whose pool is shared by every request
    """
    url = database_url(settings)

    if url.get_backend_name() == "sqlite":
        kwargs: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if url.database not in (None, "", ":memory:"):
            # File databases get a QueuePool; in-memory ones a single shared connection.
            kwargs.update(
                pool_size=settings.pool_size,
                max_overflow=settings.max_overflow,
                pool_timeout=settings.acquire_timeout_seconds,
            )
        else:
            kwargs["poolclass"] = StaticPool
        engine = create_engine(url, **kwargs)
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
        return engine

    return create_engine(
        url,
        pool_size=settings.pool_size,
        max_overflow=settings.max_overflow,
        pool_timeout=settings.acquire_timeout_seconds,
        pool_pre_ping=True,
    )
