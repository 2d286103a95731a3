"""
SQL Subscriber Store (SubscriberRepoPort implementation).

SQLAlchemy Core with plain SQL statements; runs on PostgreSQL in
production and SQLite for local runs and tests.

Connections are borrowed from the engine's pool for the duration of one
statement, or of one ``transaction()`` block. SQLAlchemy errors are
translated at this boundary:
- IntegrityError → StoreConflictError
- anything else (incl. pool acquisition timeout) → StoreUnavailableError
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import Connection, Engine, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from mailing_list.components.subscriptions.models import (
    StoreConflictError,
    StoreUnavailableError,
    Subscriber,
    SubscriptionStatus,
)
from mailing_list.domain.subscriber import NewSubscriber

logger = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# Helper functions
# -----------------------------------------------------------------------------


def parse_dt(value: str | datetime) -> datetime:
    """Parse a stored timestamp (ISO string on SQLite, datetime on Postgres)."""
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


def parse_uuid(value: Any) -> UUID | None:
    """Parse a stored UUID (string or native)."""
    if value is None:
        return None
    if isinstance(value, UUID):
        return value
    return UUID(str(value))


@contextmanager
def translate_errors() -> Iterator[None]:
    """Re-raise SQLAlchemy errors as store errors."""
    try:
        yield
    except IntegrityError as e:
        raise StoreConflictError(str(e.orig)) from e
    except SQLAlchemyError as e:
        logger.error("Subscriber store failure: %s", e)
        raise StoreUnavailableError(type(e).__name__) from e


# -----------------------------------------------------------------------------
# Base SQL Repository
# -----------------------------------------------------------------------------


class SqlRepoBase:
    """Base class for SQL repositories."""

    def __init__(self, engine: Engine, connection: Connection | None = None):
        self.engine = engine
        self._external_conn = connection

    @contextmanager
    def _connect(self) -> Iterator[Connection]:
        """Yield the bound connection, or a pooled one in its own transaction."""
        with translate_errors():
            if self._external_conn is not None:
                yield self._external_conn
            else:
                with self.engine.begin() as conn:
                    yield conn


# -----------------------------------------------------------------------------
# Subscriber Repository
# -----------------------------------------------------------------------------


class SqlSubscriberRepo(SqlRepoBase):
    """Subscribers and their confirmation tokens."""

    def insert_pending(self, new_subscriber: NewSubscriber) -> UUID:
        subscriber_id = uuid4()
        with self._connect() as conn:
            conn.execute(
                text(
                    """
                    INSERT INTO subscriptions (id, email, name, subscribed_at, status)
                    VALUES (:id, :email, :name, :subscribed_at, :status)
                    """
                ),
                {
                    "id": str(subscriber_id),
                    "email": new_subscriber.email.value,
                    "name": new_subscriber.name.value,
                    "subscribed_at": datetime.now(UTC).isoformat(),
                    "status": SubscriptionStatus.PENDING_CONFIRMATION.value,
                },
            )
        return subscriber_id

    def store_token(self, subscriber_id: UUID, token: str) -> None:
        with self._connect() as conn:
            conn.execute(
                text(
                    """
                    INSERT INTO subscription_tokens (subscription_token, subscriber_id)
                    VALUES (:token, :subscriber_id)
                    """
                ),
                {"token": token, "subscriber_id": str(subscriber_id)},
            )

    def find_subscriber_id_by_token(self, token: str) -> UUID | None:
        with self._connect() as conn:
            row = conn.execute(
                text(
                    "SELECT subscriber_id FROM subscription_tokens "
                    "WHERE subscription_token = :token"
                ),
                {"token": token},
            ).first()
        return parse_uuid(row[0]) if row else None

    def mark_confirmed(self, subscriber_id: UUID) -> bool:
        # Only pending rows match, so the status can never move backwards.
        with self._connect() as conn:
            result = conn.execute(
                text("UPDATE subscriptions SET status = :confirmed WHERE id = :id AND status = :pending"),
                {
                    "id": str(subscriber_id),
                    "confirmed": SubscriptionStatus.CONFIRMED.value,
                    "pending": SubscriptionStatus.PENDING_CONFIRMATION.value,
                },
            )
            changed = result.rowcount == 1
        return changed

    def get_by_id(self, subscriber_id: UUID) -> Subscriber | None:
        with self._connect() as conn:
            row = conn.execute(
                text("SELECT * FROM subscriptions WHERE id = :id"),
                {"id": str(subscriber_id)},
            ).mappings().first()
        return self._map_row(row) if row else None

    def get_by_email(self, email: str) -> Subscriber | None:
        with self._connect() as conn:
            row = conn.execute(
                text("SELECT * FROM subscriptions WHERE email = :email"),
                {"email": email},
            ).mappings().first()
        return self._map_row(row) if row else None

    def count_by_status(self, status: SubscriptionStatus) -> int:
        with self._connect() as conn:
            count = conn.execute(
                text("SELECT COUNT(*) FROM subscriptions WHERE status = :status"),
                {"status": status.value},
            ).scalar_one()
        return int(count)

    @contextmanager
    def transaction(self) -> Iterator[SqlSubscriberRepo]:
        """Repo bound to one pooled connection; commits on clean exit."""
        if self._external_conn is not None:
            yield self
            return

        with translate_errors():
            with self.engine.begin() as conn:
                yield SqlSubscriberRepo(self.engine, connection=conn)

    def _map_row(self, row: Any) -> Subscriber:
        return Subscriber(
            id=UUID(str(row["id"])),
            email=row["email"],
            name=row["name"],
            subscribed_at=parse_dt(row["subscribed_at"]),
            status=SubscriptionStatus(row["status"]),
        )
