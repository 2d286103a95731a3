"""
SQL subscriber store against a migrated SQLite database.
"""

import time
from uuid import uuid4

import pytest
from pydantic import SecretStr
from sqlalchemy import Engine, text

from mailing_list.adapters.sql.engine import create_pool, database_url
from mailing_list.adapters.sql.repos import SqlSubscriberRepo
from mailing_list.components.subscriptions.models import (
    StoreConflictError,
    StoreUnavailableError,
    SubscriptionStatus,
)
from mailing_list.domain.subscriber import NewSubscriber
from mailing_list.settings.models import DatabaseSettings


def new_subscriber(email: str = "ursula_le_guin@gmail.com", name: str = "le guin") -> NewSubscriber:
    return NewSubscriber.parse(name, email)


class TestInsertPending:
    def test_insert_and_read_back(self, repo: SqlSubscriberRepo) -> None:
        subscriber_id = repo.insert_pending(new_subscriber())

        stored = repo.get_by_id(subscriber_id)
        assert stored is not None
        assert stored.id == subscriber_id
        assert stored.email == "ursula_le_guin@gmail.com"
        assert stored.name == "le guin"
        assert stored.status == SubscriptionStatus.PENDING_CONFIRMATION
        assert stored.subscribed_at.tzinfo is not None

    def test_get_by_email(self, repo: SqlSubscriberRepo) -> None:
        subscriber_id = repo.insert_pending(new_subscriber())

        stored = repo.get_by_email("ursula_le_guin@gmail.com")
        assert stored is not None
        assert stored.id == subscriber_id
        assert repo.get_by_email("nobody@example.com") is None

    def test_duplicate_email_is_a_conflict(self, repo: SqlSubscriberRepo) -> None:
        repo.insert_pending(new_subscriber())

        with pytest.raises(StoreConflictError):
            repo.insert_pending(new_subscriber(name="someone else"))

    def test_count_by_status(self, repo: SqlSubscriberRepo) -> None:
        repo.insert_pending(new_subscriber("a@example.com"))
        repo.insert_pending(new_subscriber("b@example.com"))

        assert repo.count_by_status(SubscriptionStatus.PENDING_CONFIRMATION) == 2
        assert repo.count_by_status(SubscriptionStatus.CONFIRMED) == 0


class TestTokens:
    def test_store_and_resolve_token(self, repo: SqlSubscriberRepo) -> None:
        subscriber_id = repo.insert_pending(new_subscriber())
        repo.store_token(subscriber_id, "abcDEF123")

        assert repo.find_subscriber_id_by_token("abcDEF123") == subscriber_id
        assert repo.find_subscriber_id_by_token("unknown") is None

    def test_token_for_unknown_subscriber_is_rejected(self, repo: SqlSubscriberRepo) -> None:
        with pytest.raises(StoreConflictError):
            repo.store_token(uuid4(), "orphan")

    def test_duplicate_token_is_a_conflict(self, repo: SqlSubscriberRepo) -> None:
        subscriber_id = repo.insert_pending(new_subscriber())
        repo.store_token(subscriber_id, "same")

        with pytest.raises(StoreConflictError):
            repo.store_token(subscriber_id, "same")

    def test_several_tokens_per_subscriber(self, repo: SqlSubscriberRepo) -> None:
        subscriber_id = repo.insert_pending(new_subscriber())
        repo.store_token(subscriber_id, "first")
        repo.store_token(subscriber_id, "second")

        assert repo.find_subscriber_id_by_token("first") == subscriber_id
        assert repo.find_subscriber_id_by_token("second") == subscriber_id


class TestMarkConfirmed:
    def test_pending_becomes_confirmed(self, repo: SqlSubscriberRepo) -> None:
        subscriber_id = repo.insert_pending(new_subscriber())

        assert repo.mark_confirmed(subscriber_id) is True
        stored = repo.get_by_id(subscriber_id)
        assert stored is not None
        assert stored.status == SubscriptionStatus.CONFIRMED

    def test_second_confirmation_changes_nothing(self, repo: SqlSubscriberRepo) -> None:
        subscriber_id = repo.insert_pending(new_subscriber())
        repo.mark_confirmed(subscriber_id)

        assert repo.mark_confirmed(subscriber_id) is False
        stored = repo.get_by_id(subscriber_id)
        assert stored is not None
        assert stored.status == SubscriptionStatus.CONFIRMED


class TestTransaction:
    def test_commit_on_clean_exit(self, repo: SqlSubscriberRepo) -> None:
        with repo.transaction() as tx:
            subscriber_id = tx.insert_pending(new_subscriber())
            tx.store_token(subscriber_id, "tok")

        assert repo.find_subscriber_id_by_token("tok") == subscriber_id

    def test_rollback_on_failure(self, repo: SqlSubscriberRepo) -> None:
        with pytest.raises(StoreConflictError):
            with repo.transaction() as tx:
                tx.insert_pending(new_subscriber())
                tx.store_token(uuid4(), "orphan")

        # The subscriber row was rolled back with the failed token insert.
        assert repo.get_by_email("ursula_le_guin@gmail.com") is None

    def test_rollback_on_application_error(self, repo: SqlSubscriberRepo) -> None:
        with pytest.raises(RuntimeError):
            with repo.transaction() as tx:
                tx.insert_pending(new_subscriber())
                raise RuntimeError("boom")

        assert repo.count_by_status(SubscriptionStatus.PENDING_CONFIRMATION) == 0

    def test_nested_transaction_reuses_connection(self, repo: SqlSubscriberRepo) -> None:
        with repo.transaction() as tx:
            with tx.transaction() as inner:
                assert inner is tx


class TestStoreOutage:
    def test_missing_schema_is_unavailable(self, tmp_path) -> None:
        engine = create_pool(DatabaseSettings(url=SecretStr(f"sqlite:///{tmp_path / 'empty.db'}")))
        try:
            repo = SqlSubscriberRepo(engine)
            with pytest.raises(StoreUnavailableError):
                repo.find_subscriber_id_by_token("abc")
            with pytest.raises(StoreUnavailableError):
                repo.insert_pending(new_subscriber())
        finally:
            engine.dispose()

    def test_dropped_table_is_unavailable(self, engine, repo: SqlSubscriberRepo) -> None:
        with engine.begin() as conn:
            conn.execute(text("DROP TABLE subscription_tokens"))

        with pytest.raises(StoreUnavailableError):
            repo.find_subscriber_id_by_token("abc")


class TestPoolExhaustion:
    def test_sqlite_file_pool_uses_configured_size(self, small_pool_engine: Engine) -> None:
        assert small_pool_engine.pool.size() == 1  # type: ignore[attr-defined]

    def test_acquire_timeout_is_unavailable(self, small_pool_engine: Engine) -> None:
        repo = SqlSubscriberRepo(small_pool_engine)

        with small_pool_engine.connect():
            started = time.monotonic()
            with pytest.raises(StoreUnavailableError):
                repo.count_by_status(SubscriptionStatus.PENDING_CONFIRMATION)
            assert time.monotonic() - started < 2.0

        # The pool recovers once the connection is returned.
        assert repo.count_by_status(SubscriptionStatus.PENDING_CONFIRMATION) == 0


class TestDatabaseUrl:
    def test_explicit_url_wins(self) -> None:
        url = database_url(DatabaseSettings(url=SecretStr("sqlite:///x.db")))
        assert url.get_backend_name() == "sqlite"

    def test_postgres_url_from_parts(self) -> None:
        url = database_url(
            DatabaseSettings(
                host="db",
                port=5433,
                username="app",
                password=SecretStr("s3cret"),
                database_name="news",
                require_ssl=True,
            )
        )
        assert url.drivername == "postgresql+psycopg2"
        assert url.host == "db"
        assert url.port == 5433
        assert url.database == "news"
        assert url.password == "s3cret"
        assert url.query["sslmode"] == "require"
        assert "s3cret" not in str(url)

    def test_ssl_is_preferred_when_not_required(self) -> None:
        url = database_url(DatabaseSettings())
        assert url.query["sslmode"] == "prefer"
