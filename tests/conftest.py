from collections.abc import Iterator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from pydantic import SecretStr
from sqlalchemy import Engine

from mailing_list.adapters.dev_email import DevEmailAdapter
from mailing_list.adapters.sql.engine import create_pool
from mailing_list.adapters.sql.migrator import SqlMigrator
from mailing_list.adapters.sql.repos import SqlSubscriberRepo
from mailing_list.api.deps import AppContext
from mailing_list.api.main import create_app
from mailing_list.settings.models import (
    ApplicationSettings,
    DatabaseSettings,
    EmailClientSettings,
    Settings,
)

TEST_BASE_URL = "http://testserver"


def sqlite_settings(db_path: Path) -> DatabaseSettings:
    return DatabaseSettings(url=SecretStr(f"sqlite:///{db_path}"))


@pytest.fixture
def db_settings(tmp_path: Path) -> DatabaseSettings:
    return sqlite_settings(tmp_path / "newsletter.db")


@pytest.fixture
def engine(db_settings: DatabaseSettings) -> Iterator[Engine]:
    """
    Fresh SQLite database per test with all migrations applied.
    """
    engine = create_pool(db_settings)
    SqlMigrator(engine).run_migrations()
    yield engine
    engine.dispose()


@pytest.fixture
def small_pool_engine(tmp_path: Path) -> Iterator[Engine]:
    """
    Migrated database behind a one-connection pool with a short acquire timeout.
    """
    settings = DatabaseSettings(
        url=SecretStr(f"sqlite:///{tmp_path / 'small_pool.db'}"),
        pool_size=1,
        max_overflow=0,
        acquire_timeout_seconds=0.3,
    )
    engine = create_pool(settings)
    SqlMigrator(engine).run_migrations()
    yield engine
    engine.dispose()


@pytest.fixture
def repo(engine: Engine) -> SqlSubscriberRepo:
    return SqlSubscriberRepo(engine)


@pytest.fixture
def settings(db_settings: DatabaseSettings) -> Settings:
    return Settings(
        application=ApplicationSettings(host="127.0.0.1", port=0, base_url=TEST_BASE_URL),
        database=db_settings,
        email_client=EmailClientSettings(
            backend="dev",
            base_url="http://localhost",
            sender_email="newsletter@example.com",
            authorization_token=SecretStr("test-token"),
            timeout_milliseconds=200,
        ),
    )


@pytest.fixture
def email_outbox() -> DevEmailAdapter:
    return DevEmailAdapter(sender="newsletter@example.com")


@pytest.fixture
def client(settings: Settings, engine: Engine, email_outbox: DevEmailAdapter) -> TestClient:
    """
    App wired to the test database and the in-memory email outbox.
    """
    context = AppContext(settings=settings, engine=engine, email_client=email_outbox)
    return TestClient(create_app(context))
