from pathlib import Path

import pytest
from pydantic import SecretStr
from sqlalchemy import inspect, text

from mailing_list.adapters.sql.engine import create_pool
from mailing_list.adapters.sql.migrator import MIGRATIONS_DIR, SqlMigrator
from mailing_list.settings.models import DatabaseSettings


@pytest.fixture
def bare_engine(tmp_path):
    engine = create_pool(DatabaseSettings(url=SecretStr(f"sqlite:///{tmp_path / 'm.db'}")))
    yield engine
    engine.dispose()


def test_migrator_creates_migration_table(bare_engine):
    SqlMigrator(bare_engine).run_migrations()

    assert "_migrations" in inspect(bare_engine).get_table_names()


def test_migrator_applies_all_scripts(bare_engine):
    applied = SqlMigrator(bare_engine).run_migrations()

    assert applied == [
        "0001_create_subscriptions.sql",
        "0002_create_subscription_tokens.sql",
    ]
    tables = set(inspect(bare_engine).get_table_names())
    assert {"subscriptions", "subscription_tokens"} <= tables

    with bare_engine.connect() as conn:
        recorded = conn.execute(text("SELECT filename FROM _migrations")).scalars().all()
    assert sorted(recorded) == applied


def test_migrator_is_idempotent(bare_engine):
    migrator = SqlMigrator(bare_engine)
    migrator.run_migrations()

    assert migrator.pending_migrations() == []
    assert migrator.run_migrations() == []


def test_down_section_is_not_applied(bare_engine):
    SqlMigrator(bare_engine).run_migrations()

    # The Down section drops the tables; they must still exist.
    assert "subscriptions" in inspect(bare_engine).get_table_names()


def test_failing_migration_raises_and_is_not_recorded(bare_engine, tmp_path: Path):
    migrations = tmp_path / "migrations"
    migrations.mkdir()
    (migrations / "0001_ok.sql").write_text("CREATE TABLE ok (id TEXT);\n")
    (migrations / "0002_broken.sql").write_text("CREATE TABLE broken (;\n")

    migrator = SqlMigrator(bare_engine, migrations)

    with pytest.raises(RuntimeError, match="0002_broken.sql"):
        migrator.run_migrations()

    assert migrator.pending_migrations() == ["0002_broken.sql"]


def test_shipped_migrations_directory_exists():
    files = sorted(p.name for p in MIGRATIONS_DIR.glob("*.sql"))
    assert files[0].startswith("0001_")
