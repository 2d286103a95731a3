import logging
import os
from datetime import UTC, datetime
from pathlib import Path

from sqlalchemy import Connection, Engine, text

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).parent / "migrations"


class SqlMigrator:
    def __init__(self, engine: Engine, migrations_dir: str | Path = MIGRATIONS_DIR):
        self.engine = engine
        self.migrations_dir = str(migrations_dir)

    def _ensure_migration_table(self, conn: Connection) -> None:
        conn.exec_driver_sql("""
            CREATE TABLE IF NOT EXISTS _migrations (
                filename TEXT NOT NULL PRIMARY KEY,
                applied_at timestamptz NOT NULL
            )
        """)

    def _get_applied_migrations(self, conn: Connection) -> set[str]:
        result = conn.execute(text("SELECT filename FROM _migrations"))
        return {row[0] for row in result}

    def pending_migrations(self) -> list[str]:
        """List migration files not yet applied, in order."""
        with self.engine.begin() as conn:
            self._ensure_migration_table(conn)
            applied = self._get_applied_migrations(conn)
        return [f for f in self._migration_files() if f not in applied]

    def run_migrations(self) -> list[str]:
        """Apply all pending migrations; returns the files applied."""
        applied_now = []
        for filename in self.pending_migrations():
            logger.info("Applying migration: %s", filename)
            self._apply_migration(filename)
            applied_now.append(filename)

        logger.info("All migrations applied.")
        return applied_now

    def _migration_files(self) -> list[str]:
        return sorted(f for f in os.listdir(self.migrations_dir) if f.endswith(".sql"))

    def _read_up_script(self, filename: str) -> str:
        path = os.path.join(self.migrations_dir, filename)
        with open(path) as f:
            content = f.read()

        # File starts with Up; everything after '-- Down' is ignored.
        if "-- Down" in content:
            return content.split("-- Down")[0]
        return content

    def _split_statements(self, script: str) -> list[str]:
        lines = [line for line in script.splitlines() if not line.strip().startswith("--")]
        return [s.strip() for s in "\n".join(lines).split(";") if s.strip()]

    def _apply_migration(self, filename: str) -> None:
        script = self._read_up_script(filename)
        try:
            with self.engine.begin() as conn:
                for statement in self._split_statements(script):
                    conn.exec_driver_sql(statement)
                conn.execute(
                    text("INSERT INTO _migrations (filename, applied_at) VALUES (:f, :at)"),
                    {"f": filename, "at": datetime.now(UTC).isoformat()},
                )
        except Exception as e:
            raise RuntimeError(f"Migration {filename} failed: {e}") from e
