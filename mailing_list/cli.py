import argparse
import logging
import sys
from pathlib import Path

import uvicorn

from mailing_list.adapters.sql.engine import create_pool
from mailing_list.adapters.sql.migrator import SqlMigrator
from mailing_list.api.deps import AppContext
from mailing_list.api.main import create_app
from mailing_list.settings.loader import load_settings
from mailing_list.settings.models import Settings
from mailing_list.telemetry import init_logging

logger = logging.getLogger("cli")


def get_settings(config_dir: str | None) -> Settings:
    try:
        return load_settings(Path(config_dir) if config_dir else None)
    except (FileNotFoundError, ValueError) as e:
        print(f"CRITICAL: Settings load failed: {e}", file=sys.stderr)
        sys.exit(1)


def handle_migrate(settings: Settings) -> None:
    engine = create_pool(settings.database)
    try:
        applied = SqlMigrator(engine).run_migrations()
    finally:
        engine.dispose()
    print(f"Applied {len(applied)} migration(s).")


def handle_serve(settings: Settings, args: argparse.Namespace) -> None:
    context = AppContext.create(settings)
    if args.migrate:
        SqlMigrator(context.engine).run_migrations()

    app = create_app(context)
    logger.info("Listening on %s:%s", settings.application.host, settings.application.port)
    uvicorn.run(
        app,
        host=settings.application.host,
        port=settings.application.port,
        log_config=None,  # keep the handlers set up by init_logging
    )


def main() -> None:
    parser = argparse.ArgumentParser(description="Mailing list subscription service")
    parser.add_argument(
        "--config-dir", help="Directory holding base.yaml and <environment>.yaml"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # serve
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP server")
    serve_parser.add_argument(
        "--migrate", action="store_true", help="Apply pending migrations before serving"
    )

    # migrate
    subparsers.add_parser("migrate", help="Apply pending database migrations")

    args = parser.parse_args()

    settings = get_settings(args.config_dir)
    init_logging(settings.logging.level)

    if args.command == "serve":
        handle_serve(settings, args)
    elif args.command == "migrate":
        handle_migrate(settings)


if __name__ == "__main__":
    main()
