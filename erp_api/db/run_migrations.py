"""
Programmatic Alembic runner for the ERP schema.

No alembic.ini is needed: the script location points at the migrations
package next to this module and the URL comes from the database settings.

Usage examples:
    python -m erp_api.db.run_migrations upgrade head
    python -m erp_api.db.run_migrations downgrade -1
    python -m erp_api.db.run_migrations revision -m "add column"
"""

import logging
import sys
from pathlib import Path
from typing import List

from alembic import command
from alembic.config import Config

from erp_api.db.config import get_settings

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).resolve().parent / "migrations"


# PUBLIC_INTERFACE
def build_config() -> Config:
    """Return an Alembic Config bound to the packaged migrations and the configured database."""
    cfg = Config()
    cfg.set_main_option("script_location", str(MIGRATIONS_DIR))
    cfg.set_main_option("sqlalchemy.url", get_settings().sync_database_url)
    return cfg


# PUBLIC_INTERFACE
def main(argv: List[str] | None = None) -> None:
    """Run one Alembic command, e.g. ["upgrade", "head"]."""
    args = list(sys.argv[1:] if argv is None else argv)
    if not args:
        raise SystemExit("No Alembic arguments provided. Example: upgrade head")

    cfg = build_config()
    cmd, other = args[0], args[1:]
    logger.info("alembic %s %s", cmd, " ".join(other))

    if cmd == "upgrade":
        command.upgrade(cfg, *(other or ["head"]))
    elif cmd == "downgrade":
        command.downgrade(cfg, *(other or ["-1"]))
    elif cmd == "history":
        command.history(cfg)
    elif cmd == "current":
        command.current(cfg)
    elif cmd == "heads":
        command.heads(cfg)
    elif cmd == "revision":
        message = None
        if len(other) >= 2 and other[0] == "-m":
            message = other[1]
        command.revision(cfg, message=message, autogenerate="--autogenerate" in other)
    elif cmd == "show":
        if not other:
            raise SystemExit("Usage: show <revision>")
        command.show(cfg, other[0])
    else:
        raise SystemExit(f"Unsupported Alembic command: {cmd}")


if __name__ == "__main__":
    main()
