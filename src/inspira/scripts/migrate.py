# src/inspira/scripts/migrate.py
"""Apply Alembic migrations up to head."""
from __future__ import annotations

import logging
import os

from alembic import command
from alembic.config import Config

from inspira.core.logging import configure_logging
from inspira.core.settings import settings

MIGRATIONS_DIR = os.path.abspath(
    os.path.join(os.path.dirname(__file__), "..", "..", "..", "migrations")
)

logger = logging.getLogger(__name__)


def run_upgrade_head() -> None:
    cfg = Config(os.path.join(MIGRATIONS_DIR, "alembic.ini"))
    # Alembic runs synchronously; use the sync driver URL
    cfg.set_main_option("sqlalchemy.url", settings.database_url_sync)
    cfg.set_main_option("script_location", MIGRATIONS_DIR)
    logger.info("Upgrading database schema to head")
    command.upgrade(cfg, "head")


if __name__ == "__main__":
    configure_logging()
    run_upgrade_head()
