from __future__ import annotations

import logging
import os
from pathlib import Path

from alembic import command
from alembic.config import Config

from worktrack.infra.db import DATABASE_URL

logger = logging.getLogger(__name__)

ALEMBIC_INI = Path(os.getenv("WORKTRACK_ALEMBIC_INI", "alembic.ini"))
AUTO_MIGRATE = os.getenv("WORKTRACK_AUTO_MIGRATE", "false").lower() in {"1", "true", "yes"}


def alembic_config(database_url: str | None = None) -> Config:
    config = Config(str(ALEMBIC_INI))
    config.set_main_option("sqlalchemy.url", database_url or DATABASE_URL)
    return config


def run_upgrade_head(database_url: str | None = None) -> None:
    logger.info("applying migrations up to head")
    command.upgrade(alembic_config(database_url), "head")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    run_upgrade_head()
