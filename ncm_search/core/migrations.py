from __future__ import annotations

import asyncio
from pathlib import Path

from alembic import command
from alembic.config import Config

from ncm_search.config import settings
from ncm_search.utils.logger import logger

PROJECT_ROOT = Path(__file__).resolve().parents[2]


def build_alembic_config() -> Config:
    """
    Point Alembic at the bundled migration scripts and the configured database.
    """

    alembic_cfg = Config(str(PROJECT_ROOT / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(PROJECT_ROOT / "alembic"))
    alembic_cfg.set_main_option("sqlalchemy.url", settings.database.sync_url())
    alembic_cfg.attributes["configure_logger"] = False
    return alembic_cfg


def run_migrations(revision: str = "head") -> None:
    """
    Upgrade the nomenclature schema to the given revision.
    """

    logger.info(f"Applying database migrations up to '{revision}'")
    command.upgrade(build_alembic_config(), revision)
    logger.info("Database migrations applied")


async def run_migrations_async(revision: str = "head") -> None:
    """
    Run migrations off the event loop; Alembic drives a synchronous engine.
    """

    await asyncio.to_thread(run_migrations, revision)
