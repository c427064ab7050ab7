from __future__ import annotations

from pathlib import Path
from typing import Optional

from alembic import command
from alembic.config import Config

from .engine import ROOT_DIR


def alembic_config(
    database_url: Optional[str] = None,
    *,
    keep_logging: bool = False,
) -> Config:
    """Return an Alembic config pointing at the repository's migrations.

    ``keep_logging`` stops ``alembic/env.py`` from replacing a logging setup
    the caller already installed.
    """
    project_root = Path(ROOT_DIR)
    alembic_cfg = Config(str(project_root / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(project_root / "alembic"))
    if database_url:
        # Percent signs need to be escaped due to ConfigParser interpolation rules.
        alembic_cfg.set_main_option("sqlalchemy.url", database_url.replace("%", "%%"))
    alembic_cfg.attributes["configured_logging"] = keep_logging
    return alembic_cfg


def upgrade_db(
    target_revision: str = "head",
    database_url: Optional[str] = None,
    *,
    keep_logging: bool = False,
) -> None:
    """Apply Alembic migrations up to the requested revision."""
    command.upgrade(
        alembic_config(database_url, keep_logging=keep_logging), target_revision
    )
