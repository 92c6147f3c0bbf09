"""
Configuration management for the amortization tracker.

Settings are read from the environment so the CLI and the web front-end can
share a database without extra flags.
"""

import logging
import os
from pathlib import Path
from typing import Optional, Union

DATABASE_URL_ENV = "AMORTIZATION_DATABASE_URL"
LOG_LEVEL_ENV = "AMORTIZATION_LOG_LEVEL"

DEFAULT_DATABASE_URL = "sqlite:///amortization.sqlite3"
DEFAULT_LOG_LEVEL = "WARNING"

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def database_url(db: Optional[Union[str, Path]] = None) -> str:
    """Return an SQLAlchemy URL for ``db``.

    ``db`` may be an SQLAlchemy URL or a path to an SQLite file. When omitted,
    ``AMORTIZATION_DATABASE_URL`` is used, falling back to a local SQLite file.
    """
    if db is None:
        return os.environ.get(DATABASE_URL_ENV) or DEFAULT_DATABASE_URL
    db = str(db)
    if "://" in db:
        return db
    return f"sqlite:///{db}"


def log_level() -> int:
    """Resolve the logging level named by ``AMORTIZATION_LOG_LEVEL``."""
    name = os.environ.get(LOG_LEVEL_ENV, DEFAULT_LOG_LEVEL).upper()
    level = logging.getLevelName(name)
    if not isinstance(level, int):
        return logging.WARNING
    return level


def configure_logging() -> None:
    logging.basicConfig(level=log_level(), format=LOG_FORMAT)
