"""Runtime settings, paths and logging setup."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from .catalog_loader import BUNDLED_SOURCE


def data_dir() -> Path:
    return Path(os.getenv("LEARNCART_DATA_DIR", ".learncart"))


def db_path() -> Path:
    return Path(os.getenv("LEARNCART_DB_PATH", str(data_dir() / "state.db")))


def catalog_source() -> str:
    """Catalog path or URL; the bundled catalog when unset."""
    value = os.getenv("LEARNCART_CATALOG", "").strip()
    return value or BUNDLED_SOURCE


def log_level() -> int:
    value = os.getenv("LEARNCART_LOG_LEVEL", "WARNING").strip().upper()
    level = logging.getLevelName(value)
    if isinstance(level, int):
        return level
    return logging.WARNING


def configure_logging(level: int | None = None) -> None:
    logging.basicConfig(
        level=level if level is not None else log_level(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
