from __future__ import annotations

import logging
from pathlib import Path

from backup import create_backup
from config import LOG_LEVEL, SQLITE_PATH
from infrastructure.sqlite_repository import SQLiteLedgerRepository

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str | int = LOG_LEVEL) -> None:
    """Root logger setup for host applications; the library itself only emits records."""
    logging.basicConfig(level=level, format=LOG_FORMAT)


def bootstrap_repository(
    db_path: str | None = None, *, backup: bool = True
) -> SQLiteLedgerRepository:
    """Open the ledger store, backing up an existing database file first."""
    path = db_path or SQLITE_PATH
    if backup and path != ":memory:" and Path(path).exists():
        create_backup(path)
    repository = SQLiteLedgerRepository(path)
    logger.info("Ledger store opened: %s", path)
    return repository
