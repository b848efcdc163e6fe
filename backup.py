from __future__ import annotations

import logging
import sqlite3
from datetime import datetime
from pathlib import Path

from config import BACKUP_DIR_NAME
from domain.errors import StorageError

logger = logging.getLogger(__name__)


def create_backup(db_path: str) -> str | None:
    """Copy the database next to itself under backups/. Returns None if there is nothing to copy."""
    source = Path(db_path)
    if not source.exists():
        return None
    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    backup_dir = source.parent / BACKUP_DIR_NAME
    backup_dir.mkdir(exist_ok=True)
    backup_path = backup_dir / f"{source.stem}_backup_{stamp}{source.suffix}"
    # sqlite's online backup also copies pages still sitting in the WAL file
    try:
        src = sqlite3.connect(str(source))
        try:
            dst = sqlite3.connect(str(backup_path))
            try:
                src.backup(dst)
            finally:
                dst.close()
        finally:
            src.close()
    except sqlite3.Error as exc:
        raise StorageError(f"Backup of {db_path} failed: {exc}") from exc
    logger.info("Database backup created: %s", backup_path)
    return str(backup_path)
