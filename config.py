import os
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent

SQLITE_PATH = os.environ.get("LEDGER_DB_PATH", str(PROJECT_ROOT / "ledger.db"))
BACKUP_DIR_NAME = "backups"
LOG_LEVEL = os.environ.get("LEDGER_LOG_LEVEL", "INFO")
