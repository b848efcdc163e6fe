from .base import Storage
from .sqlite_storage import ConstraintError, SQLiteStorage

__all__ = ["Storage", "SQLiteStorage", "ConstraintError"]
