from __future__ import annotations

import logging
import sqlite3
import threading
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from domain.errors import StorageError

from .base import Storage

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).resolve().with_name("schema.sql")


class ConstraintError(StorageError):
    """A row violated a UNIQUE, CHECK or FOREIGN KEY constraint."""


def _casefold(value: str | None) -> str | None:
    if value is None:
        return None
    return str(value).casefold()


class SQLiteStorage(Storage):
    """SQLite-backed storage adapter without domain/business logic."""

    def __init__(self, db_path: str = "ledger.db") -> None:
        self._db_path = db_path
        try:
            # isolation_level=None: transactions are opened explicitly by unit_of_work()
            self._conn = sqlite3.connect(db_path, isolation_level=None, check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA foreign_keys = ON;")
            if db_path != ":memory:":
                self._conn.execute("PRAGMA journal_mode = WAL;")
            self._conn.create_function("casefold", 1, _casefold, deterministic=True)
        except sqlite3.Error as exc:
            raise StorageError(f"Cannot open database {db_path}: {exc}") from exc
        self._lock = threading.RLock()
        self._depth = 0

    @property
    def path(self) -> str:
        return self._db_path

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def initialize_schema(self, schema_path: str | None = None) -> None:
        schema = Path(schema_path or SCHEMA_PATH).read_text(encoding="utf-8")
        with self._lock:
            try:
                self._conn.executescript(schema)
            except sqlite3.Error as exc:
                raise StorageError(f"Schema initialization failed: {exc}") from exc

    @contextmanager
    def unit_of_work(self) -> Iterator[None]:
        """All-or-nothing write scope. Nested scopes join the outer one."""
        with self._transaction("BEGIN IMMEDIATE"):
            yield

    @contextmanager
    def snapshot(self) -> Iterator[None]:
        """Consistent read scope for multi-query reads."""
        with self._transaction("BEGIN"):
            yield

    @contextmanager
    def _transaction(self, begin_sql: str) -> Iterator[None]:
        with self._lock:
            if self._depth:
                self._depth += 1
                try:
                    yield
                finally:
                    self._depth -= 1
                return

            self._run(begin_sql)
            self._depth = 1
            try:
                yield
            except BaseException as exc:
                self._depth = 0
                self._rollback()
                if isinstance(exc, StorageError):
                    logger.error("Unit of work rolled back after storage failure: %s", exc)
                else:
                    logger.debug("Unit of work rolled back: %s", exc)
                raise
            self._depth = 0
            try:
                self._conn.execute("COMMIT")
            except sqlite3.Error as exc:
                self._rollback()
                logger.exception("Commit failed for %s", self._db_path)
                raise StorageError(f"Commit failed: {exc}") from exc

    def _rollback(self) -> None:
        if not self._conn.in_transaction:
            return
        try:
            self._conn.execute("ROLLBACK")
        except sqlite3.Error:
            logger.exception("Rollback failed for %s", self._db_path)
            raise

    def _run(self, sql: str, params: Sequence[Any] = ()) -> sqlite3.Cursor:
        try:
            return self._conn.execute(sql, tuple(params))
        except sqlite3.IntegrityError as exc:
            raise ConstraintError(str(exc)) from exc
        except sqlite3.Error as exc:
            raise StorageError(str(exc)) from exc
        except OverflowError as exc:
            # sqlite3 refuses Python ints outside the signed 64-bit range
            raise StorageError(str(exc)) from exc

    def execute(self, sql: str, params: Sequence[Any] = ()) -> int:
        with self._lock:
            return int(self._run(sql, params).rowcount)

    def insert(self, sql: str, params: Sequence[Any] = ()) -> int:
        with self._lock:
            cursor = self._run(sql, params)
            if cursor.lastrowid is None:
                raise StorageError("Insert did not produce a row id")
            return int(cursor.lastrowid)

    def fetch_one(self, sql: str, params: Sequence[Any] = ()) -> sqlite3.Row | None:
        with self._lock:
            return self._run(sql, params).fetchone()

    def fetch_all(self, sql: str, params: Sequence[Any] = ()) -> list[sqlite3.Row]:
        with self._lock:
            return self._run(sql, params).fetchall()
