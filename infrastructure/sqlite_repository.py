from __future__ import annotations

from contextlib import AbstractContextManager
from datetime import date as dt_date
from decimal import Decimal
from typing import Any

from domain.accounts import Account, AccountType
from domain.amounts import from_minor_units, to_minor_units
from domain.categories import Category
from domain.errors import DuplicateCategory
from domain.search import SearchFilter, SortDirection, SortKey, TxTypeFilter
from domain.transactions import Transaction, TransactionView
from infrastructure.repositories import LedgerRepository
from storage.sqlite_storage import ConstraintError, SQLiteStorage

_TX_FROM = """
    FROM transactions AS t
    JOIN accounts AS a ON a.id = t.account_id
    LEFT JOIN categories AS c ON c.id = t.category_id
"""

_TX_COLUMNS = """
    t.id, t.account_id, a.name AS account_name, a.type AS account_type,
    a.color AS account_color, t.date, c.name AS category, t.description, t.amount_minor
"""

_SORT_COLUMNS = {
    SortKey.DATE: "t.date",
    SortKey.CATEGORY: "casefold(COALESCE(c.name, ''))",
    SortKey.DESCRIPTION: "casefold(COALESCE(t.description, ''))",
    SortKey.AMOUNT: "t.amount_minor",
    SortKey.ACCOUNT: "casefold(a.name)",
    SortKey.ID: "t.id",
}

_ACCOUNT_COLUMNS = ("name", "color")
_TRANSACTION_COLUMNS = ("date", "amount", "account_id", "description", "category_id")


def _build_where(filters: SearchFilter, *, include_type: bool = True) -> tuple[str, list[Any]]:
    clauses = ["1 = 1"]
    args: list[Any] = []
    if filters.account_id is not None:
        clauses.append("t.account_id = ?")
        args.append(int(filters.account_id))
    if filters.date_from is not None:
        clauses.append("t.date >= ?")
        args.append(filters.date_from.isoformat())  # type: ignore[union-attr]
    if filters.date_to is not None:
        clauses.append("t.date <= ?")
        args.append(filters.date_to.isoformat())  # type: ignore[union-attr]
    if include_type:
        if filters.tx_type is TxTypeFilter.INCOME:
            clauses.append("t.amount_minor > 0")
        elif filters.tx_type is TxTypeFilter.EXPENSE:
            clauses.append("t.amount_minor < 0")
    if filters.query:
        needle = filters.query.casefold()
        clauses.append(
            "(instr(casefold(COALESCE(t.description, '')), ?) > 0"
            " OR instr(casefold(COALESCE(c.name, '')), ?) > 0)"
        )
        args.extend([needle, needle])
    return " WHERE " + " AND ".join(clauses), args


def _order_by(filters: SearchFilter) -> str:
    column = _SORT_COLUMNS[SortKey(filters.sort_by)]
    direction = "ASC" if filters.sort_dir is SortDirection.ASC else "DESC"
    return f" ORDER BY {column} {direction}, t.id ASC"


class SQLiteLedgerRepository(LedgerRepository):
    """LedgerRepository implementation backed by SQLite."""

    def __init__(self, db_path: str = "ledger.db", schema_path: str | None = None) -> None:
        self._storage = SQLiteStorage(db_path)
        self._storage.initialize_schema(schema_path)

    @property
    def storage(self) -> SQLiteStorage:
        return self._storage

    def close(self) -> None:
        self._storage.close()

    def unit_of_work(self) -> AbstractContextManager[None]:
        return self._storage.unit_of_work()

    def snapshot(self) -> AbstractContextManager[None]:
        return self._storage.snapshot()

    @staticmethod
    def _account_from_row(row) -> Account:
        return Account(
            id=int(row["id"]),
            name=str(row["name"]),
            type=AccountType(str(row["type"])),
            color=row["color"],
            balance=from_minor_units(row["balance_minor"]),
        )

    @staticmethod
    def _view_from_row(row) -> TransactionView:
        return TransactionView(
            id=int(row["id"]),
            account_id=int(row["account_id"]),
            account_name=str(row["account_name"]),
            account_type=AccountType(str(row["account_type"])),
            account_color=row["account_color"],
            date=dt_date.fromisoformat(str(row["date"])),
            category=row["category"],
            description=row["description"],
            amount=from_minor_units(row["amount_minor"]),
        )

    # accounts

    def insert_account(self, *, name: str, color: str | None, type: AccountType) -> Account:
        account_id = self._storage.insert(
            "INSERT INTO accounts (name, color, type) VALUES (?, ?, ?)",
            (name, color, AccountType(type).value),
        )
        return Account(id=account_id, name=name, type=AccountType(type), color=color)

    def _select_accounts(self, where: str = "", params: tuple = ()) -> list[Account]:
        rows = self._storage.fetch_all(
            f"""
            SELECT a.id, a.name, a.color, a.type,
                   COALESCE(SUM(t.amount_minor), 0) AS balance_minor
            FROM accounts AS a
            LEFT JOIN transactions AS t ON t.account_id = a.id
            {where}
            GROUP BY a.id, a.name, a.color, a.type
            ORDER BY a.id
            """,
            params,
        )
        return [self._account_from_row(row) for row in rows]

    def get_account(self, account_id: int) -> Account | None:
        accounts = self._select_accounts("WHERE a.id = ?", (int(account_id),))
        return accounts[0] if accounts else None

    def list_accounts(self) -> list[Account]:
        return self._select_accounts()

    def update_account(self, account_id: int, fields: dict[str, Any]) -> bool:
        columns = [name for name in _ACCOUNT_COLUMNS if name in fields]
        if not columns:
            return self.get_account(account_id) is not None
        assignments = ", ".join(f"{name} = ?" for name in columns)
        params = [fields[name] for name in columns] + [int(account_id)]
        updated = self._storage.execute(
            f"UPDATE accounts SET {assignments}, updated_at = datetime('now') WHERE id = ?",
            params,
        )
        return updated > 0

    def delete_account(self, account_id: int) -> bool:
        return self._storage.execute("DELETE FROM accounts WHERE id = ?", (int(account_id),)) > 0

    def account_balance(self, account_id: int) -> Decimal:
        row = self._storage.fetch_one(
            "SELECT COALESCE(SUM(amount_minor), 0) FROM transactions WHERE account_id = ?",
            (int(account_id),),
        )
        return from_minor_units(row[0] if row is not None else 0)

    def count_account_transactions(self, account_id: int) -> int:
        row = self._storage.fetch_one(
            "SELECT COUNT(*) FROM transactions WHERE account_id = ?", (int(account_id),)
        )
        return int(row[0]) if row is not None else 0

    # categories

    def list_categories(self) -> list[Category]:
        rows = self._storage.fetch_all(
            "SELECT id, name FROM categories ORDER BY casefold(name), id"
        )
        return [Category(id=int(row["id"]), name=str(row["name"])) for row in rows]

    def get_category(self, category_id: int) -> Category | None:
        row = self._storage.fetch_one(
            "SELECT id, name FROM categories WHERE id = ?", (int(category_id),)
        )
        if row is None:
            return None
        return Category(id=int(row["id"]), name=str(row["name"]))

    def insert_category(self, name: str) -> Category:
        try:
            category_id = self._storage.insert("INSERT INTO categories (name) VALUES (?)", (name,))
        except ConstraintError as exc:
            raise DuplicateCategory(name) from exc
        return Category(id=category_id, name=name)

    def rename_category(self, category_id: int, name: str) -> bool:
        try:
            updated = self._storage.execute(
                "UPDATE categories SET name = ? WHERE id = ?", (name, int(category_id))
            )
        except ConstraintError as exc:
            raise DuplicateCategory(name) from exc
        return updated > 0

    def delete_category(self, category_id: int) -> bool:
        return (
            self._storage.execute("DELETE FROM categories WHERE id = ?", (int(category_id),)) > 0
        )

    def count_category_transactions(self, category_id: int) -> int:
        row = self._storage.fetch_one(
            "SELECT COUNT(*) FROM transactions WHERE category_id = ?", (int(category_id),)
        )
        return int(row[0]) if row is not None else 0

    # transactions

    def insert_transaction(
        self,
        *,
        account_id: int,
        date: dt_date,
        amount: Decimal,
        description: str | None,
        category_id: int | None,
    ) -> int:
        return self._storage.insert(
            """
            INSERT INTO transactions (account_id, date, description, amount_minor, category_id)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                int(account_id),
                date.isoformat(),
                description,
                to_minor_units(amount),
                int(category_id) if category_id is not None else None,
            ),
        )

    def get_transaction(self, transaction_id: int) -> Transaction | None:
        row = self._storage.fetch_one(
            """
            SELECT id, account_id, date, description, amount_minor, category_id, created_at
            FROM transactions
            WHERE id = ?
            """,
            (int(transaction_id),),
        )
        if row is None:
            return None
        return Transaction(
            id=int(row["id"]),
            account_id=int(row["account_id"]),
            date=dt_date.fromisoformat(str(row["date"])),
            amount=from_minor_units(row["amount_minor"]),
            description=row["description"],
            category_id=int(row["category_id"]) if row["category_id"] is not None else None,
            created_at=row["created_at"],
        )

    def get_transaction_view(self, transaction_id: int) -> TransactionView | None:
        row = self._storage.fetch_one(
            f"SELECT {_TX_COLUMNS} {_TX_FROM} WHERE t.id = ?", (int(transaction_id),)
        )
        return self._view_from_row(row) if row is not None else None

    def update_transaction(self, transaction_id: int, fields: dict[str, Any]) -> bool:
        columns = [name for name in _TRANSACTION_COLUMNS if name in fields]
        if not columns:
            return self.get_transaction(transaction_id) is not None
        assignments: list[str] = []
        params: list[Any] = []
        for name in columns:
            value = fields[name]
            if name == "date":
                assignments.append("date = ?")
                params.append(value.isoformat())
            elif name == "amount":
                assignments.append("amount_minor = ?")
                params.append(to_minor_units(value))
            else:
                assignments.append(f"{name} = ?")
                params.append(value)
        params.append(int(transaction_id))
        updated = self._storage.execute(
            f"UPDATE transactions SET {', '.join(assignments)} WHERE id = ?", params
        )
        return updated > 0

    def delete_transaction(self, transaction_id: int) -> bool:
        return (
            self._storage.execute(
                "DELETE FROM transactions WHERE id = ?", (int(transaction_id),)
            )
            > 0
        )

    # queries

    def count_transactions(self, filters: SearchFilter) -> int:
        where, args = _build_where(filters)
        row = self._storage.fetch_one(f"SELECT COUNT(*) {_TX_FROM} {where}", args)
        return int(row[0]) if row is not None else 0

    def find_transactions(
        self, filters: SearchFilter, *, limit: int | None, offset: int = 0
    ) -> list[TransactionView]:
        where, args = _build_where(filters)
        sql = f"SELECT {_TX_COLUMNS} {_TX_FROM} {where} {_order_by(filters)}"
        if limit is not None:
            sql += " LIMIT ? OFFSET ?"
            args = [*args, int(limit), int(offset)]
        return [self._view_from_row(row) for row in self._storage.fetch_all(sql, args)]

    def sum_transactions(
        self, filters: SearchFilter
    ) -> dict[AccountType, tuple[Decimal, Decimal]]:
        where, args = _build_where(filters, include_type=False)
        rows = self._storage.fetch_all(
            f"""
            SELECT a.type AS account_type,
                   COALESCE(SUM(CASE WHEN t.amount_minor > 0 THEN t.amount_minor END), 0)
                       AS income_minor,
                   COALESCE(SUM(CASE WHEN t.amount_minor < 0 THEN t.amount_minor END), 0)
                       AS expense_minor
            {_TX_FROM} {where}
            GROUP BY a.type
            """,
            args,
        )
        sums = {account_type: (Decimal("0"), Decimal("0")) for account_type in AccountType}
        for row in rows:
            sums[AccountType(str(row["account_type"]))] = (
                from_minor_units(row["income_minor"]),
                from_minor_units(row["expense_minor"]),
            )
        return sums
