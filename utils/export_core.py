from collections.abc import Sequence
from decimal import Decimal

from domain.transactions import TransactionView

DEFAULT_COLUMNS = ["date", "account", "category", "description", "amount"]


def resolve_columns(columns: Sequence[str] | None) -> list[str]:
    if not columns:
        return list(DEFAULT_COLUMNS)
    return [str(column).strip().lower() for column in columns]


def column_value(item: TransactionView, column: str) -> str | Decimal | int:
    """Cell value for one column; unknown columns render as empty cells."""
    if column == "date":
        return item.date.isoformat()
    if column == "account":
        return item.account_name
    if column == "category":
        return item.category or ""
    if column == "description":
        return item.description or ""
    if column == "amount":
        return item.amount
    if column == "id":
        return item.id
    if column == "type":
        return item.type
    return ""
