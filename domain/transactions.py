from dataclasses import dataclass
from datetime import date as dt_date
from decimal import Decimal
from enum import Enum
from typing import Any

from .accounts import AccountType
from .amounts import coerce_amount, to_minor_units
from .errors import ValidationError
from .validation import ensure_positive_id, optional_text, parse_ymd


class MovementKind(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"

    def signed(self, amount: Decimal) -> Decimal:
        if self is MovementKind.INCOME:
            return abs(amount)
        return -abs(amount)


def movement_type(amount: Decimal) -> str:
    """Label by sign. Zero is neither income nor expense, as in the search filter."""
    if amount > 0:
        return "income"
    if amount < 0:
        return "expense"
    return "zero"


@dataclass(frozen=True)
class NewTransaction:
    """A row about to be written. Category is free text, canonicalized on insert."""

    account_id: int
    date: dt_date | str
    amount: Decimal
    description: str | None = None
    category: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "account_id", ensure_positive_id(self.account_id, "account_id"))
        object.__setattr__(self, "date", parse_ymd(self.date))
        amount = coerce_amount(self.amount)
        to_minor_units(amount)
        object.__setattr__(self, "amount", amount)
        object.__setattr__(self, "description", optional_text(self.description))
        object.__setattr__(self, "category", optional_text(self.category))


@dataclass(frozen=True)
class Transaction:
    id: int
    account_id: int
    date: dt_date
    amount: Decimal
    description: str | None = None
    category_id: int | None = None
    created_at: str | None = None

    @property
    def type(self) -> str:
        return movement_type(self.amount)


@dataclass(frozen=True)
class TransactionView:
    """Transaction joined with its account and category, as returned by search."""

    id: int
    account_id: int
    account_name: str
    account_type: AccountType
    account_color: str | None
    date: dt_date
    category: str | None
    description: str | None
    amount: Decimal

    @property
    def type(self) -> str:
        return movement_type(self.amount)


PATCHABLE_FIELDS = ("date", "amount", "account_id", "description", "category")


def normalize_patch(changes: dict[str, Any]) -> dict[str, Any]:
    """Validate a partial update. Only the keys present are changed."""
    unknown = set(changes) - set(PATCHABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Unsupported transaction fields: {', '.join(sorted(unknown))}")

    patch: dict[str, Any] = {}
    if "date" in changes:
        if changes["date"] is None:
            raise ValidationError("Transaction date cannot be cleared")
        patch["date"] = parse_ymd(changes["date"])
    if "amount" in changes:
        if changes["amount"] is None:
            raise ValidationError("Transaction amount cannot be cleared")
        patch["amount"] = coerce_amount(changes["amount"])
        to_minor_units(patch["amount"])
    if "account_id" in changes:
        if changes["account_id"] is None:
            raise ValidationError("Transaction account cannot be cleared")
        patch["account_id"] = ensure_positive_id(changes["account_id"], "account_id")
    if "description" in changes:
        patch["description"] = optional_text(changes["description"])
    if "category" in changes:
        patch["category"] = optional_text(changes["category"])
    return patch
