from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from .errors import ValidationError


class AccountType(str, Enum):
    STANDARD = "standard"
    REIMBURSABLE = "reimbursable"

    @classmethod
    def parse(cls, value: "AccountType | str") -> "AccountType":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value or "").strip().lower())
        except ValueError as exc:
            raise ValidationError(f"Unknown account type: {value}") from exc


@dataclass(frozen=True)
class Account:
    id: int
    name: str
    type: AccountType = AccountType.STANDARD
    color: str | None = None
    balance: Decimal = Decimal("0")

    @property
    def is_reimbursable(self) -> bool:
        return self.type is AccountType.REIMBURSABLE

    @property
    def reported_balance(self) -> Decimal:
        """Balance as shown in aggregate views; reimbursable accounts are inverted."""
        if self.is_reimbursable:
            return -self.balance
        return self.balance
