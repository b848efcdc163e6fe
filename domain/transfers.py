from dataclasses import dataclass
from datetime import date as dt_date
from decimal import Decimal

from .accounts import Account, AccountType
from .amounts import coerce_amount
from .errors import ValidationError
from .transactions import MovementKind, NewTransaction
from .validation import optional_text, parse_ymd

TRANSFER_CATEGORY = "Transfer"


def transfer_description(note: str | None, source_name: str, destination_name: str) -> str:
    marker = f"[{source_name} -> {destination_name}]"
    note = optional_text(note)
    return f"{note} {marker}" if note else marker


@dataclass(frozen=True)
class Transfer:
    """Move money between two accounts. Always written as a pair of rows."""

    source: Account
    destination: Account
    date: dt_date | str
    amount: Decimal
    note: str | None = None
    category: str = TRANSFER_CATEGORY

    def __post_init__(self) -> None:
        object.__setattr__(self, "date", parse_ymd(self.date))
        amount = coerce_amount(self.amount)
        if amount == 0:
            raise ValidationError("Transfer amount must not be zero")
        object.__setattr__(self, "amount", abs(amount))
        if self.source.id == self.destination.id:
            raise ValidationError("Transfer source and destination accounts must be different")

    @property
    def description(self) -> str:
        return transfer_description(self.note, self.source.name, self.destination.name)

    def rows(self) -> list[NewTransaction]:
        return [
            NewTransaction(
                account_id=self.source.id,
                date=self.date,
                amount=-self.amount,
                description=self.description,
                category=self.category,
            ),
            NewTransaction(
                account_id=self.destination.id,
                date=self.date,
                amount=self.amount,
                description=self.description,
                category=self.category,
            ),
        ]


@dataclass(frozen=True)
class Movement:
    """Income or expense on one account, optionally mirrored on a reimbursable one."""

    account: Account
    kind: MovementKind
    date: dt_date | str
    amount: Decimal
    description: str | None = None
    category: str | None = None
    mirror: Account | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "kind", MovementKind(self.kind))
        object.__setattr__(self, "date", parse_ymd(self.date))
        object.__setattr__(self, "amount", coerce_amount(self.amount))
        if self.mirror is None:
            return
        if self.mirror.id == self.account.id:
            raise ValidationError("Reimbursement account must differ from the primary account")
        if self.account.type is not AccountType.STANDARD:
            raise ValidationError("Only movements on standard accounts can be mirrored")
        if self.mirror.type is not AccountType.REIMBURSABLE:
            raise ValidationError(f"Account '{self.mirror.name}' is not reimbursable")

    @property
    def signed_amount(self) -> Decimal:
        return self.kind.signed(self.amount)

    def rows(self) -> list[NewTransaction]:
        primary = NewTransaction(
            account_id=self.account.id,
            date=self.date,
            amount=self.signed_amount,
            description=self.description,
            category=self.category,
        )
        if self.mirror is None:
            return [primary]
        return [
            primary,
            NewTransaction(
                account_id=self.mirror.id,
                date=primary.date,
                amount=primary.amount,
                description=primary.description,
                category=primary.category,
            ),
        ]
