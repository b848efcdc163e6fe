from dataclasses import dataclass, field
from datetime import date as dt_date
from decimal import Decimal
from enum import Enum

from .accounts import AccountType
from .errors import ValidationError
from .transactions import TransactionView
from .validation import ensure_date_range, ensure_positive_id, optional_text, parse_optional_ymd

DEFAULT_PAGE_SIZE = 25
LAST_PAGE = -1


class TxTypeFilter(str, Enum):
    ALL = "all"
    INCOME = "income"
    EXPENSE = "expense"


class SortKey(str, Enum):
    DATE = "date"
    CATEGORY = "category"
    DESCRIPTION = "description"
    AMOUNT = "amount"
    ACCOUNT = "account"
    ID = "id"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


def _enum_value(enum_cls, value, field_name: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError as exc:
        raise ValidationError(f"Invalid {field_name}: {value}") from exc


@dataclass(frozen=True)
class SearchFilter:
    query: str | None = None
    account_id: int | None = None
    date_from: dt_date | str | None = None
    date_to: dt_date | str | None = None
    tx_type: TxTypeFilter | str = TxTypeFilter.ALL
    limit: int = DEFAULT_PAGE_SIZE
    offset: int = 0
    sort_by: SortKey | str = SortKey.DATE
    sort_dir: SortDirection | str = SortDirection.DESC

    def __post_init__(self) -> None:
        object.__setattr__(self, "query", optional_text(self.query))
        if self.account_id is not None:
            object.__setattr__(
                self, "account_id", ensure_positive_id(self.account_id, "account_id")
            )
        date_from = parse_optional_ymd(self.date_from)
        date_to = parse_optional_ymd(self.date_to)
        ensure_date_range(date_from, date_to)
        object.__setattr__(self, "date_from", date_from)
        object.__setattr__(self, "date_to", date_to)
        object.__setattr__(self, "tx_type", _enum_value(TxTypeFilter, self.tx_type, "tx_type"))
        object.__setattr__(self, "sort_by", _enum_value(SortKey, self.sort_by, "sort_by"))
        object.__setattr__(
            self, "sort_dir", _enum_value(SortDirection, self.sort_dir, "sort_dir")
        )
        if isinstance(self.limit, bool) or not isinstance(self.limit, int) or self.limit < 1:
            raise ValidationError("Page size must be a positive integer")
        if isinstance(self.offset, bool) or not isinstance(self.offset, int):
            raise ValidationError("Offset must be an integer")
        if self.offset < 0 and self.offset != LAST_PAGE:
            raise ValidationError("Offset must be non-negative, or -1 for the last page")


def resolve_offset(requested: int, total: int, page_size: int) -> int:
    """Turn the requested offset into the one actually served.

    ``-1`` selects the final page: the last ``page_size`` matching rows,
    starting at ``max(0, total - page_size)``. Any other offset is clamped
    to ``[0, total]``.
    """
    if requested == LAST_PAGE:
        return max(0, total - page_size)
    return max(0, min(requested, total))


def _zero_by_type() -> dict[AccountType, Decimal]:
    return {account_type: Decimal("0") for account_type in AccountType}


@dataclass(frozen=True)
class SearchResult:
    items: list[TransactionView]
    total: int
    offset: int
    limit: int = DEFAULT_PAGE_SIZE
    sum_income: Decimal = Decimal("0")
    sum_expense: Decimal = Decimal("0")
    sum_income_by_type: dict[AccountType, Decimal] = field(default_factory=_zero_by_type)
    sum_expense_by_type: dict[AccountType, Decimal] = field(default_factory=_zero_by_type)

    @property
    def net(self) -> Decimal:
        return self.sum_income + self.sum_expense

    @property
    def page(self) -> int:
        """1-based page number; a window not aligned to the grid counts as the next page."""
        return -(-self.offset // self.limit) + 1

    @property
    def page_count(self) -> int:
        return max(1, -(-self.total // self.limit))
