import logging
from dataclasses import replace
from decimal import Decimal
from typing import Any, Literal

from domain.accounts import AccountType
from domain.errors import ValidationError
from domain.reports import Report
from domain.search import SearchFilter, SearchResult, resolve_offset
from domain.transactions import TransactionView
from infrastructure.repositories import LedgerRepository

logger = logging.getLogger(__name__)


def _as_filter(filters: SearchFilter | None, overrides: dict[str, Any]) -> SearchFilter:
    if filters is None:
        return SearchFilter(**overrides)
    if overrides:
        return replace(filters, **overrides)
    return filters


class SearchTransactions:
    def __init__(self, repository: LedgerRepository):
        self._repository = repository

    def execute(self, filters: SearchFilter | None = None, **overrides: Any) -> SearchResult:
        """Filter, sort and page the ledger; sums always cover the whole filtered set.

        An offset of -1 serves the last page under the current filter and sort.
        """
        filters = _as_filter(filters, overrides)
        with self._repository.snapshot():
            total = self._repository.count_transactions(filters)
            offset = resolve_offset(filters.offset, total, filters.limit)
            items = self._repository.find_transactions(
                filters, limit=filters.limit, offset=offset
            )
            sums = self._repository.sum_transactions(filters)
        logger.debug(
            "Search served total=%s offset=%s requested_offset=%s items=%s",
            total,
            offset,
            filters.offset,
            len(items),
        )
        income_by_type = {account_type: sums[account_type][0] for account_type in AccountType}
        expense_by_type = {account_type: sums[account_type][1] for account_type in AccountType}
        return SearchResult(
            items=items,
            total=total,
            offset=offset,
            limit=filters.limit,
            sum_income=sum(income_by_type.values(), Decimal("0")),
            sum_expense=sum(expense_by_type.values(), Decimal("0")),
            sum_income_by_type=income_by_type,
            sum_expense_by_type=expense_by_type,
        )

    def iter_matching(
        self, filters: SearchFilter | None = None, **overrides: Any
    ) -> list[TransactionView]:
        """Every matching row in filter order, ignoring limit and offset."""
        filters = _as_filter(filters, overrides)
        return self._repository.find_transactions(filters, limit=None)


ExportFormat = Literal["xlsx", "csv"]


class ExportTransactions:
    def __init__(self, repository: LedgerRepository):
        self._repository = repository

    def execute(
        self,
        filepath: str,
        filters: SearchFilter | None = None,
        *,
        columns: list[str] | None = None,
        format: ExportFormat | None = None,
    ) -> int:
        """Write every row matching the filter to a spreadsheet. Returns the row count."""
        from utils.csv_utils import transactions_to_csv
        from utils.excel_utils import transactions_to_xlsx

        resolved = format or ("csv" if str(filepath).lower().endswith(".csv") else "xlsx")
        if resolved not in ("xlsx", "csv"):
            raise ValidationError(f"Unsupported export format: {resolved}")

        items = SearchTransactions(self._repository).iter_matching(filters)
        if resolved == "xlsx":
            transactions_to_xlsx(items, filepath, columns=columns)
        else:
            transactions_to_csv(items, filepath, columns=columns)
        logger.info(
            "Transactions exported path=%s format=%s rows=%s", filepath, resolved, len(items)
        )
        return len(items)


class GenerateReport:
    def __init__(self, repository: LedgerRepository):
        self._repository = repository

    def execute(self, filters: SearchFilter | None = None, **overrides: Any) -> Report:
        filters = _as_filter(filters, overrides)
        with self._repository.snapshot():
            accounts = self._repository.list_accounts()
            transactions = self._repository.find_transactions(filters, limit=None)
        return Report(accounts, transactions)
