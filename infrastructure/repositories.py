from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from datetime import date as dt_date
from decimal import Decimal
from typing import Any

from domain.accounts import Account, AccountType
from domain.categories import Category
from domain.search import SearchFilter
from domain.transactions import Transaction, TransactionView


class LedgerRepository(ABC):
    @abstractmethod
    def unit_of_work(self) -> AbstractContextManager[None]:
        """All-or-nothing scope for multi-row writes."""
        pass

    @abstractmethod
    def snapshot(self) -> AbstractContextManager[None]:
        """Consistent scope for reads issuing several queries."""
        pass

    # accounts

    @abstractmethod
    def insert_account(self, *, name: str, color: str | None, type: AccountType) -> Account:
        pass

    @abstractmethod
    def get_account(self, account_id: int) -> Account | None:
        """Return the account with its derived balance, or None."""
        pass

    @abstractmethod
    def list_accounts(self) -> list[Account]:
        """All accounts with derived balances, ordered by id."""
        pass

    @abstractmethod
    def update_account(self, account_id: int, fields: dict[str, Any]) -> bool:
        """Update name/color. Returns False if the account does not exist."""
        pass

    @abstractmethod
    def delete_account(self, account_id: int) -> bool:
        pass

    @abstractmethod
    def account_balance(self, account_id: int) -> Decimal:
        pass

    @abstractmethod
    def count_account_transactions(self, account_id: int) -> int:
        pass

    # categories

    @abstractmethod
    def list_categories(self) -> list[Category]:
        """All categories, ordered by name case-insensitively."""
        pass

    @abstractmethod
    def get_category(self, category_id: int) -> Category | None:
        pass

    @abstractmethod
    def insert_category(self, name: str) -> Category:
        pass

    @abstractmethod
    def rename_category(self, category_id: int, name: str) -> bool:
        pass

    @abstractmethod
    def delete_category(self, category_id: int) -> bool:
        pass

    @abstractmethod
    def count_category_transactions(self, category_id: int) -> int:
        pass

    # transactions

    @abstractmethod
    def insert_transaction(
        self,
        *,
        account_id: int,
        date: dt_date,
        amount: Decimal,
        description: str | None,
        category_id: int | None,
    ) -> int:
        pass

    @abstractmethod
    def get_transaction(self, transaction_id: int) -> Transaction | None:
        pass

    @abstractmethod
    def get_transaction_view(self, transaction_id: int) -> TransactionView | None:
        pass

    @abstractmethod
    def update_transaction(self, transaction_id: int, fields: dict[str, Any]) -> bool:
        """Apply column changes (date, amount, account_id, description, category_id)."""
        pass

    @abstractmethod
    def delete_transaction(self, transaction_id: int) -> bool:
        pass

    # queries

    @abstractmethod
    def count_transactions(self, filters: SearchFilter) -> int:
        pass

    @abstractmethod
    def find_transactions(
        self, filters: SearchFilter, *, limit: int | None, offset: int = 0
    ) -> list[TransactionView]:
        """Matching rows in filter order; limit=None returns every row."""
        pass

    @abstractmethod
    def sum_transactions(
        self, filters: SearchFilter
    ) -> dict[AccountType, tuple[Decimal, Decimal]]:
        """(income, expense) sums per account type, ignoring the type restriction."""
        pass
