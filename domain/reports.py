from collections.abc import Iterable
from decimal import Decimal
from typing import Literal

from prettytable import PrettyTable

from .accounts import Account
from .amounts import format_amount
from .transactions import TransactionView
from .transfers import TRANSFER_CATEGORY

UNCATEGORIZED = "Uncategorized"
# buckets that move money around rather than spend it
EXCLUDED_EXPENSE_BUCKETS = frozenset({TRANSFER_CATEGORY.casefold(), "transfers", "init"})

GroupBy = Literal["monthly", "yearly"]


class Report:
    """Read-only summary over accounts and the transactions they own."""

    def __init__(
        self,
        accounts: Iterable[Account],
        transactions: Iterable[TransactionView] = (),
    ):
        self._accounts = list(accounts)
        self._transactions = list(transactions)

    def accounts(self) -> list[Account]:
        return list(self._accounts)

    def transactions(self) -> list[TransactionView]:
        return list(self._transactions)

    def net_worth(self) -> Decimal:
        """Sum of balances with reimbursable accounts counted inverted."""
        return sum((account.reported_balance for account in self._accounts), Decimal("0"))

    def to_be_reimbursed(self) -> Decimal:
        """Amount currently owed back: negative reimbursable balances, as a positive number."""
        return sum(
            (
                -account.balance
                for account in self._accounts
                if account.is_reimbursable and account.balance < 0
            ),
            Decimal("0"),
        )

    def expenses_by_category(self) -> dict[str, Decimal]:
        totals: dict[str, Decimal] = {}
        for item in self._transactions:
            if item.amount >= 0:
                continue
            name = item.category or UNCATEGORIZED
            if name.casefold() in EXCLUDED_EXPENSE_BUCKETS:
                continue
            totals[name] = totals.get(name, Decimal("0")) + abs(item.amount)
        return dict(sorted(totals.items(), key=lambda pair: (-pair[1], pair[0].casefold())))

    def cashflow_by_period(self, group_by: GroupBy = "monthly") -> list[tuple[str, Decimal, Decimal]]:
        """(period label, income, expense) rows in chronological order."""
        if group_by not in ("monthly", "yearly"):
            raise ValueError(f"Invalid grouping: {group_by}. Must be 'monthly' or 'yearly'")
        buckets: dict[str, tuple[Decimal, Decimal]] = {}
        for item in self._transactions:
            if group_by == "monthly":
                label = f"{item.date.year:04d}-{item.date.month:02d}"
            else:
                label = f"{item.date.year:04d}"
            income, expense = buckets.get(label, (Decimal("0"), Decimal("0")))
            if item.amount > 0:
                income += item.amount
            else:
                expense += item.amount
            buckets[label] = (income, expense)
        return [(label, *buckets[label]) for label in sorted(buckets)]

    def accounts_table(self) -> str:
        table = PrettyTable()
        table.field_names = ["Account", "Type", "Balance"]
        table.align["Balance"] = "r"
        for account in self._accounts:
            table.add_row(
                [account.name, account.type.value, format_amount(account.balance, "en")]
            )
        table.add_row(
            ["NET WORTH", "", format_amount(self.net_worth(), "en")], divider=True
        )
        table.add_row(["TO BE REIMBURSED", "", format_amount(self.to_be_reimbursed(), "en")])
        return str(table)

    def cashflow_table(self, group_by: GroupBy = "monthly") -> str:
        table = PrettyTable()
        table.field_names = ["Period", "Income", "Expense", "Net"]
        total_income = Decimal("0")
        total_expense = Decimal("0")
        for label, income, expense in self.cashflow_by_period(group_by):
            total_income += income
            total_expense += expense
            table.add_row(
                [
                    label,
                    format_amount(income, "en"),
                    format_amount(expense, "en"),
                    format_amount(income + expense, "en"),
                ]
            )
        table.add_row(
            [
                "TOTAL",
                format_amount(total_income, "en"),
                format_amount(total_expense, "en"),
                format_amount(total_income + total_expense, "en"),
            ],
            divider=True,
        )
        return str(table)
