from datetime import date
from decimal import Decimal

import pytest

from app.search_service import SearchTransactions
from app.use_cases import AddTransaction, CreateAccount
from domain.accounts import AccountType
from domain.errors import ValidationError
from domain.search import (
    LAST_PAGE,
    SearchFilter,
    SearchResult,
    SortDirection,
    SortKey,
    TxTypeFilter,
    resolve_offset,
)
from infrastructure.sqlite_repository import SQLiteLedgerRepository


@pytest.fixture()
def repo(tmp_path):
    repository = SQLiteLedgerRepository(str(tmp_path / "ledger.db"))
    yield repository
    repository.close()


@pytest.fixture()
def ledger(repo):
    """Checking and Work (reimbursable) with a small mixed history."""
    checking = CreateAccount(repo).execute(name="Checking")
    work = CreateAccount(repo).execute(name="Work", type="reimbursable")
    add = AddTransaction(repo).execute
    add(account_id=checking.id, date="2025-01-05", amount="2500", description="Salary", category="Income")
    add(account_id=checking.id, date="2025-01-07", amount="-42,50", description="Supermarket", category="Food")
    add(account_id=checking.id, date="2025-01-07", amount="-12.00", description="Bakery", category="food")
    add(account_id=checking.id, date="2025-02-01", amount="-800", description="Flat", category="Rent")
    add(account_id=work.id, date="2025-01-20", amount="-80", description="Train to client", category="Travel")
    add(account_id=work.id, date="2025-02-03", amount="80", description="Refund train", category="Travel")
    return repo, checking, work


class TestSearchFilter:
    def test_defaults(self):
        filters = SearchFilter()
        assert filters.limit == 25
        assert filters.offset == 0
        assert filters.tx_type is TxTypeFilter.ALL
        assert filters.sort_by is SortKey.DATE
        assert filters.sort_dir is SortDirection.DESC

    def test_normalizes_text_inputs(self):
        filters = SearchFilter(
            query="  ", date_from="2025-01-01", tx_type="Income", sort_by="AMOUNT", sort_dir="asc"
        )
        assert filters.query is None
        assert filters.date_from == date(2025, 1, 1)
        assert filters.tx_type is TxTypeFilter.INCOME
        assert filters.sort_by is SortKey.AMOUNT
        assert filters.sort_dir is SortDirection.ASC

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"limit": 0},
            {"limit": True},
            {"limit": "10"},
            {"offset": -2},
            {"offset": 1.5},
            {"tx_type": "transfers"},
            {"sort_by": "colour"},
            {"sort_dir": "up"},
            {"date_from": "2025-02-01", "date_to": "2025-01-01"},
            {"date_from": "01.02.2025"},
            {"account_id": 0},
        ],
    )
    def test_rejects_invalid_values(self, kwargs):
        with pytest.raises(ValidationError):
            SearchFilter(**kwargs)

    def test_last_page_sentinel_is_allowed(self):
        assert SearchFilter(offset=LAST_PAGE).offset == -1


@pytest.mark.parametrize(
    ("requested", "total", "page_size", "expected"),
    [
        (0, 0, 25, 0),
        (-1, 0, 25, 0),
        (-1, 10, 25, 0),
        (-1, 25, 25, 0),
        (-1, 26, 25, 1),
        (-1, 50, 25, 25),
        (-1, 51, 25, 26),
        (10, 5, 25, 5),
        (3, 5, 2, 3),
    ],
)
def test_resolve_offset(requested, total, page_size, expected):
    assert resolve_offset(requested, total, page_size) == expected


def test_search_result_paging_properties():
    result = SearchResult(items=[], total=51, offset=50, limit=25)
    assert result.page == 3
    assert result.page_count == 3
    assert SearchResult(items=[], total=0, offset=0).page_count == 1
    tail = SearchResult(items=[], total=11, offset=6, limit=5)
    assert tail.page == tail.page_count == 3


def test_default_order_is_date_descending_with_id_tie_break(ledger):
    repo, _, _ = ledger
    result = SearchTransactions(repo).execute()

    assert result.total == 6
    assert [item.date for item in result.items] == sorted(
        (item.date for item in result.items), reverse=True
    )
    same_day = [item for item in result.items if item.date == date(2025, 1, 7)]
    assert [item.description for item in same_day] == ["Supermarket", "Bakery"]
    assert same_day[0].id < same_day[1].id


def test_sort_by_amount_ascending(ledger):
    repo, _, _ = ledger
    result = SearchTransactions(repo).execute(sort_by="amount", sort_dir="asc")
    amounts = [item.amount for item in result.items]
    assert amounts == sorted(amounts)
    assert amounts[0] == Decimal("-800")


def test_sort_by_category_is_case_insensitive(ledger):
    repo, _, _ = ledger
    result = SearchTransactions(repo).execute(sort_by="category", sort_dir="asc")
    categories = [item.category for item in result.items]
    assert categories == ["Food", "Food", "Income", "Rent", "Travel", "Travel"]


def test_categories_given_in_different_case_share_one_entry(ledger):
    repo, _, _ = ledger
    result = SearchTransactions(repo).execute(query="FOOD")
    assert result.total == 2
    assert {item.category for item in result.items} == {"Food"}


def test_query_matches_description_case_insensitively(ledger):
    repo, _, _ = ledger
    result = SearchTransactions(repo).execute(query="train")
    assert sorted(item.description for item in result.items) == [
        "Refund train",
        "Train to client",
    ]


def test_query_matches_non_ascii_case(repo):
    account = CreateAccount(repo).execute(name="Checking")
    AddTransaction(repo).execute(
        account_id=account.id, date="2025-01-01", amount=-3, description="Café au lait"
    )
    assert SearchTransactions(repo).execute(query="CAFÉ").total == 1


def test_account_and_date_filters(ledger):
    repo, checking, _ = ledger
    result = SearchTransactions(repo).execute(
        account_id=checking.id, date_from="2025-01-06", date_to="2025-01-31"
    )
    assert result.total == 2
    assert all(item.account_id == checking.id for item in result.items)
    assert all(date(2025, 1, 6) <= item.date <= date(2025, 1, 31) for item in result.items)


def test_date_bounds_are_inclusive(ledger):
    repo, _, _ = ledger
    result = SearchTransactions(repo).execute(date_from="2025-01-07", date_to="2025-01-07")
    assert result.total == 2


def test_tx_type_filters_items_but_not_sums(ledger):
    repo, _, _ = ledger
    everything = SearchTransactions(repo).execute()
    expenses = SearchTransactions(repo).execute(tx_type="expense")

    assert expenses.total == 4
    assert all(item.amount < 0 for item in expenses.items)
    assert expenses.sum_income == everything.sum_income == Decimal("2580")
    assert expenses.sum_expense == everything.sum_expense == Decimal("-934.50")


def test_sums_cover_every_match_not_just_the_page(ledger):
    repo, _, _ = ledger
    result = SearchTransactions(repo).execute(limit=2)
    assert len(result.items) == 2
    assert result.sum_income == Decimal("2580")
    assert result.sum_expense == Decimal("-934.50")
    assert result.net == Decimal("1645.50")


def test_sums_are_split_by_account_type(ledger):
    repo, _, _ = ledger
    result = SearchTransactions(repo).execute()

    assert result.sum_income_by_type[AccountType.STANDARD] == Decimal("2500")
    assert result.sum_expense_by_type[AccountType.STANDARD] == Decimal("-854.50")
    assert result.sum_income_by_type[AccountType.REIMBURSABLE] == Decimal("80")
    assert result.sum_expense_by_type[AccountType.REIMBURSABLE] == Decimal("-80")


def test_empty_result_has_zero_sums_for_every_type(repo):
    result = SearchTransactions(repo).execute(query="nothing")
    assert result.items == []
    assert result.total == 0
    assert result.sum_income == Decimal("0")
    assert set(result.sum_expense_by_type) == set(AccountType)


def test_offset_past_the_end_is_clamped(ledger):
    repo, _, _ = ledger
    result = SearchTransactions(repo).execute(offset=100)
    assert result.offset == 6
    assert result.items == []


@pytest.mark.parametrize("count", [0, 1, 4, 5, 9, 10, 11])
def test_last_page_sentinel_matches_explicit_offset(repo, count):
    account = CreateAccount(repo).execute(name="Checking")
    for day in range(1, count + 1):
        AddTransaction(repo).execute(
            account_id=account.id, date=f"2025-03-{day:02d}", amount=-day
        )
    search = SearchTransactions(repo)
    page_size = 5

    first = search.execute(limit=page_size)
    explicit = search.execute(limit=page_size, offset=max(0, first.total - page_size))
    sentinel = search.execute(limit=page_size, offset=LAST_PAGE)

    assert sentinel.offset == explicit.offset == max(0, count - page_size)
    assert [item.id for item in sentinel.items] == [item.id for item in explicit.items]
    assert len(sentinel.items) == min(count, page_size)
    if count:
        assert sentinel.page == sentinel.page_count


def test_last_page_is_a_full_page_of_the_oldest_rows(repo):
    account = CreateAccount(repo).execute(name="Checking")
    for day in range(1, 12):
        AddTransaction(repo).execute(
            account_id=account.id, date=f"2025-03-{day:02d}", amount=-day
        )

    result = SearchTransactions(repo).execute(limit=5, offset=LAST_PAGE)

    assert result.offset == 6
    assert [item.amount for item in result.items] == [
        Decimal("-5"),
        Decimal("-4"),
        Decimal("-3"),
        Decimal("-2"),
        Decimal("-1"),
    ]


def test_last_page_sentinel_respects_filter_and_sort(ledger):
    repo, _, _ = ledger
    result = SearchTransactions(repo).execute(
        tx_type="expense", sort_by="amount", sort_dir="desc", limit=3, offset=LAST_PAGE
    )
    assert result.offset == 1
    assert [item.amount for item in result.items] == [
        Decimal("-42.50"),
        Decimal("-80"),
        Decimal("-800"),
    ]


def test_filter_object_and_overrides_combine(ledger):
    repo, checking, _ = ledger
    base = SearchFilter(account_id=checking.id)
    result = SearchTransactions(repo).execute(base, tx_type="income")
    assert [item.description for item in result.items] == ["Salary"]


def test_iter_matching_ignores_paging(ledger):
    repo, _, _ = ledger
    items = SearchTransactions(repo).iter_matching(limit=1, offset=3)
    assert len(items) == 6


def test_zero_amount_matches_neither_type_filter(repo):
    account = CreateAccount(repo).execute(name="Checking")
    tx_id = AddTransaction(repo).execute(account_id=account.id, date="2025-01-01", amount=0)
    search = SearchTransactions(repo)

    assert search.execute(tx_type="income").total == 0
    assert search.execute(tx_type="expense").total == 0
    (item,) = search.execute().items
    assert item.id == tx_id
    assert item.type == "zero"
