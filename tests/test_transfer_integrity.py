from decimal import Decimal

import pytest

from app.search_service import SearchTransactions
from app.use_cases import (
    CalculateAccountBalance,
    CreateAccount,
    CreateTransfer,
    ListCategories,
    RecordMovement,
)
from domain.accounts import Account, AccountType
from domain.errors import NotFoundError, StorageError, ValidationError
from domain.transactions import MovementKind
from domain.transfers import TRANSFER_CATEGORY, Movement, Transfer, transfer_description
from infrastructure.sqlite_repository import SQLiteLedgerRepository


def _repo_with_accounts(tmp_path) -> tuple[SQLiteLedgerRepository, int, int]:
    repo = SQLiteLedgerRepository(str(tmp_path / "ledger.db"))
    source = CreateAccount(repo).execute(name="Source", opening_balance="120")
    target = CreateAccount(repo).execute(name="Target", opening_balance="10")
    return repo, source.id, target.id


def _fail_on_call(monkeypatch, repo, method_name: str, failing_call: int) -> None:
    original = getattr(repo, method_name)
    calls = {"n": 0}

    def wrapper(*args, **kwargs):
        calls["n"] += 1
        if calls["n"] == failing_call:
            raise StorageError("simulated write failure")
        return original(*args, **kwargs)

    monkeypatch.setattr(repo, method_name, wrapper)


def test_transfer_description_marks_both_accounts():
    assert transfer_description("rent share", "Checking", "Savings") == (
        "rent share [Checking -> Savings]"
    )
    assert transfer_description("  ", "Checking", "Savings") == "[Checking -> Savings]"


def test_transfer_rows_use_absolute_amount():
    source = Account(id=1, name="Checking")
    destination = Account(id=2, name="Savings")
    transfer = Transfer(
        source=source, destination=destination, date="2025-05-01", amount=Decimal("-40")
    )

    debit, credit = transfer.rows()
    assert debit.account_id == 1 and debit.amount == Decimal("-40")
    assert credit.account_id == 2 and credit.amount == Decimal("40")
    assert debit.date == credit.date
    assert debit.description == credit.description == "[Checking -> Savings]"
    assert debit.category == credit.category == TRANSFER_CATEGORY


@pytest.mark.parametrize("amount", ["0", "0,00", 0])
def test_transfer_rejects_zero_amount(amount):
    with pytest.raises(ValidationError):
        Transfer(
            source=Account(id=1, name="A"),
            destination=Account(id=2, name="B"),
            date="2025-05-01",
            amount=amount,
        )


def test_transfer_rejects_same_account():
    account = Account(id=1, name="A")
    with pytest.raises(ValidationError):
        Transfer(source=account, destination=account, date="2025-05-01", amount=Decimal("5"))


def test_create_transfer_writes_debit_and_credit(tmp_path):
    repo, source_id, target_id = _repo_with_accounts(tmp_path)

    debit_id, credit_id = CreateTransfer(repo).execute(
        source_account_id=source_id,
        destination_account_id=target_id,
        date="2025-05-01",
        amount="30,50",
        note="Savings",
    )

    debit = repo.get_transaction_view(debit_id)
    credit = repo.get_transaction_view(credit_id)
    assert debit.amount == Decimal("-30.50")
    assert credit.amount == Decimal("30.50")
    assert debit.category == credit.category == "Transfer"
    assert debit.description == "Savings [Source -> Target]"
    assert CalculateAccountBalance(repo).execute(source_id) == Decimal("89.50")
    assert CalculateAccountBalance(repo).execute(target_id) == Decimal("40.50")


def test_transfers_conserve_total_balance(tmp_path):
    repo, source_id, target_id = _repo_with_accounts(tmp_path)
    before = sum(account.balance for account in repo.list_accounts())

    for amount in ("1", "-2,25", "999.99", "0.01"):
        CreateTransfer(repo).execute(
            source_account_id=source_id,
            destination_account_id=target_id,
            date="2025-05-02",
            amount=amount,
        )

    after = sum(account.balance for account in repo.list_accounts())
    assert after == before
    transfers = SearchTransactions(repo).execute(query="transfer", limit=100)
    assert sum(item.amount for item in transfers.items) == Decimal("0")


def test_create_transfer_to_missing_account_writes_nothing(tmp_path):
    repo, source_id, _ = _repo_with_accounts(tmp_path)

    with pytest.raises(NotFoundError):
        CreateTransfer(repo).execute(
            source_account_id=source_id,
            destination_account_id=999,
            date="2025-05-01",
            amount="5",
        )
    assert SearchTransactions(repo).execute().total == 2


def test_transfer_is_rolled_back_when_second_row_fails(tmp_path, monkeypatch):
    repo, source_id, target_id = _repo_with_accounts(tmp_path)
    _fail_on_call(monkeypatch, repo, "insert_transaction", failing_call=2)

    with pytest.raises(StorageError):
        CreateTransfer(repo).execute(
            source_account_id=source_id,
            destination_account_id=target_id,
            date="2025-05-01",
            amount="25",
        )

    assert CalculateAccountBalance(repo).execute(source_id) == Decimal("120")
    assert CalculateAccountBalance(repo).execute(target_id) == Decimal("10")
    assert SearchTransactions(repo).execute().total == 2
    # the implicitly created category went with the rows
    assert [c.name for c in ListCategories(repo).execute()] == ["Init"]


class TestMovement:
    def test_expense_is_stored_negative(self):
        movement = Movement(
            account=Account(id=1, name="Checking"),
            kind=MovementKind.EXPENSE,
            date="2025-01-03",
            amount=Decimal("12.00"),
        )
        (row,) = movement.rows()
        assert row.amount == Decimal("-12.00")

    def test_income_is_stored_positive_even_if_given_negative(self):
        movement = Movement(
            account=Account(id=1, name="Checking"),
            kind="income",
            date="2025-01-03",
            amount="-12",
        )
        assert movement.signed_amount == Decimal("12")

    def test_mirror_row_is_identical_apart_from_account(self):
        movement = Movement(
            account=Account(id=1, name="Checking"),
            kind=MovementKind.EXPENSE,
            date="2025-01-03",
            amount=Decimal("80"),
            description="Hotel",
            category="Travel",
            mirror=Account(id=2, name="Work", type=AccountType.REIMBURSABLE),
        )
        primary, mirror = movement.rows()
        assert mirror.account_id == 2
        assert (mirror.date, mirror.amount, mirror.description, mirror.category) == (
            primary.date,
            primary.amount,
            primary.description,
            primary.category,
        )

    @pytest.mark.parametrize(
        ("account", "mirror"),
        [
            (
                Account(id=1, name="Checking"),
                Account(id=2, name="Savings", type=AccountType.STANDARD),
            ),
            (
                Account(id=1, name="Work", type=AccountType.REIMBURSABLE),
                Account(id=2, name="Other work", type=AccountType.REIMBURSABLE),
            ),
            (
                Account(id=2, name="Work", type=AccountType.REIMBURSABLE),
                Account(id=2, name="Work", type=AccountType.REIMBURSABLE),
            ),
        ],
    )
    def test_invalid_mirror_is_rejected(self, account, mirror):
        with pytest.raises(ValidationError):
            Movement(
                account=account,
                kind=MovementKind.EXPENSE,
                date="2025-01-03",
                amount=Decimal("1"),
                mirror=mirror,
            )


def test_record_movement_with_reimbursement_mirror(tmp_path):
    repo = SQLiteLedgerRepository(str(tmp_path / "ledger.db"))
    checking = CreateAccount(repo).execute(name="Checking", opening_balance=500)
    work = CreateAccount(repo).execute(name="Work", type="reimbursable")

    ids = RecordMovement(repo).execute(
        account_id=checking.id,
        kind="expense",
        date="2025-02-10",
        amount="80,00",
        description="Train ticket",
        category="Travel",
        reimbursement_account_id=work.id,
    )

    assert len(ids) == 2
    primary, mirror = (repo.get_transaction_view(tx_id) for tx_id in ids)
    assert primary.account_id == checking.id and mirror.account_id == work.id
    assert primary.amount == mirror.amount == Decimal("-80.00")
    assert primary.category == mirror.category == "Travel"
    assert CalculateAccountBalance(repo).execute(checking.id) == Decimal("420.00")
    work_account = next(a for a in repo.list_accounts() if a.id == work.id)
    assert work_account.reported_balance == Decimal("80.00")


def test_record_movement_rejects_standard_mirror_without_writing(tmp_path):
    repo = SQLiteLedgerRepository(str(tmp_path / "ledger.db"))
    checking = CreateAccount(repo).execute(name="Checking")
    savings = CreateAccount(repo).execute(name="Savings")

    with pytest.raises(ValidationError):
        RecordMovement(repo).execute(
            account_id=checking.id,
            kind="expense",
            date="2025-02-10",
            amount="5",
            reimbursement_account_id=savings.id,
        )
    assert SearchTransactions(repo).execute().total == 0


def test_mirrored_movement_is_rolled_back_when_mirror_row_fails(tmp_path, monkeypatch):
    repo = SQLiteLedgerRepository(str(tmp_path / "ledger.db"))
    checking = CreateAccount(repo).execute(name="Checking")
    work = CreateAccount(repo).execute(name="Work", type="reimbursable")
    _fail_on_call(monkeypatch, repo, "insert_transaction", failing_call=2)

    with pytest.raises(StorageError):
        RecordMovement(repo).execute(
            account_id=checking.id,
            kind="expense",
            date="2025-02-10",
            amount="5",
            reimbursement_account_id=work.id,
        )
    assert SearchTransactions(repo).execute().total == 0


def test_record_movement_rejects_unknown_kind(tmp_path):
    repo = SQLiteLedgerRepository(str(tmp_path / "ledger.db"))
    checking = CreateAccount(repo).execute(name="Checking")
    with pytest.raises(ValidationError):
        RecordMovement(repo).execute(
            account_id=checking.id, kind="refund", date="2025-02-10", amount="5"
        )
