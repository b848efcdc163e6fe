import logging
from datetime import date as dt_date
from decimal import Decimal
from typing import Any

from domain.accounts import Account, AccountType
from domain.amounts import coerce_amount, to_minor_units
from domain.categories import Category, canonicalize_category, find_collision
from domain.errors import (
    AccountInUse,
    CategoryInUse,
    DuplicateCategory,
    NotFoundError,
    ValidationError,
)
from domain.transactions import (
    MovementKind,
    NewTransaction,
    TransactionView,
    normalize_patch,
)
from domain.transfers import Movement, Transfer
from domain.validation import ensure_positive_id, optional_text, parse_ymd, require_text
from infrastructure.repositories import LedgerRepository

logger = logging.getLogger(__name__)

OPENING_BALANCE_CATEGORY = "Init"
OPENING_BALANCE_DESCRIPTION = "Initial balance"


def _account_by_id(repository: LedgerRepository, account_id: int) -> Account:
    account = repository.get_account(ensure_positive_id(account_id, "account_id"))
    if account is None:
        raise NotFoundError("Account", account_id)
    return account


def _category_by_id(repository: LedgerRepository, category_id: int) -> Category:
    category = repository.get_category(ensure_positive_id(category_id, "category_id"))
    if category is None:
        raise NotFoundError("Category", category_id)
    return category


def _resolve_category_id(repository: LedgerRepository, raw: str | None) -> int | None:
    """Find or create the category for free-text input. Must run inside a unit of work."""
    categories = repository.list_categories()
    name = canonicalize_category(raw, (category.name for category in categories))
    if name is None:
        return None
    for category in categories:
        if category.name == name:
            return category.id
    created = repository.insert_category(name)
    logger.info("Category created id=%s name=%s", created.id, created.name)
    return created.id


def _write_rows(repository: LedgerRepository, rows: list[NewTransaction]) -> list[int]:
    """Persist rows as one unit: either every row is written or none is."""
    with repository.unit_of_work():
        ids = []
        for row in rows:
            ids.append(
                repository.insert_transaction(
                    account_id=row.account_id,
                    date=row.date,  # type: ignore[arg-type]
                    amount=row.amount,
                    description=row.description,
                    category_id=_resolve_category_id(repository, row.category),
                )
            )
        return ids


# accounts


class CreateAccount:
    def __init__(self, repository: LedgerRepository):
        self._repository = repository

    def execute(
        self,
        *,
        name: str,
        type: AccountType | str = AccountType.STANDARD,
        color: str | None = None,
        opening_balance: Decimal | int | float | str | None = None,
        opening_date: dt_date | str | None = None,
    ) -> Account:
        """Create an account, with an opening transaction when a balance is given."""
        name = require_text(name, "Account name")
        account_type = AccountType.parse(type)
        color = optional_text(color)
        opening = None
        if opening_balance is not None and str(opening_balance).strip() != "":
            opening = coerce_amount(opening_balance)
            to_minor_units(opening)
        opening_day = parse_ymd(opening_date) if opening_date else dt_date.today()

        with self._repository.unit_of_work():
            account = self._repository.insert_account(
                name=name, color=color, type=account_type
            )
            if opening:
                _write_rows(
                    self._repository,
                    [
                        NewTransaction(
                            account_id=account.id,
                            date=opening_day,
                            amount=opening,
                            description=OPENING_BALANCE_DESCRIPTION,
                            category=OPENING_BALANCE_CATEGORY,
                        )
                    ],
                )
        logger.info(
            "Account created id=%s name=%s type=%s opening_balance=%s",
            account.id,
            account.name,
            account.type.value,
            opening,
        )
        return _account_by_id(self._repository, account.id)


class UpdateAccount:
    def __init__(self, repository: LedgerRepository):
        self._repository = repository

    def execute(self, account_id: int, **changes: Any) -> Account:
        """Rename or recolor an account. The account type is fixed at creation."""
        if "type" in changes:
            raise ValidationError("Account type cannot be changed")
        unknown = set(changes) - {"name", "color"}
        if unknown:
            raise ValidationError(f"Unsupported account fields: {', '.join(sorted(unknown))}")
        fields: dict[str, Any] = {}
        if "name" in changes:
            fields["name"] = require_text(changes["name"], "Account name")
        if "color" in changes:
            fields["color"] = optional_text(changes["color"])

        with self._repository.unit_of_work():
            _account_by_id(self._repository, account_id)
            self._repository.update_account(int(account_id), fields)
        logger.info("Account updated id=%s fields=%s", account_id, sorted(fields))
        return _account_by_id(self._repository, account_id)


class DeleteAccount:
    def __init__(self, repository: LedgerRepository):
        self._repository = repository

    def execute(self, account_id: int) -> None:
        with self._repository.unit_of_work():
            account = _account_by_id(self._repository, account_id)
            in_use = self._repository.count_account_transactions(account.id)
            if in_use > 0:
                logger.warning(
                    "Account delete rejected id=%s transactions=%s", account.id, in_use
                )
                raise AccountInUse(account.id, in_use)
            self._repository.delete_account(account.id)
        logger.info("Account deleted id=%s name=%s", account.id, account.name)


class GetAccount:
    def __init__(self, repository: LedgerRepository):
        self._repository = repository

    def execute(self, account_id: int) -> Account:
        return _account_by_id(self._repository, account_id)


class GetAccounts:
    def __init__(self, repository: LedgerRepository):
        self._repository = repository

    def execute(self) -> list[Account]:
        return self._repository.list_accounts()


class CalculateAccountBalance:
    def __init__(self, repository: LedgerRepository):
        self._repository = repository

    def execute(self, account_id: int) -> Decimal:
        with self._repository.snapshot():
            account = _account_by_id(self._repository, account_id)
            return self._repository.account_balance(account.id)


# categories


class ListCategories:
    def __init__(self, repository: LedgerRepository):
        self._repository = repository

    def execute(self) -> list[Category]:
        return self._repository.list_categories()


class CreateCategory:
    def __init__(self, repository: LedgerRepository):
        self._repository = repository

    def execute(self, name: str) -> Category:
        name = require_text(name, "Category name")
        with self._repository.unit_of_work():
            collision = find_collision(name, self._repository.list_categories())
            if collision is not None:
                raise DuplicateCategory(collision.name)
            category = self._repository.insert_category(name)
        logger.info("Category created id=%s name=%s", category.id, category.name)
        return category


class RenameCategory:
    def __init__(self, repository: LedgerRepository):
        self._repository = repository

    def execute(self, category_id: int, name: str) -> Category:
        name = require_text(name, "Category name")
        with self._repository.unit_of_work():
            category = _category_by_id(self._repository, category_id)
            collision = find_collision(
                name, self._repository.list_categories(), exclude_id=category.id
            )
            if collision is not None:
                raise DuplicateCategory(collision.name)
            self._repository.rename_category(category.id, name)
        logger.info("Category renamed id=%s old=%s new=%s", category.id, category.name, name)
        return Category(id=category.id, name=name)


class DeleteCategory:
    def __init__(self, repository: LedgerRepository):
        self._repository = repository

    def execute(self, category_id: int) -> None:
        """Delete an unused category. Referenced categories are never unlinked."""
        with self._repository.unit_of_work():
            category = _category_by_id(self._repository, category_id)
            in_use = self._repository.count_category_transactions(category.id)
            if in_use > 0:
                logger.warning(
                    "Category delete rejected id=%s transactions=%s", category.id, in_use
                )
                raise CategoryInUse(category.id, in_use)
            self._repository.delete_category(category.id)
        logger.info("Category deleted id=%s name=%s", category.id, category.name)


# transactions


class AddTransaction:
    """Write one row with an already signed amount."""

    def __init__(self, repository: LedgerRepository):
        self._repository = repository

    def execute(
        self,
        *,
        account_id: int,
        date: dt_date | str,
        amount: Decimal | int | float | str,
        description: str | None = None,
        category: str | None = None,
    ) -> int:
        row = NewTransaction(
            account_id=account_id,
            date=date,
            amount=amount,  # type: ignore[arg-type]
            description=description,
            category=category,
        )
        with self._repository.unit_of_work():
            _account_by_id(self._repository, row.account_id)
            (transaction_id,) = _write_rows(self._repository, [row])
        logger.info(
            "Transaction created id=%s account_id=%s date=%s amount=%s category=%s",
            transaction_id,
            row.account_id,
            row.date,
            row.amount,
            row.category,
        )
        return transaction_id


class RecordMovement:
    def __init__(self, repository: LedgerRepository):
        self._repository = repository

    def execute(
        self,
        *,
        account_id: int,
        kind: MovementKind | str,
        date: dt_date | str,
        amount: Decimal | int | float | str,
        description: str | None = None,
        category: str | None = None,
        reimbursement_account_id: int | None = None,
    ) -> list[int]:
        """Record income or expense, mirrored on a reimbursable account when one is chosen.

        Returns the ids of the written rows, primary first.
        """
        try:
            kind = MovementKind(kind)
        except ValueError as exc:
            raise ValidationError(f"Unknown movement kind: {kind}") from exc
        amount = coerce_amount(amount)
        date = parse_ymd(date)

        with self._repository.unit_of_work():
            account = _account_by_id(self._repository, account_id)
            mirror = None
            if reimbursement_account_id is not None:
                mirror = _account_by_id(self._repository, reimbursement_account_id)
            movement = Movement(
                account=account,
                kind=kind,
                date=date,
                amount=amount,
                description=description,
                category=category,
                mirror=mirror,
            )
            ids = _write_rows(self._repository, movement.rows())
        logger.info(
            "Movement recorded ids=%s account_id=%s kind=%s amount=%s mirror_account_id=%s",
            ids,
            account.id,
            movement.kind.value,
            movement.signed_amount,
            mirror.id if mirror is not None else None,
        )
        return ids


class CreateTransfer:
    def __init__(self, repository: LedgerRepository):
        self._repository = repository

    def execute(
        self,
        *,
        source_account_id: int,
        destination_account_id: int,
        date: dt_date | str,
        amount: Decimal | int | float | str,
        note: str | None = None,
    ) -> tuple[int, int]:
        """Write the debit and credit rows of a transfer as one unit.

        Returns (source row id, destination row id).
        """
        amount = coerce_amount(amount)
        date = parse_ymd(date)
        with self._repository.unit_of_work():
            source = _account_by_id(self._repository, source_account_id)
            destination = _account_by_id(self._repository, destination_account_id)
            transfer = Transfer(
                source=source,
                destination=destination,
                date=date,
                amount=amount,
                note=note,
            )
            debit_id, credit_id = _write_rows(self._repository, transfer.rows())
        logger.info(
            "Transfer created source=%s destination=%s amount=%s ids=%s,%s",
            source.id,
            destination.id,
            transfer.amount,
            debit_id,
            credit_id,
        )
        return debit_id, credit_id


class GetTransaction:
    def __init__(self, repository: LedgerRepository):
        self._repository = repository

    def execute(self, transaction_id: int) -> TransactionView:
        view = self._repository.get_transaction_view(
            ensure_positive_id(transaction_id, "transaction_id")
        )
        if view is None:
            raise NotFoundError("Transaction", transaction_id)
        return view


class UpdateTransaction:
    def __init__(self, repository: LedgerRepository):
        self._repository = repository

    def execute(self, transaction_id: int, **changes: Any) -> TransactionView:
        """Apply a partial patch; fields that are not passed stay as they are."""
        patch = normalize_patch(changes)
        transaction_id = ensure_positive_id(transaction_id, "transaction_id")
        with self._repository.unit_of_work():
            if self._repository.get_transaction(transaction_id) is None:
                raise NotFoundError("Transaction", transaction_id)
            fields = {key: value for key, value in patch.items() if key != "category"}
            if "account_id" in patch:
                _account_by_id(self._repository, patch["account_id"])
            if "category" in patch:
                fields["category_id"] = _resolve_category_id(self._repository, patch["category"])
            self._repository.update_transaction(transaction_id, fields)
        logger.info("Transaction updated id=%s fields=%s", transaction_id, sorted(patch))
        return GetTransaction(self._repository).execute(transaction_id)


class DeleteTransaction:
    def __init__(self, repository: LedgerRepository):
        self._repository = repository

    def execute(self, transaction_id: int) -> None:
        transaction_id = ensure_positive_id(transaction_id, "transaction_id")
        with self._repository.unit_of_work():
            if not self._repository.delete_transaction(transaction_id):
                raise NotFoundError("Transaction", transaction_id)
        logger.info("Transaction deleted id=%s", transaction_id)
