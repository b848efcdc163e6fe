from domain.amounts import parse_amount
from domain.transactions import TransactionView
from infrastructure.repositories import LedgerRepository

from .use_cases import UpdateTransaction


class TransactionService:
    """Inline edits coming from table cells, where every value arrives as text."""

    def __init__(self, repository: LedgerRepository) -> None:
        self._repository = repository

    def update_amount_text(self, transaction_id: int, text: str) -> TransactionView:
        amount = parse_amount(text)
        return UpdateTransaction(self._repository).execute(transaction_id, amount=amount)

    def update_date_text(self, transaction_id: int, text: str) -> TransactionView:
        return UpdateTransaction(self._repository).execute(transaction_id, date=text)

    def update_category_text(self, transaction_id: int, text: str | None) -> TransactionView:
        return UpdateTransaction(self._repository).execute(transaction_id, category=text)
