class DomainError(Exception):
    """Base class for every error raised by the ledger."""


class ValidationError(DomainError, ValueError):
    """Input rejected before any write was attempted."""


class AmountParseError(ValidationError):
    def __init__(self, text: object, reason: str = "Invalid amount") -> None:
        super().__init__(f"{reason}: {text!r}")
        self.text = text


class ConflictError(DomainError):
    pass


class DuplicateCategory(ConflictError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Category already exists: {name}")
        self.name = name


class ReferentialError(DomainError):
    """Delete blocked because other rows still reference the target."""


class AccountInUse(ReferentialError):
    def __init__(self, account_id: int, transaction_count: int) -> None:
        super().__init__(
            f"Account #{account_id} is referenced by {transaction_count} transaction(s)"
        )
        self.account_id = account_id
        self.transaction_count = transaction_count


class CategoryInUse(ReferentialError):
    def __init__(self, category_id: int, transaction_count: int) -> None:
        super().__init__(
            f"Category #{category_id} is referenced by {transaction_count} transaction(s)"
        )
        self.category_id = category_id
        self.transaction_count = transaction_count


class NotFoundError(DomainError):
    def __init__(self, entity: str, entity_id: int) -> None:
        super().__init__(f"{entity} not found: {entity_id}")
        self.entity = entity
        self.entity_id = entity_id


class StorageError(DomainError):
    """The backend failed; the unit of work in flight was rolled back."""
