from typing import TYPE_CHECKING, ClassVar
from uuid import UUID


if TYPE_CHECKING:
    from decimal import Decimal

    from account_ledger.domain.money import Money


class DomainError(Exception):
    """Base exception for business-rule failures.

    Domain errors never describe transient conditions, so retrying the same
    call against the same state always fails the same way.
    """

    code: ClassVar[str] = "DOMAIN_ERROR"
    retryable: ClassVar[bool] = False


class InsufficientFundsError(DomainError):
    """Raised when a debit exceeds the available balance."""

    code = "INSUFFICIENT_FUNDS"
    __match_args__ = ("available", "requested")

    def __init__(self, available: "Money", requested: "Money") -> None:
        self.available = available
        self.requested = requested
        super().__init__(f"Insufficient funds: available {available}, requested {requested}")


class CurrencyMismatchError(DomainError):
    """Raised when currencies don't match."""

    code = "CURRENCY_MISMATCH"
    __match_args__ = ("expected", "actual")

    def __init__(self, expected: str, actual: str) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(f"Currency mismatch: expected {expected}, got {actual}")


class AccountFrozenError(DomainError):
    code = "ACCOUNT_FROZEN"
    __match_args__ = ("account_id", "reason")

    def __init__(self, account_id: UUID, reason: str | None = None) -> None:
        self.account_id = account_id
        self.reason = reason
        message = f"Account {account_id} is frozen"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class AccountClosedError(DomainError):
    code = "ACCOUNT_CLOSED"
    __match_args__ = ("account_id",)

    def __init__(self, account_id: UUID) -> None:
        self.account_id = account_id
        super().__init__(f"Account {account_id} is closed and cannot be used")


class DuplicateIdempotencyKeyError(DomainError):
    """Raised when the ledger already holds an entry with the given key."""

    code = "DUPLICATE_IDEMPOTENCY_KEY"
    __match_args__ = ("key",)

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"Idempotency key '{key}' has already been processed")


class InvariantViolationError(DomainError):
    """Raised for state-machine checks that carry no structured payload."""

    code = "INVARIANT_VIOLATION"
    __match_args__ = ("message",)

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class InvalidAmountError(DomainError, ValueError):
    code = "INVALID_AMOUNT"
    __match_args__ = ("amount", "reason")

    def __init__(self, amount: "Decimal", reason: str) -> None:
        self.amount = amount
        self.reason = reason
        super().__init__(f"Invalid amount {amount}: {reason}")


class InvalidCurrencyError(DomainError, ValueError):
    code = "INVALID_CURRENCY"
    __match_args__ = ("currency",)

    def __init__(self, currency: str | None) -> None:
        self.currency = currency
        super().__init__(f"Invalid currency {currency!r}: expected an ISO 4217 code (3 letters)")


class AccountNotFoundError(DomainError):
    """Raised when an account cannot be found."""

    code = "ACCOUNT_NOT_FOUND"
    __match_args__ = ("account_id",)

    def __init__(self, account_id: UUID | str) -> None:
        self.account_id = account_id
        super().__init__(f"Account {account_id} not found")
