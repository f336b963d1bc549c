"""Domain layer - the account aggregate, its ledger and money."""

from account_ledger.domain.account import Account, AccountStatus, AccountType, Posting
from account_ledger.domain.errors import (
    AccountClosedError,
    AccountFrozenError,
    AccountNotFoundError,
    CurrencyMismatchError,
    DomainError,
    DuplicateIdempotencyKeyError,
    InsufficientFundsError,
    InvalidAmountError,
    InvalidCurrencyError,
    InvariantViolationError,
)
from account_ledger.domain.money import Money
from account_ledger.domain.providers import (
    Clock,
    IdentityGenerator,
    Providers,
    RandomIdentityGenerator,
    SystemClock,
)
from account_ledger.domain.result import Err, Ok, Result, as_result
from account_ledger.domain.transaction import Transaction, TransactionStatus, TransactionType
from account_ledger.domain.transfer import TransferPosting, conserves_value, transfer


__all__ = [
    "Account",
    "AccountClosedError",
    "AccountFrozenError",
    "AccountNotFoundError",
    "AccountStatus",
    "AccountType",
    "Clock",
    "CurrencyMismatchError",
    "DomainError",
    "DuplicateIdempotencyKeyError",
    "Err",
    "IdentityGenerator",
    "InsufficientFundsError",
    "InvalidAmountError",
    "InvalidCurrencyError",
    "InvariantViolationError",
    "Money",
    "Ok",
    "Posting",
    "Providers",
    "RandomIdentityGenerator",
    "Result",
    "SystemClock",
    "Transaction",
    "TransactionStatus",
    "TransactionType",
    "TransferPosting",
    "as_result",
    "conserves_value",
    "transfer",
]
