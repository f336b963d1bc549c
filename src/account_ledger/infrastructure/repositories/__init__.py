"""Repository implementations."""

from account_ledger.infrastructure.repositories.account import AccountRepository
from account_ledger.infrastructure.repositories.transactions import TransactionRepository


__all__ = [
    "AccountRepository",
    "TransactionRepository",
]
