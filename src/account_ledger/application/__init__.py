"""Application layer - services and use cases."""

from account_ledger.application.commands import (
    CloseAccountCommand,
    DepositCommand,
    FreezeAccountCommand,
    ListTransactionsQuery,
    OpenAccountCommand,
    RenameAccountCommand,
    TransferCommand,
    UnfreezeAccountCommand,
    WithdrawCommand,
)
from account_ledger.application.pagination import PaginatedList
from account_ledger.application.services import (
    AccountBalance,
    AccountService,
    TransactionReceipt,
    TransactionService,
    TransferReceipt,
)
from account_ledger.application.unit_of_work import UnitOfWork


__all__ = [
    "AccountBalance",
    "AccountService",
    "CloseAccountCommand",
    "DepositCommand",
    "FreezeAccountCommand",
    "ListTransactionsQuery",
    "OpenAccountCommand",
    "PaginatedList",
    "RenameAccountCommand",
    "TransactionReceipt",
    "TransactionService",
    "TransferCommand",
    "TransferReceipt",
    "UnfreezeAccountCommand",
    "UnitOfWork",
    "WithdrawCommand",
]
