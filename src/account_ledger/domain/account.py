from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Self
from uuid import UUID

from account_ledger.domain.errors import (
    AccountClosedError,
    AccountFrozenError,
    DuplicateIdempotencyKeyError,
    InsufficientFundsError,
    InvariantViolationError,
)
from account_ledger.domain.money import Money
from account_ledger.domain.providers import SYSTEM_PROVIDERS, Providers
from account_ledger.domain.result import Result, as_result
from account_ledger.domain.transaction import Transaction, TransactionType


TRANSFER_IN_SUFFIX = "-in"


class AccountType(Enum):
    CHECKING = "CHECKING"
    SAVINGS = "SAVINGS"
    INVESTMENT = "INVESTMENT"


class AccountStatus(Enum):
    ACTIVE = "ACTIVE"
    FROZEN = "FROZEN"
    CLOSED = "CLOSED"


@dataclass(frozen=True)
class Posting:
    """An updated account together with the entry the mutation appended."""

    account: "Account"
    transaction: Transaction


@dataclass(frozen=True)
class Account:
    """Aggregate root: the balance plus the ordered ledger that produced it.

    Instances are immutable. Every operation validates first and returns a
    Result holding a new Account (and, for money movements, the appended
    Transaction), so a failed operation can never leave a partial change
    behind. Status transitions::

        ACTIVE <-> FROZEN
        ACTIVE | FROZEN -> CLOSED (terminal)

    The version field belongs to persistence and is carried through
    unchanged.
    """

    id: UUID
    account_number: str
    holder_name: str
    account_type: AccountType
    status: AccountStatus
    balance: Money
    opened_date: datetime
    closed_date: datetime | None = None
    freeze_reason: str | None = None
    ledger: tuple[Transaction, ...] = ()
    version: int = 0

    @classmethod
    def open(
        cls,
        holder_name: str,
        account_type: AccountType,
        currency: str = "USD",
        *,
        providers: Providers = SYSTEM_PROVIDERS,
        account_number: str | None = None,
    ) -> Self:
        if not holder_name or not holder_name.strip():
            raise InvariantViolationError("Account holder name cannot be empty")

        return cls(
            id=providers.ids.new_id(),
            account_number=account_number or providers.ids.account_number(),
            holder_name=holder_name,
            account_type=account_type,
            status=AccountStatus.ACTIVE,
            balance=Money.zero(currency),
            opened_date=providers.clock.now(),
        )

    @property
    def currency(self) -> str:
        return self.balance.currency

    @property
    def is_active(self) -> bool:
        return self.status == AccountStatus.ACTIVE

    def find_transaction(self, idempotency_key: str) -> Transaction | None:
        for transaction in self.ledger:
            if transaction.idempotency_key == idempotency_key:
                return transaction
        return None

    @as_result
    def deposit(
        self,
        amount: Money,
        idempotency_key: str,
        description: str | None = None,
        *,
        providers: Providers = SYSTEM_PROVIDERS,
    ) -> Posting:
        self._ensure_active()
        self._ensure_unused_key(idempotency_key)

        balance = self.balance.add(amount)
        return self._post(
            TransactionType.DEPOSIT,
            amount,
            balance,
            idempotency_key,
            providers,
            description=description or "Deposit",
        )

    @as_result
    def withdraw(
        self,
        amount: Money,
        idempotency_key: str,
        description: str | None = None,
        *,
        providers: Providers = SYSTEM_PROVIDERS,
    ) -> Posting:
        self._ensure_active()
        self._ensure_unused_key(idempotency_key)

        balance = self._debit(amount)
        return self._post(
            TransactionType.WITHDRAWAL,
            amount,
            balance,
            idempotency_key,
            providers,
            description=description or "Withdrawal",
        )

    @as_result
    def transfer_out(
        self,
        amount: Money,
        destination_account_id: UUID,
        idempotency_key: str,
        *,
        providers: Providers = SYSTEM_PROVIDERS,
    ) -> Posting:
        self._ensure_active()
        self._ensure_unused_key(idempotency_key)

        balance = self._debit(amount)
        return self._post(
            TransactionType.TRANSFER,
            amount,
            balance,
            idempotency_key,
            providers,
            description="Transfer to account",
            counterparty_account_id=destination_account_id,
        )

    @as_result
    def transfer_in(
        self,
        amount: Money,
        source_account_id: UUID,
        idempotency_key: str,
        *,
        providers: Providers = SYSTEM_PROVIDERS,
    ) -> Posting:
        self._ensure_active()
        if not idempotency_key or not idempotency_key.strip():
            raise InvariantViolationError("Idempotency key is required")
        # The credit side is recorded under its own key so both halves of a
        # transfer stay distinguishable when looked up by key.
        credit_key = f"{idempotency_key}{TRANSFER_IN_SUFFIX}"
        self._ensure_unused_key(credit_key)

        balance = self.balance.add(amount)
        return self._post(
            TransactionType.TRANSFER,
            amount,
            balance,
            credit_key,
            providers,
            description="Transfer from account",
            counterparty_account_id=source_account_id,
        )

    @as_result
    def freeze(self, reason: str) -> "Account":
        if self.status == AccountStatus.CLOSED:
            raise AccountClosedError(self.id)
        if self.status == AccountStatus.FROZEN:
            raise InvariantViolationError("Account is already frozen")
        return replace(self, status=AccountStatus.FROZEN, freeze_reason=reason)

    @as_result
    def unfreeze(self) -> "Account":
        if self.status == AccountStatus.CLOSED:
            raise AccountClosedError(self.id)
        if self.status != AccountStatus.FROZEN:
            raise InvariantViolationError("Account is not frozen")
        return replace(self, status=AccountStatus.ACTIVE, freeze_reason=None)

    @as_result
    def close(self, *, providers: Providers = SYSTEM_PROVIDERS) -> "Account":
        # A frozen account with a zero balance may be closed directly.
        if self.status == AccountStatus.CLOSED:
            raise InvariantViolationError("Account is already closed")
        if not self.balance.is_zero:
            raise InvariantViolationError("Cannot close account with non-zero balance")
        return replace(self, status=AccountStatus.CLOSED, closed_date=providers.clock.now())

    @as_result
    def rename(self, new_name: str) -> "Account":
        if not new_name or not new_name.strip():
            raise InvariantViolationError("Account holder name cannot be empty")
        return replace(self, holder_name=new_name)

    def _ensure_active(self) -> None:
        if self.status == AccountStatus.FROZEN:
            raise AccountFrozenError(self.id, self.freeze_reason)
        if self.status == AccountStatus.CLOSED:
            raise AccountClosedError(self.id)

    def _ensure_unused_key(self, idempotency_key: str) -> None:
        if not idempotency_key or not idempotency_key.strip():
            raise InvariantViolationError("Idempotency key is required")
        if self.find_transaction(idempotency_key) is not None:
            raise DuplicateIdempotencyKeyError(idempotency_key)

    def _debit(self, amount: Money) -> Money:
        if self.balance.is_less_than(amount):
            raise InsufficientFundsError(available=self.balance, requested=amount)
        return self.balance.subtract(amount)

    def _post(
        self,
        transaction_type: TransactionType,
        amount: Money,
        balance: Money,
        idempotency_key: str,
        providers: Providers,
        description: str | None = None,
        counterparty_account_id: UUID | None = None,
    ) -> Posting:
        transaction = Transaction._create(
            account_id=self.id,
            transaction_type=transaction_type,
            amount=amount,
            balance_after=balance,
            idempotency_key=idempotency_key,
            providers=providers,
            description=description,
            counterparty_account_id=counterparty_account_id,
        )
        account = replace(self, balance=balance, ledger=(*self.ledger, transaction))
        return Posting(account=account, transaction=transaction)


AccountResult = Result[Account]
PostingResult = Result[Posting]
