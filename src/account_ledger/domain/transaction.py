from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Self
from uuid import UUID

from account_ledger.domain.errors import InvariantViolationError
from account_ledger.domain.money import Money
from account_ledger.domain.providers import Providers
from account_ledger.domain.result import as_result


class TransactionType(Enum):
    DEPOSIT = "DEPOSIT"
    WITHDRAWAL = "WITHDRAWAL"
    TRANSFER = "TRANSFER"
    FEE = "FEE"
    INTEREST = "INTEREST"


class TransactionStatus(Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    REVERSED = "REVERSED"


@dataclass(frozen=True)
class Transaction:
    """Immutable ledger entry owned by exactly one account."""

    id: UUID
    reference: str
    account_id: UUID
    transaction_type: TransactionType
    amount: Money
    balance_after: Money
    status: TransactionStatus
    idempotency_key: str
    processed_at: datetime
    description: str | None = None
    counterparty_account_id: UUID | None = None

    @classmethod
    def _create(
        cls,
        account_id: UUID,
        transaction_type: TransactionType,
        amount: Money,
        balance_after: Money,
        idempotency_key: str,
        providers: Providers,
        description: str | None = None,
        counterparty_account_id: UUID | None = None,
    ) -> Self:
        """Build a completed entry. Only Account mutations call this."""
        if amount.is_zero:
            raise InvariantViolationError("Transaction amount cannot be zero")

        processed_at = providers.clock.now()
        return cls(
            id=providers.ids.new_id(),
            reference=providers.ids.transaction_reference(processed_at),
            account_id=account_id,
            transaction_type=transaction_type,
            amount=amount,
            balance_after=balance_after,
            status=TransactionStatus.COMPLETED,
            idempotency_key=idempotency_key,
            processed_at=processed_at,
            description=description,
            counterparty_account_id=counterparty_account_id,
        )

    @as_result
    def mark_as_failed(self, reason: str) -> "Transaction":
        if self.status != TransactionStatus.PENDING:
            raise InvariantViolationError("Only pending transactions can be marked as failed")
        return replace(
            self,
            status=TransactionStatus.FAILED,
            description=f"{self.description or ''} - Failed: {reason}",
        )

    @as_result
    def reverse(self) -> "Transaction":
        if self.status != TransactionStatus.COMPLETED:
            raise InvariantViolationError("Only completed transactions can be reversed")
        return replace(self, status=TransactionStatus.REVERSED)
