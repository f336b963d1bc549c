from typing import Any
from uuid import UUID

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from account_ledger.domain.money import Money
from account_ledger.domain.transaction import Transaction, TransactionStatus, TransactionType


TRANSACTION_COLUMNS = """
    id, reference, account_id, ledger_position, transaction_type,
    amount_cents, currency, balance_after_cents, status, description,
    idempotency_key, processed_at, counterparty_account_id
"""


def row_to_transaction(row: Any) -> Transaction:
    return Transaction(
        id=UUID(row.id),
        reference=row.reference,
        account_id=UUID(row.account_id),
        transaction_type=TransactionType(row.transaction_type),
        amount=Money.from_minor_units(row.amount_cents, row.currency),
        balance_after=Money.from_minor_units(row.balance_after_cents, row.currency),
        status=TransactionStatus(row.status),
        idempotency_key=row.idempotency_key,
        processed_at=row.processed_at,
        description=row.description,
        counterparty_account_id=UUID(row.counterparty_account_id) if row.counterparty_account_id else None,
    )


def transaction_to_params(transaction: Transaction, ledger_position: int) -> dict[str, Any]:
    return {
        "id": str(transaction.id),
        "reference": transaction.reference,
        "account_id": str(transaction.account_id),
        "ledger_position": ledger_position,
        "transaction_type": transaction.transaction_type.value,
        "amount_cents": transaction.amount.minor_units,
        "currency": transaction.amount.currency,
        "balance_after_cents": transaction.balance_after.minor_units,
        "status": transaction.status.value,
        "description": transaction.description,
        "idempotency_key": transaction.idempotency_key,
        "processed_at": transaction.processed_at,
        "counterparty_account_id": (
            str(transaction.counterparty_account_id) if transaction.counterparty_account_id else None
        ),
    }


class TransactionRepository:
    """Ledger entry storage.

    Only AccountRepository calls add(), so an entry is always written in the
    same statement batch as the account row it belongs to.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, transaction_id: UUID) -> Transaction | None:
        result = await self._session.execute(
            text(f"SELECT {TRANSACTION_COLUMNS} FROM transactions WHERE id = :id"),
            {"id": str(transaction_id)},
        )
        row = result.fetchone()
        return row_to_transaction(row) if row else None

    async def get_by_reference(self, reference: str) -> Transaction | None:
        result = await self._session.execute(
            text(f"SELECT {TRANSACTION_COLUMNS} FROM transactions WHERE reference = :reference"),
            {"reference": reference},
        )
        row = result.fetchone()
        return row_to_transaction(row) if row else None

    async def find_by_account_and_idempotency_key(
        self,
        account_id: UUID,
        idempotency_key: str,
    ) -> Transaction | None:
        result = await self._session.execute(
            text(f"""
                SELECT {TRANSACTION_COLUMNS}
                FROM transactions
                WHERE account_id = :account_id AND idempotency_key = :idempotency_key
            """),
            {"account_id": str(account_id), "idempotency_key": idempotency_key},
        )
        row = result.fetchone()
        return row_to_transaction(row) if row else None

    async def list_for_account(self, account_id: UUID) -> list[Transaction]:
        result = await self._session.execute(
            text(f"""
                SELECT {TRANSACTION_COLUMNS}
                FROM transactions
                WHERE account_id = :account_id
                ORDER BY ledger_position
            """),
            {"account_id": str(account_id)},
        )
        return [row_to_transaction(row) for row in result.fetchall()]

    async def list_by_account(
        self,
        account_id: UUID,
        page_number: int = 1,
        page_size: int = 10,
    ) -> list[Transaction]:
        result = await self._session.execute(
            text(f"""
                SELECT {TRANSACTION_COLUMNS}
                FROM transactions
                WHERE account_id = :account_id
                ORDER BY ledger_position DESC
                LIMIT :limit OFFSET :offset
            """),
            {
                "account_id": str(account_id),
                "limit": page_size,
                "offset": (page_number - 1) * page_size,
            },
        )
        return [row_to_transaction(row) for row in result.fetchall()]

    async def count_by_account(self, account_id: UUID) -> int:
        result = await self._session.execute(
            text("SELECT COUNT(*) FROM transactions WHERE account_id = :account_id"),
            {"account_id": str(account_id)},
        )
        return int(result.scalar_one())

    async def add(self, transaction: Transaction, ledger_position: int) -> None:
        await self._session.execute(
            text(f"""
                INSERT INTO transactions ({TRANSACTION_COLUMNS})
                VALUES
                    (:id, :reference, :account_id, :ledger_position, :transaction_type,
                     :amount_cents, :currency, :balance_after_cents, :status, :description,
                     :idempotency_key, :processed_at, :counterparty_account_id)
            """),
            transaction_to_params(transaction, ledger_position),
        )
