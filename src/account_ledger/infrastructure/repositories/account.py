from datetime import UTC, datetime
from typing import Any, cast
from uuid import UUID

from sqlalchemy import CursorResult, text
from sqlalchemy.ext.asyncio import AsyncSession

from account_ledger.domain.account import Account, AccountStatus, AccountType
from account_ledger.domain.money import Money
from account_ledger.infrastructure.errors import OptimisticLockError
from account_ledger.infrastructure.repositories.transactions import TransactionRepository


ACCOUNT_COLUMNS = """
    id, account_number, holder_name, account_type, status,
    balance_cents, currency, opened_date, closed_date, freeze_reason, version
"""


class AccountRepository:
    """Loads and saves whole account aggregates, ledger included."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._transactions = TransactionRepository(session)

    async def get(self, account_id: UUID) -> Account | None:
        result = await self._session.execute(
            text(f"SELECT {ACCOUNT_COLUMNS} FROM accounts WHERE id = :id"),
            {"id": str(account_id)},
        )
        row = result.fetchone()
        if not row:
            return None
        return await self._to_account(row)

    async def get_by_account_number(self, account_number: str) -> Account | None:
        result = await self._session.execute(
            text(f"SELECT {ACCOUNT_COLUMNS} FROM accounts WHERE account_number = :account_number"),
            {"account_number": account_number},
        )
        row = result.fetchone()
        if not row:
            return None
        return await self._to_account(row)

    async def account_number_exists(self, account_number: str) -> bool:
        result = await self._session.execute(
            text("SELECT 1 FROM accounts WHERE account_number = :account_number"),
            {"account_number": account_number},
        )
        return result.fetchone() is not None

    async def add(self, account: Account) -> None:
        now = datetime.now(UTC)
        await self._session.execute(
            text(f"""
                INSERT INTO accounts ({ACCOUNT_COLUMNS}, created_at, updated_at)
                VALUES
                    (:id, :account_number, :holder_name, :account_type, :status,
                     :balance_cents, :currency, :opened_date, :closed_date, :freeze_reason,
                     :version, :created_at, :updated_at)
            """),
            {
                "id": str(account.id),
                "account_number": account.account_number,
                "holder_name": account.holder_name,
                "account_type": account.account_type.value,
                "status": account.status.value,
                "balance_cents": account.balance.minor_units,
                "currency": account.currency,
                "opened_date": account.opened_date,
                "closed_date": account.closed_date,
                "freeze_reason": account.freeze_reason,
                "version": account.version,
                "created_at": now,
                "updated_at": now,
            },
        )
        for position, transaction in enumerate(account.ledger):
            await self._transactions.add(transaction, position)

    async def save(self, account: Account, previous: Account) -> None:
        """Persist ``account``, which was derived from the loaded ``previous``.

        The row update only applies if nobody else saved the account since
        ``previous`` was loaded; ledger entries appended after ``previous``
        are inserted with their positions.
        """
        result = cast(
            "CursorResult[Any]",
            await self._session.execute(
                text("""
                    UPDATE accounts
                    SET holder_name = :holder_name,
                        status = :status,
                        balance_cents = :balance_cents,
                        closed_date = :closed_date,
                        freeze_reason = :freeze_reason,
                        version = version + 1,
                        updated_at = :updated_at
                    WHERE id = :id AND version = :expected_version
                """),
                {
                    "id": str(account.id),
                    "holder_name": account.holder_name,
                    "status": account.status.value,
                    "balance_cents": account.balance.minor_units,
                    "closed_date": account.closed_date,
                    "freeze_reason": account.freeze_reason,
                    "expected_version": previous.version,
                    "updated_at": datetime.now(UTC),
                },
            ),
        )
        if (result.rowcount or 0) == 0:
            raise OptimisticLockError("Account", str(account.id))

        start = len(previous.ledger)
        for position, transaction in enumerate(account.ledger[start:], start=start):
            await self._transactions.add(transaction, position)

    async def _to_account(self, row: Any) -> Account:
        ledger = await self._transactions.list_for_account(UUID(row.id))
        return Account(
            id=UUID(row.id),
            account_number=row.account_number,
            holder_name=row.holder_name,
            account_type=AccountType(row.account_type),
            status=AccountStatus(row.status),
            balance=Money.from_minor_units(row.balance_cents, row.currency),
            opened_date=row.opened_date,
            closed_date=row.closed_date,
            freeze_reason=row.freeze_reason,
            ledger=tuple(ledger),
            version=row.version,
        )
