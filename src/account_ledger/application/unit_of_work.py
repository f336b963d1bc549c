from types import TracebackType
from typing import Self

from sqlalchemy.ext.asyncio import AsyncSession

from account_ledger.infrastructure.repositories import AccountRepository, TransactionRepository


class UnitOfWork:
    """One database transaction spanning every aggregate touched by a command.

    Transfers save both accounts through the same session, so commit() makes
    both halves durable together or not at all.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self.accounts = AccountRepository(session)
        self.transactions = TransactionRepository(session)

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if exc_type is not None:
            await self.rollback()

    async def commit(self) -> None:
        await self._session.commit()

    async def rollback(self) -> None:
        await self._session.rollback()
