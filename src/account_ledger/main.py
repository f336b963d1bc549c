import asyncio
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Self

import structlog
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from account_ledger.application.services import AccountService, TransactionService
from account_ledger.application.unit_of_work import UnitOfWork
from account_ledger.config import settings
from account_ledger.domain.providers import Providers
from account_ledger.infrastructure.database import Database
from account_ledger.logging import configure_logging


logger = structlog.get_logger()


@dataclass(frozen=True)
class LedgerServices:
    accounts: AccountService
    transactions: TransactionService


class LedgerApplication:
    """Wires configuration, logging, storage and providers for a host process.

    Callers open one ``services()`` scope per request; every service in the
    scope shares one unit of work, hence one database transaction.
    """

    def __init__(self, database: Database, providers: Providers | None = None) -> None:
        self._database = database
        self._providers = providers or Providers.system()

    @classmethod
    def from_settings(cls) -> Self:
        configure_logging(
            level=settings.log_level,
            log_format=settings.log_format,
        )
        logger.info(
            "starting_account_ledger",
            log_level=settings.log_level,
            supported_currencies=settings.supported_currencies,
        )
        return cls(Database(settings.database_url))

    @asynccontextmanager
    async def services(self) -> AsyncGenerator[LedgerServices, None]:
        async with self._database.session() as session:
            uow = UnitOfWork(session)
            yield LedgerServices(
                accounts=AccountService(uow, self._providers),
                transactions=TransactionService(uow, self._providers),
            )

    async def health_check(self) -> bool:
        try:
            async with self._database.session() as session:
                await session.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError) as e:
            logger.error("database_unavailable", error=str(e))
            return False
        return True

    async def close(self) -> None:
        logger.info("shutting_down")
        await self._database.close()


async def main() -> int:
    app = LedgerApplication.from_settings()
    try:
        healthy = await app.health_check()
    finally:
        await app.close()
    logger.info("health_check_finished", healthy=healthy)
    return 0 if healthy else 1


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
