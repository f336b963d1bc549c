"""Integration tests for repositories and services against PostgreSQL.

A throwaway PostgreSQL container is started with testcontainers and migrated
with alembic. The tests are skipped when Docker is not available.
"""

from collections.abc import AsyncIterator, Iterator
from decimal import Decimal
from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from testcontainers.postgres import PostgresContainer

from account_ledger.application.commands import (
    CloseAccountCommand,
    DepositCommand,
    ListTransactionsQuery,
    OpenAccountCommand,
    TransferCommand,
    WithdrawCommand,
)
from account_ledger.config import settings
from account_ledger.domain.account import Account, AccountStatus, AccountType
from account_ledger.domain.errors import InsufficientFundsError
from account_ledger.domain.money import Money
from account_ledger.domain.providers import Providers
from account_ledger.domain.result import Err
from account_ledger.domain.transaction import Transaction
from account_ledger.infrastructure.database import Database
from account_ledger.infrastructure.errors import OptimisticLockError
from account_ledger.infrastructure.repositories import AccountRepository, TransactionRepository
from account_ledger.main import LedgerApplication


pytestmark = pytest.mark.integration

PROJECT_ROOT = Path(__file__).resolve().parents[2]


@pytest.fixture(scope="module")
def database_url() -> Iterator[str]:
    """Start PostgreSQL and apply migrations."""
    try:
        container = PostgresContainer("postgres:16-alpine", driver="asyncpg")
        container.start()
    except Exception as e:
        pytest.skip(f"PostgreSQL container not available: {e}")

    url = container.get_connection_url()
    original_url = settings.database_url
    settings.database_url = url
    try:
        config = Config(str(PROJECT_ROOT / "alembic.ini"))
        config.set_main_option("script_location", str(PROJECT_ROOT / "alembic"))
        command.upgrade(config, "head")
        yield url
    finally:
        settings.database_url = original_url
        container.stop()


@pytest.fixture
async def database(database_url: str) -> AsyncIterator[Database]:
    """Database with empty tables."""
    db = Database(database_url, pool_size=2, max_overflow=0)
    yield db
    async with db.session() as session:
        await session.execute(text("TRUNCATE transactions, accounts"))
        await session.commit()
    await db.close()


@pytest.fixture
def app(database: Database, providers: Providers) -> LedgerApplication:
    return LedgerApplication(database, providers)


async def open_funded_account(app: LedgerApplication, amount: str, currency: str = "USD") -> Account:
    async with app.services() as services:
        account = (
            await services.accounts.open_account(
                OpenAccountCommand(holder_name="Jane Roe", account_type=AccountType.CHECKING, currency=currency)
            )
        ).unwrap()
        if Decimal(amount) > 0:
            await services.transactions.deposit(
                DepositCommand(
                    account_id=account.id,
                    amount=amount,
                    currency=currency,
                    idempotency_key=f"seed-{account.id}",
                )
            )
        loaded = await services.accounts.get_account(account.id)
    assert loaded is not None
    return loaded


class TestAccountRepository:
    """Tests for AccountRepository persistence."""

    async def test_add_and_get_round_trip(self, database: Database, funded_account: Account) -> None:
        """Account and ledger are stored and loaded unchanged."""
        async with database.session() as session:
            await AccountRepository(session).add(funded_account)
            await session.commit()

        async with database.session() as session:
            repo = AccountRepository(session)
            loaded = await repo.get(funded_account.id)
            by_number = await repo.get_by_account_number(funded_account.account_number)
            exists = await repo.account_number_exists(funded_account.account_number)

        assert loaded == funded_account
        assert by_number == funded_account
        assert exists

    async def test_get_missing(self, database: Database, account: Account) -> None:
        async with database.session() as session:
            repo = AccountRepository(session)

            assert await repo.get(account.id) is None
            assert not await repo.account_number_exists("0000-0000-0000")

    async def test_save_appends_entries_and_bumps_version(
        self,
        database: Database,
        account: Account,
        providers: Providers,
    ) -> None:
        async with database.session() as session:
            await AccountRepository(session).add(account)
            await session.commit()

        updated = account.deposit(Money.usd(75), "dep-1", providers=providers).unwrap().account
        async with database.session() as session:
            await AccountRepository(session).save(updated, previous=account)
            await session.commit()

        async with database.session() as session:
            loaded = await AccountRepository(session).get(account.id)

        assert loaded is not None
        assert loaded.version == 1
        assert loaded.balance == Money.usd(75)
        assert loaded.ledger == updated.ledger

    async def test_stale_save_raises_optimistic_lock_error(
        self,
        database: Database,
        account: Account,
        providers: Providers,
    ) -> None:
        """Two writers that loaded the same version cannot both save."""
        async with database.session() as session:
            await AccountRepository(session).add(account)
            await session.commit()

        first = account.deposit(Money.usd(10), "dep-1", providers=providers).unwrap().account
        second = account.deposit(Money.usd(20), "dep-2", providers=providers).unwrap().account

        async with database.session() as session:
            await AccountRepository(session).save(first, previous=account)
            await session.commit()

        async with database.session() as session:
            with pytest.raises(OptimisticLockError):
                await AccountRepository(session).save(second, previous=account)

    async def test_duplicate_idempotency_key_rejected_by_storage(
        self,
        database: Database,
        funded_account: Account,
        providers: Providers,
    ) -> None:
        """Storage enforces key uniqueness per account even if the aggregate is bypassed."""
        async with database.session() as session:
            await AccountRepository(session).add(funded_account)
            await session.commit()

        entry = funded_account.ledger[0]
        duplicate = Transaction(
            id=providers.ids.new_id(),
            reference="TXN-20260101000000-99999",
            account_id=entry.account_id,
            transaction_type=entry.transaction_type,
            amount=Money.usd(1),
            balance_after=Money.usd(1),
            status=entry.status,
            idempotency_key=entry.idempotency_key,
            processed_at=entry.processed_at,
        )

        async with database.session() as session:
            with pytest.raises(IntegrityError):
                await TransactionRepository(session).add(duplicate, ledger_position=1)


class TestLedgerServicesWithDatabase:
    """Tests for services running against PostgreSQL."""

    async def test_deposit_withdraw_and_replay(self, app: LedgerApplication) -> None:
        account = await open_funded_account(app, "100")

        async with app.services() as services:
            overdraft = await services.transactions.withdraw(
                WithdrawCommand(account_id=account.id, amount="150", idempotency_key="wd-1")
            )
            withdrawal = await services.transactions.withdraw(
                WithdrawCommand(account_id=account.id, amount="20", idempotency_key="wd-2")
            )
            replay = await services.transactions.withdraw(
                WithdrawCommand(account_id=account.id, amount="20", idempotency_key="wd-2")
            )
            balance = await services.accounts.get_balance(account.id)

        assert isinstance(overdraft, Err)
        assert isinstance(overdraft.error, InsufficientFundsError)
        assert not withdrawal.unwrap().replayed
        assert replay.unwrap().replayed
        assert replay.unwrap().transaction.id == withdrawal.unwrap().transaction.id
        assert balance is not None
        assert balance.balance == Money.usd(80)

    async def test_transfer_moves_funds(self, app: LedgerApplication) -> None:
        source = await open_funded_account(app, "500")
        destination = await open_funded_account(app, "0")

        async with app.services() as services:
            receipt = (
                await services.transactions.transfer(
                    TransferCommand(
                        source_account_id=source.id,
                        destination_account_id=destination.id,
                        amount="200",
                        idempotency_key="tr-1",
                    )
                )
            ).unwrap()
            replay = (
                await services.transactions.transfer(
                    TransferCommand(
                        source_account_id=source.id,
                        destination_account_id=destination.id,
                        amount="200",
                        idempotency_key="tr-1",
                    )
                )
            ).unwrap()
            source_after = await services.accounts.get_account(source.id)
            destination_after = await services.accounts.get_account(destination.id)

        assert source_after is not None and destination_after is not None
        assert source_after.balance == Money.usd(300)
        assert destination_after.balance == Money.usd(200)
        assert destination_after.ledger[-1].idempotency_key == "tr-1-in"
        assert replay.replayed
        assert replay.credit is not None
        assert replay.credit.id == receipt.credit.id  # type: ignore[union-attr]

    async def test_list_transactions_newest_first(self, app: LedgerApplication) -> None:
        account = await open_funded_account(app, "10")

        async with app.services() as services:
            for index in range(4):
                await services.transactions.deposit(
                    DepositCommand(account_id=account.id, amount="1", idempotency_key=f"dep-{index}")
                )
            page = await services.transactions.list_transactions(
                ListTransactionsQuery(account_id=account.id, page_number=1, page_size=2)
            )

        assert page.total_count == 5
        assert page.total_pages == 3
        assert [entry.idempotency_key for entry in page.items] == ["dep-3", "dep-2"]
        assert page.has_next_page

    async def test_close_after_emptying(self, app: LedgerApplication) -> None:
        account = await open_funded_account(app, "5")

        async with app.services() as services:
            await services.transactions.withdraw(
                WithdrawCommand(account_id=account.id, amount="5", idempotency_key="wd-all")
            )
            closed = (await services.accounts.close(CloseAccountCommand(account_id=account.id))).unwrap()
            reloaded = await services.accounts.get_account(account.id)

        assert closed.status == AccountStatus.CLOSED
        assert reloaded is not None
        assert reloaded.status == AccountStatus.CLOSED

    async def test_health_check(self, app: LedgerApplication) -> None:
        assert await app.health_check()
