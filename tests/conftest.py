"""Shared pytest fixtures for account ledger tests."""

import itertools
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from unittest.mock import AsyncMock
from uuid import UUID

import pytest

from account_ledger.application.unit_of_work import UnitOfWork
from account_ledger.domain.account import Account, AccountStatus, AccountType
from account_ledger.domain.money import Money
from account_ledger.domain.providers import Providers


FIXED_NOW = datetime(2026, 10, 19, 12, 30, 45, tzinfo=UTC)


class FixedClock:
    """Clock that returns a fixed instant, advanced one second per call."""

    def __init__(self, start: datetime = FIXED_NOW) -> None:
        self._current = start

    def now(self) -> datetime:
        current = self._current
        self._current += timedelta(seconds=1)
        return current


class SequentialIdentityGenerator:
    """Deterministic ids, account numbers and references."""

    def __init__(self) -> None:
        self._ids = itertools.count(1)
        self._numbers = itertools.count(1)
        self._references = itertools.count(1)

    def new_id(self) -> UUID:
        return UUID(int=next(self._ids))

    def account_number(self) -> str:
        return f"1000-2000-{3000 + next(self._numbers):04d}"

    def transaction_reference(self, at: datetime) -> str:
        return f"TXN-{at:%Y%m%d%H%M%S}-{10000 + next(self._references)}"


@pytest.fixture
def providers() -> Providers:
    """Deterministic clock and identity providers."""
    return Providers(clock=FixedClock(), ids=SequentialIdentityGenerator())


@pytest.fixture
def account(providers: Providers) -> Account:
    """Fresh active USD checking account."""
    return Account.open("John Doe", AccountType.CHECKING, "USD", providers=providers)


@pytest.fixture
def funded_account(account: Account, providers: Providers) -> Account:
    """Active USD checking account holding 500.00 from one deposit."""
    return account.deposit(Money.usd(500), "seed-deposit", providers=providers).unwrap().account


@pytest.fixture
def mock_account_repository() -> AsyncMock:
    """Create mock AccountRepository."""
    repo = AsyncMock()
    repo.get = AsyncMock(return_value=None)
    repo.get_by_account_number = AsyncMock(return_value=None)
    repo.account_number_exists = AsyncMock(return_value=False)
    repo.add = AsyncMock(return_value=None)
    repo.save = AsyncMock(return_value=None)
    return repo


@pytest.fixture
def mock_transaction_repository() -> AsyncMock:
    """Create mock TransactionRepository."""
    repo = AsyncMock()
    repo.get = AsyncMock(return_value=None)
    repo.get_by_reference = AsyncMock(return_value=None)
    repo.find_by_account_and_idempotency_key = AsyncMock(return_value=None)
    repo.list_by_account = AsyncMock(return_value=[])
    repo.count_by_account = AsyncMock(return_value=0)
    return repo


@pytest.fixture
def mock_uow(
    mock_account_repository: AsyncMock,
    mock_transaction_repository: AsyncMock,
) -> AsyncMock:
    """Create mock Unit of Work with both repositories."""
    uow = AsyncMock(spec=UnitOfWork)
    uow.accounts = mock_account_repository
    uow.transactions = mock_transaction_repository
    uow.commit = AsyncMock(return_value=None)
    uow.rollback = AsyncMock(return_value=None)

    # Configure async context manager
    uow.__aenter__ = AsyncMock(return_value=uow)
    uow.__aexit__ = AsyncMock(return_value=None)

    return uow


def create_account(
    account_id: UUID | int = 1,
    balance: Decimal | int | str = 0,
    currency: str = "USD",
    status: AccountStatus = AccountStatus.ACTIVE,
    account_type: AccountType = AccountType.CHECKING,
    freeze_reason: str | None = None,
    version: int = 0,
) -> Account:
    """Helper to create an Account as if loaded from storage."""
    if isinstance(account_id, int):
        account_id = UUID(int=account_id)
    return Account(
        id=account_id,
        account_number=f"1111-2222-{account_id.int % 10000:04d}",
        holder_name="Test Holder",
        account_type=account_type,
        status=status,
        balance=Money(balance, currency),
        opened_date=FIXED_NOW,
        freeze_reason=freeze_reason,
        version=version,
    )
