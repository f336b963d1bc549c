from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any, TypeVar
from uuid import UUID

import structlog

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
from account_ledger.application.unit_of_work import UnitOfWork
from account_ledger.config import settings
from account_ledger.domain.account import TRANSFER_IN_SUFFIX, Account, Posting
from account_ledger.domain.errors import AccountNotFoundError, DomainError, DuplicateIdempotencyKeyError
from account_ledger.domain.money import Money
from account_ledger.domain.providers import Providers
from account_ledger.domain.result import Err, Ok, Result
from account_ledger.domain.transaction import Transaction, TransactionType
from account_ledger.domain.transfer import transfer
from account_ledger.infrastructure.errors import OptimisticLockError, PersistenceError


logger = structlog.get_logger()

T = TypeVar("T")


@dataclass(frozen=True)
class TransactionReceipt:
    transaction: Transaction
    replayed: bool = False


@dataclass(frozen=True)
class TransferReceipt:
    debit: Transaction
    credit: Transaction | None
    replayed: bool = False


@dataclass(frozen=True)
class AccountBalance:
    account_id: UUID
    account_number: str
    balance: Money
    as_of: datetime


class LedgerService:
    """Load-mutate-save plumbing shared by the account and transaction services.

    Aggregates are pure, so a command is: load, call one aggregate operation,
    save what it returned, commit. A concurrent save of the same account
    surfaces as OptimisticLockError and the whole cycle runs again against
    freshly loaded state.
    """

    def __init__(self, uow: UnitOfWork, providers: Providers | None = None) -> None:
        self.uow = uow
        self.providers = providers or Providers.system()

    async def _retrying(
        self,
        attempt_once: Callable[[], Awaitable[Result[T]]],
        log: structlog.stdlib.BoundLogger,
    ) -> Result[T]:
        attempts = max(1, settings.optimistic_lock_max_attempts)
        for attempt in range(1, attempts + 1):
            try:
                return await attempt_once()
            except OptimisticLockError:
                await self.uow.rollback()
                if attempt == attempts:
                    log.error("optimistic_lock_exhausted", attempts=attempts)
                    raise
                log.warning("optimistic_lock_conflict", attempt=attempt)
        raise AssertionError("unreachable")

    async def _apply(
        self,
        account_id: UUID,
        mutate: Callable[[Account], Result[Any]],
        log: structlog.stdlib.BoundLogger,
    ) -> Result[Any]:
        async def attempt_once() -> Result[Any]:
            account = await self.uow.accounts.get(account_id)
            if account is None:
                log.info("account_not_found")
                return Err(AccountNotFoundError(account_id))
            return await self._mutate(account, mutate, log)

        return await self._retrying(attempt_once, log)

    async def _mutate(
        self,
        account: Account,
        mutate: Callable[[Account], Result[Any]],
        log: structlog.stdlib.BoundLogger,
    ) -> Result[Any]:
        match mutate(account):
            case Err(error) as rejected:
                log.info("mutation_rejected", error_code=error.code, error=str(error))
                await self.uow.rollback()
                return rejected
            case Ok(value) as applied:
                updated = value.account if isinstance(value, Posting) else value
                await self.uow.accounts.save(updated, previous=account)
                await self.uow.commit()
                return applied
        raise AssertionError("unreachable")


class AccountService(LedgerService):
    async def open_account(self, cmd: OpenAccountCommand) -> Result[Account]:
        log = logger.bind(account_type=cmd.account_type, currency=cmd.currency)

        async with self.uow:
            account_number = await self._unused_account_number()
            try:
                account = Account.open(
                    cmd.holder_name,
                    cmd.account_type,
                    cmd.currency,
                    providers=self.providers,
                    account_number=account_number,
                )
            except DomainError as exc:
                log.info("account_open_rejected", error_code=exc.code)
                return Err(exc)

            await self.uow.accounts.add(account)
            await self.uow.commit()

        log.info("account_opened", account_id=account.id, account_number=account.account_number)
        return Ok(account)

    async def freeze(self, cmd: FreezeAccountCommand) -> Result[Account]:
        log = logger.bind(operation="freeze", account_id=cmd.account_id)
        async with self.uow:
            result = await self._apply(cmd.account_id, lambda account: account.freeze(cmd.reason), log)
        if result.is_ok:
            log.info("account_frozen", reason=cmd.reason)
        return result

    async def unfreeze(self, cmd: UnfreezeAccountCommand) -> Result[Account]:
        log = logger.bind(operation="unfreeze", account_id=cmd.account_id)
        async with self.uow:
            result = await self._apply(cmd.account_id, lambda account: account.unfreeze(), log)
        if result.is_ok:
            log.info("account_unfrozen")
        return result

    async def close(self, cmd: CloseAccountCommand) -> Result[Account]:
        log = logger.bind(operation="close", account_id=cmd.account_id)
        async with self.uow:
            result = await self._apply(
                cmd.account_id,
                lambda account: account.close(providers=self.providers),
                log,
            )
        if result.is_ok:
            log.info("account_closed")
        return result

    async def rename(self, cmd: RenameAccountCommand) -> Result[Account]:
        log = logger.bind(operation="rename", account_id=cmd.account_id)
        async with self.uow:
            result = await self._apply(cmd.account_id, lambda account: account.rename(cmd.holder_name), log)
        if result.is_ok:
            log.info("account_renamed")
        return result

    async def get_account(self, account_id: UUID) -> Account | None:
        account = await self.uow.accounts.get(account_id)
        if account:
            logger.info("get_account", account_id=account.id, status=account.status)
        return account

    async def get_account_by_number(self, account_number: str) -> Account | None:
        account = await self.uow.accounts.get_by_account_number(account_number)
        if account:
            logger.info("get_account_by_number", account_id=account.id)
        return account

    async def get_balance(self, account_id: UUID) -> AccountBalance | None:
        account = await self.uow.accounts.get(account_id)
        if account is None:
            return None
        logger.info("get_balance", account_id=account.id, balance=account.balance)
        return AccountBalance(
            account_id=account.id,
            account_number=account.account_number,
            balance=account.balance,
            as_of=self.providers.clock.now(),
        )

    async def _unused_account_number(self) -> str:
        attempts = max(1, settings.account_number_max_attempts)
        for _ in range(attempts):
            candidate = self.providers.ids.account_number()
            if not await self.uow.accounts.account_number_exists(candidate):
                return candidate
            logger.warning("account_number_collision", account_number=candidate)
        raise PersistenceError(f"Could not allocate an unused account number in {attempts} attempts")


class TransactionService(LedgerService):
    async def deposit(self, cmd: DepositCommand) -> Result[TransactionReceipt]:
        log = logger.bind(
            operation="deposit",
            account_id=cmd.account_id,
            idempotency_key=cmd.idempotency_key,
        )

        try:
            amount = Money(cmd.amount, cmd.currency)
        except DomainError as exc:
            return Err(exc)

        async with self.uow:
            return await self._post(
                cmd.account_id,
                cmd.idempotency_key,
                lambda account: account.deposit(
                    amount,
                    cmd.idempotency_key,
                    cmd.description,
                    providers=self.providers,
                ),
                log,
            )

    async def withdraw(self, cmd: WithdrawCommand) -> Result[TransactionReceipt]:
        log = logger.bind(
            operation="withdraw",
            account_id=cmd.account_id,
            idempotency_key=cmd.idempotency_key,
        )

        try:
            amount = Money(cmd.amount, cmd.currency)
        except DomainError as exc:
            return Err(exc)

        async with self.uow:
            return await self._post(
                cmd.account_id,
                cmd.idempotency_key,
                lambda account: account.withdraw(
                    amount,
                    cmd.idempotency_key,
                    cmd.description,
                    providers=self.providers,
                ),
                log,
            )

    async def transfer(self, cmd: TransferCommand) -> Result[TransferReceipt]:
        log = logger.bind(
            operation="transfer",
            source=cmd.source_account_id,
            destination=cmd.destination_account_id,
            idempotency_key=cmd.idempotency_key,
        )
        credit_key = f"{cmd.idempotency_key}{TRANSFER_IN_SUFFIX}"

        try:
            amount = Money(cmd.amount, cmd.currency)
        except DomainError as exc:
            return Err(exc)

        async def attempt_once() -> Result[TransferReceipt]:
            debit = await self.uow.transactions.find_by_account_and_idempotency_key(
                cmd.source_account_id, cmd.idempotency_key
            )
            if debit is not None:
                credit = await self.uow.transactions.find_by_account_and_idempotency_key(
                    cmd.destination_account_id, credit_key
                )
                return self._replayed_transfer(debit, credit, cmd.idempotency_key, log)

            source = await self.uow.accounts.get(cmd.source_account_id)
            if source is None:
                log.info("account_not_found", account_id=cmd.source_account_id)
                return Err(AccountNotFoundError(cmd.source_account_id))
            destination = await self.uow.accounts.get(cmd.destination_account_id)
            if destination is None:
                log.info("account_not_found", account_id=cmd.destination_account_id)
                return Err(AccountNotFoundError(cmd.destination_account_id))

            # A retry may load a ledger that a concurrent copy of this request already posted to.
            debit = source.find_transaction(cmd.idempotency_key)
            if debit is not None:
                credit = destination.find_transaction(credit_key)
                return self._replayed_transfer(debit, credit, cmd.idempotency_key, log)

            log.info(
                "transfer_validated",
                step="1/3",
                source_balance_before=source.balance,
                destination_balance_before=destination.balance,
                amount=amount,
            )

            match transfer(source, destination, amount, cmd.idempotency_key, providers=self.providers):
                case Err(error) as rejected:
                    log.info("transfer_rejected", error_code=error.code, error=str(error))
                    await self.uow.rollback()
                    return rejected
                case Ok(posting):
                    # Both halves go into the same database transaction. Rows are
                    # updated in account id order whichever way the money moves.
                    saves = sorted(
                        [(posting.source, source), (posting.destination, destination)],
                        key=lambda pair: pair[1].id,
                    )
                    for updated, previous in saves:
                        await self.uow.accounts.save(updated, previous=previous)
                    log.info(
                        "transfer_posted",
                        step="2/3",
                        source_balance_after=posting.source.balance,
                        destination_balance_after=posting.destination.balance,
                    )
                    await self.uow.commit()
                    log.info(
                        "transfer_completed",
                        step="3/3",
                        debit_reference=posting.debit.reference,
                        credit_reference=posting.credit.reference,
                    )
                    return Ok(TransferReceipt(debit=posting.debit, credit=posting.credit))
            raise AssertionError("unreachable")

        async with self.uow:
            return await self._retrying(attempt_once, log)

    async def get_transaction(self, transaction_id: UUID) -> Transaction | None:
        transaction = await self.uow.transactions.get(transaction_id)
        if transaction:
            logger.info("get_transaction", transaction_id=transaction.id, reference=transaction.reference)
        return transaction

    async def get_transaction_by_reference(self, reference: str) -> Transaction | None:
        transaction = await self.uow.transactions.get_by_reference(reference)
        if transaction:
            logger.info("get_transaction_by_reference", transaction_id=transaction.id, reference=reference)
        return transaction

    async def list_transactions(self, query: ListTransactionsQuery) -> PaginatedList[Transaction]:
        items = await self.uow.transactions.list_by_account(
            query.account_id,
            page_number=query.page_number,
            page_size=query.page_size,
        )
        total_count = await self.uow.transactions.count_by_account(query.account_id)
        return PaginatedList(
            items=items,
            total_count=total_count,
            page_number=query.page_number,
            page_size=query.page_size,
        )

    async def _post(
        self,
        account_id: UUID,
        idempotency_key: str,
        mutate: Callable[[Account], Result[Posting]],
        log: structlog.stdlib.BoundLogger,
    ) -> Result[TransactionReceipt]:
        """Apply a single-account money movement, replaying it if the key was already posted.

        The replay check runs on every attempt: after an optimistic lock
        conflict the reloaded ledger may already hold this key.
        """

        async def attempt_once() -> Result[TransactionReceipt]:
            existing = await self.uow.transactions.find_by_account_and_idempotency_key(account_id, idempotency_key)
            if existing is not None:
                return Ok(self._replayed(existing, log))

            account = await self.uow.accounts.get(account_id)
            if account is None:
                log.info("account_not_found")
                return Err(AccountNotFoundError(account_id))

            existing = account.find_transaction(idempotency_key)
            if existing is not None:
                return Ok(self._replayed(existing, log))

            return self._receipt(await self._mutate(account, mutate, log), log)

        return await self._retrying(attempt_once, log)

    def _replayed(self, existing: Transaction, log: structlog.stdlib.BoundLogger) -> TransactionReceipt:
        log.info("idempotent_replay", transaction_id=existing.id, reference=existing.reference)
        return TransactionReceipt(transaction=existing, replayed=True)

    def _replayed_transfer(
        self,
        debit: Transaction,
        credit: Transaction | None,
        idempotency_key: str,
        log: structlog.stdlib.BoundLogger,
    ) -> Result[TransferReceipt]:
        if debit.transaction_type != TransactionType.TRANSFER:
            log.info("idempotency_key_reused", transaction_id=debit.id, transaction_type=debit.transaction_type)
            return Err(DuplicateIdempotencyKeyError(idempotency_key))
        log.info("idempotent_replay", transaction_id=debit.id, reference=debit.reference)
        return Ok(TransferReceipt(debit=debit, credit=credit, replayed=True))

    def _receipt(
        self,
        result: Result[Posting],
        log: structlog.stdlib.BoundLogger,
    ) -> Result[TransactionReceipt]:
        match result:
            case Ok(Posting(transaction=transaction)):
                log.info(
                    "transaction_completed",
                    transaction_id=transaction.id,
                    reference=transaction.reference,
                    amount=transaction.amount,
                    balance_after=transaction.balance_after,
                )
                return Ok(TransactionReceipt(transaction=transaction))
            case Err() as rejected:
                return rejected
        raise AssertionError("unreachable")
