"""Moving funds between two independently loaded accounts.

A transfer is the pair ``source.transfer_out(...)`` followed by
``destination.transfer_in(...)`` with the same amount and key. Both halves
are pure, so :func:`transfer` only returns updated aggregates once both have
succeeded; if the credit half fails the debit half is simply discarded.

Nothing here locks or persists. The caller must save both updated accounts
in one unit of work: committing only one of them leaves the ledgers
inconsistent in a way this module cannot detect afterwards.
"""

from dataclasses import dataclass

from account_ledger.domain.account import Account
from account_ledger.domain.errors import InvariantViolationError
from account_ledger.domain.money import Money
from account_ledger.domain.providers import SYSTEM_PROVIDERS, Providers
from account_ledger.domain.result import as_result
from account_ledger.domain.transaction import Transaction


@dataclass(frozen=True)
class TransferPosting:
    source: Account
    destination: Account
    debit: Transaction
    credit: Transaction


@as_result
def transfer(
    source: Account,
    destination: Account,
    amount: Money,
    idempotency_key: str,
    *,
    providers: Providers = SYSTEM_PROVIDERS,
) -> TransferPosting:
    if source.id == destination.id:
        raise InvariantViolationError("Cannot transfer to the same account")

    outgoing = source.transfer_out(amount, destination.id, idempotency_key, providers=providers).unwrap()
    incoming = destination.transfer_in(amount, source.id, idempotency_key, providers=providers).unwrap()

    return TransferPosting(
        source=outgoing.account,
        destination=incoming.account,
        debit=outgoing.transaction,
        credit=incoming.transaction,
    )


def conserves_value(source_before: Account, destination_before: Account, posting: TransferPosting) -> bool:
    """Check that a transfer moved value without creating or destroying any."""
    if source_before.currency != destination_before.currency:
        return False
    before = source_before.balance.add(destination_before.balance)
    after = posting.source.balance.add(posting.destination.balance)
    return before == after
