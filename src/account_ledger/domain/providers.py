import random
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol, Self
from uuid import UUID

from ulid import ULID


class Clock(Protocol):
    def now(self) -> datetime: ...


class IdentityGenerator(Protocol):
    def new_id(self) -> UUID: ...

    def account_number(self) -> str: ...

    def transaction_reference(self, at: datetime) -> str: ...


class SystemClock:
    def now(self) -> datetime:
        return datetime.now(UTC)


class RandomIdentityGenerator:
    """Identifiers for accounts and ledger entries.

    Ids are ULIDs rendered as UUIDs, so they sort by creation time.
    Account numbers and references only have a low collision probability;
    storage enforces uniqueness through unique constraints.
    """

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng or random.SystemRandom()

    def new_id(self) -> UUID:
        return ULID().to_uuid()

    def account_number(self) -> str:
        return "-".join(str(self._rng.randint(1000, 9999)) for _ in range(3))

    def transaction_reference(self, at: datetime) -> str:
        return f"TXN-{at.astimezone(UTC):%Y%m%d%H%M%S}-{self._rng.randint(10000, 99999)}"


@dataclass(frozen=True)
class Providers:
    clock: Clock = field(default_factory=SystemClock)
    ids: IdentityGenerator = field(default_factory=RandomIdentityGenerator)

    @classmethod
    def system(cls) -> Self:
        return cls()


SYSTEM_PROVIDERS = Providers.system()
