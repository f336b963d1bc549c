"""Tagged success/failure values returned by aggregate operations.

Callers pattern-match instead of catching::

    match account.withdraw(amount, key):
        case Ok(Posting(account=updated, transaction=entry)):
            ...
        case Err(InsufficientFundsError(available, requested)):
            ...
"""

import functools
from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, NoReturn, ParamSpec, TypeAlias, TypeVar, Union

from account_ledger.domain.errors import DomainError


T = TypeVar("T")
P = ParamSpec("P")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def is_ok(self) -> bool:
        return True

    @property
    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Err:
    error: DomainError

    @property
    def is_ok(self) -> bool:
        return False

    @property
    def is_err(self) -> bool:
        return True

    def unwrap(self) -> NoReturn:
        raise self.error


Result: TypeAlias = Union[Ok[T], Err]


def as_result(func: Callable[P, T]) -> Callable[P, Result[T]]:
    """Wrap a function that raises DomainError so it returns a Result instead.

    Only domain errors are captured. Programming errors and anything raised
    by infrastructure propagate unchanged.
    """

    @functools.wraps(func)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> Result[T]:
        try:
            return Ok(func(*args, **kwargs))
        except DomainError as exc:
            return Err(exc)

    return wrapper
