from dataclasses import dataclass
from decimal import ROUND_HALF_EVEN, Decimal, InvalidOperation
from typing import Self

from account_ledger.domain.errors import (
    CurrencyMismatchError,
    InsufficientFundsError,
    InvalidAmountError,
    InvalidCurrencyError,
)


CENT = Decimal("0.01")


def _to_decimal(value: Decimal | int | float | str) -> Decimal:
    if isinstance(value, Decimal):
        amount = value
    else:
        # str() first so a float literal like 10.555 keeps its decimal meaning
        try:
            amount = Decimal(str(value))
        except InvalidOperation:
            raise InvalidAmountError(Decimal("NaN"), f"not a number: {value!r}") from None
    if not amount.is_finite():
        raise InvalidAmountError(amount, "must be a finite number")
    return amount


@dataclass(frozen=True)
class Money:
    """Immutable amount of a single currency, fixed at two fractional digits.

    Amounts are rounded with banker's rounding (half to even) once, when the
    value is constructed. Arithmetic between different currencies fails with
    CurrencyMismatchError.
    """

    amount: Decimal
    currency: str = "USD"

    def __post_init__(self) -> None:
        amount = _to_decimal(self.amount)
        if amount < 0:
            raise InvalidAmountError(amount, "cannot be negative")

        if self.currency is None or not str(self.currency).strip():
            raise InvalidCurrencyError(self.currency)
        currency = str(self.currency).strip().upper()
        if len(currency) != 3 or not (currency.isascii() and currency.isalpha()):
            raise InvalidCurrencyError(self.currency)

        object.__setattr__(self, "amount", amount.quantize(CENT, rounding=ROUND_HALF_EVEN))
        object.__setattr__(self, "currency", currency)

    @classmethod
    def zero(cls, currency: str) -> Self:
        return cls(Decimal(0), currency)

    @classmethod
    def usd(cls, amount: Decimal | int | float | str) -> Self:
        return cls(amount, "USD")

    @classmethod
    def eur(cls, amount: Decimal | int | float | str) -> Self:
        return cls(amount, "EUR")

    @classmethod
    def gbp(cls, amount: Decimal | int | float | str) -> Self:
        return cls(amount, "GBP")

    @classmethod
    def from_minor_units(cls, minor_units: int, currency: str) -> Self:
        return cls(Decimal(minor_units).scaleb(-2), currency)

    @property
    def minor_units(self) -> int:
        return int(self.amount.scaleb(2))

    @property
    def is_zero(self) -> bool:
        return self.amount == 0

    def add(self, other: "Money") -> "Money":
        self._ensure_same_currency(other)
        return Money(self.amount + other.amount, self.currency)

    def subtract(self, other: "Money") -> "Money":
        self._ensure_same_currency(other)
        if other.amount > self.amount:
            raise InsufficientFundsError(available=self, requested=other)
        return Money(self.amount - other.amount, self.currency)

    def multiply(self, factor: Decimal | int | float | str) -> "Money":
        factor = _to_decimal(factor)
        if factor < 0:
            raise InvalidAmountError(factor, "cannot multiply money by a negative factor")
        return Money(self.amount * factor, self.currency)

    def is_greater_than(self, other: "Money") -> bool:
        self._ensure_same_currency(other)
        return self.amount > other.amount

    def is_less_than(self, other: "Money") -> bool:
        self._ensure_same_currency(other)
        return self.amount < other.amount

    __add__ = add
    __sub__ = subtract
    __mul__ = multiply
    __gt__ = is_greater_than
    __lt__ = is_less_than

    def _ensure_same_currency(self, other: "Money") -> None:
        if self.currency != other.currency:
            raise CurrencyMismatchError(expected=self.currency, actual=other.currency)

    def __str__(self) -> str:
        return f"{self.amount:.2f} {self.currency}"
