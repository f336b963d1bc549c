"""Validated inputs for the application services.

Constructing a command with invalid data raises ``pydantic.ValidationError``
before any account is loaded.
"""

from decimal import Decimal
from typing import Annotated, Self
from uuid import UUID

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, StringConstraints, model_validator

from account_ledger.config import settings
from account_ledger.domain.account import AccountType


def _supported_currency(value: str) -> str:
    code = value.upper()
    supported = [currency.upper() for currency in settings.supported_currencies]
    if code not in supported:
        raise ValueError(f"Currency must be one of: {', '.join(supported)}")
    return code


def _key_length(value: str) -> str:
    if len(value) > settings.max_idempotency_key_length:
        raise ValueError(f"Idempotency key cannot exceed {settings.max_idempotency_key_length} characters")
    return value


Currency = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1), AfterValidator(_supported_currency)]
IdempotencyKey = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1), AfterValidator(_key_length)]
PositiveAmount = Annotated[Decimal, Field(gt=0)]


class Command(BaseModel):
    model_config = ConfigDict(frozen=True)


class OpenAccountCommand(Command):
    holder_name: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=200)]
    account_type: AccountType
    currency: Currency = "USD"


class DepositCommand(Command):
    account_id: UUID
    amount: PositiveAmount
    currency: Currency = "USD"
    idempotency_key: IdempotencyKey
    description: Annotated[str, StringConstraints(max_length=500)] | None = None

    @model_validator(mode="after")
    def check_limit(self) -> Self:
        if self.amount > settings.max_deposit_amount:
            raise ValueError(f"Single deposit cannot exceed {settings.max_deposit_amount}")
        return self


class WithdrawCommand(Command):
    account_id: UUID
    amount: PositiveAmount
    currency: Currency = "USD"
    idempotency_key: IdempotencyKey
    description: Annotated[str, StringConstraints(max_length=500)] | None = None

    @model_validator(mode="after")
    def check_limit(self) -> Self:
        if self.amount > settings.max_withdrawal_amount:
            raise ValueError(f"Single withdrawal cannot exceed {settings.max_withdrawal_amount}")
        return self


class TransferCommand(Command):
    source_account_id: UUID
    destination_account_id: UUID
    amount: PositiveAmount
    currency: Currency = "USD"
    idempotency_key: IdempotencyKey

    @model_validator(mode="after")
    def check_transfer(self) -> Self:
        if self.source_account_id == self.destination_account_id:
            raise ValueError("Cannot transfer to the same account")
        if self.amount > settings.max_transfer_amount:
            raise ValueError(f"Single transfer cannot exceed {settings.max_transfer_amount}")
        return self


class FreezeAccountCommand(Command):
    account_id: UUID
    reason: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=500)]


class UnfreezeAccountCommand(Command):
    account_id: UUID


class CloseAccountCommand(Command):
    account_id: UUID


class RenameAccountCommand(Command):
    account_id: UUID
    holder_name: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=200)]


class ListTransactionsQuery(Command):
    account_id: UUID
    page_number: int = Field(default=1, ge=1)
    page_size: int = Field(default_factory=lambda: settings.default_page_size, ge=1)

    @model_validator(mode="after")
    def check_page_size(self) -> Self:
        if self.page_size > settings.max_page_size:
            raise ValueError(f"Page size cannot exceed {settings.max_page_size}")
        return self
