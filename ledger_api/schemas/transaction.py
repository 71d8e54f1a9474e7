"""
Pydantic schemas for the transaction endpoints.

The request body is a discriminated union on "type". Each variant carries
exactly the account references its type needs; any other field (including
the reference a type doesn't use) is rejected with a 400.

    deposit     -> destination_account_id
    withdrawal  -> source_account_id
    transfer    -> source_account_id + destination_account_id
"""

from datetime import datetime
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, PositiveInt

from ledger_api.schemas.money import Money, MoneyInput


class DepositRequest(BaseModel):
    """Money into one of the caller's own accounts."""
    model_config = ConfigDict(extra="forbid")

    type: Literal["deposit"]
    amount: MoneyInput
    destination_account_id: PositiveInt


class WithdrawalRequest(BaseModel):
    """Money out of one of the caller's own accounts."""
    model_config = ConfigDict(extra="forbid")

    type: Literal["withdrawal"]
    amount: MoneyInput
    source_account_id: PositiveInt


class TransferRequest(BaseModel):
    """Money from one of the caller's accounts to any existing account."""
    model_config = ConfigDict(extra="forbid")

    type: Literal["transfer"]
    amount: MoneyInput
    source_account_id: PositiveInt
    destination_account_id: PositiveInt


# Discriminated on "type" where used as a body: Body(discriminator="type")
TransactionRequest = Union[DepositRequest, WithdrawalRequest, TransferRequest]


class TransactionResponse(BaseModel):
    """Public representation of a ledger row."""
    id: int
    transaction_id: str
    type: str
    amount: Money
    source_account_id: int | None
    destination_account_id: int | None
    status: str
    failure_reason: str | None
    created_at: datetime

    model_config = {"from_attributes": True}
