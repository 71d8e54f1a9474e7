"""Pydantic schemas for account endpoints."""

from pydantic import BaseModel

from ledger_api.schemas.money import Money


class BalanceResponse(BaseModel):
    """Response body for GET /accounts/{account_id}/balance."""
    account_id: int
    balance: Money
