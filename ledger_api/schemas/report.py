"""
Pydantic schemas for the summary report.

The report is public and read-only. It is a snapshot at the database's
default read consistency, not an isolated view.
"""

from pydantic import BaseModel

from ledger_api.schemas.money import Money


class AccountSummary(BaseModel):
    """One account's balance and its largest completed transaction."""
    account_id: int
    account_number: str
    username: str | None
    current_balance: Money
    # 0 when the account has no completed transactions
    largest_completed_transaction: Money


class FailedTransactionSummary(BaseModel):
    """How many failed transactions share one failure reason."""
    reason: str
    count: int


class SummaryReportResponse(BaseModel):
    accounts: list[AccountSummary]
    failed_transactions: list[FailedTransactionSummary]
