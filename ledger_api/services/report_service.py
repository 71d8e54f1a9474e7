"""
Report service — read-only aggregates over accounts and the ledger.

Two queries back the public summary report:
  1. Per-account summary: balance plus the largest completed transaction
     the account took part in (as source or destination)
  2. Failure histogram: failed transactions grouped by failure reason

Both run at the database's default isolation. A report taken while money
is moving may reflect some submissions and not others; it never reflects
half of one, because each submission commits atomically.
"""

from sqlalchemy import select, func, or_, and_
from sqlalchemy.ext.asyncio import AsyncSession

from ledger_api.models.account import Account
from ledger_api.models.transaction import Transaction, TransactionStatus
from ledger_api.models.user import User


async def account_summaries(db: AsyncSession) -> list[dict]:
    """
    Summarize every account, ordered by account id.

    Returns:
        List of dicts matching the AccountSummary schema.
    """
    largest = func.coalesce(func.max(Transaction.amount), 0)

    result = await db.execute(
        select(
            Account.id,
            Account.account_number,
            User.username,
            Account.balance,
            largest.label("largest_completed_transaction"),
        )
        .outerjoin(User, User.id == Account.user_id)
        .outerjoin(
            Transaction,
            and_(
                or_(
                    Transaction.source_account_id == Account.id,
                    Transaction.destination_account_id == Account.id,
                ),
                Transaction.status == TransactionStatus.COMPLETED.value,
            ),
        )
        .group_by(Account.id, Account.account_number, User.username, Account.balance)
        .order_by(Account.id)
    )

    return [
        {
            "account_id": row.id,
            "account_number": row.account_number,
            "username": row.username,
            "current_balance": row.balance,
            "largest_completed_transaction": row.largest_completed_transaction,
        }
        for row in result
    ]


async def failure_histogram(db: AsyncSession) -> list[dict]:
    """
    Count failed transactions per failure reason, most frequent first.

    Returns:
        List of {"reason", "count"} dicts.
    """
    count = func.count(Transaction.id)

    result = await db.execute(
        select(Transaction.failure_reason, count.label("count"))
        .where(Transaction.status == TransactionStatus.FAILED.value)
        .where(Transaction.failure_reason.is_not(None))
        .group_by(Transaction.failure_reason)
        .order_by(count.desc(), Transaction.failure_reason)
    )

    return [{"reason": reason, "count": total} for reason, total in result]


async def get_summary_report(db: AsyncSession) -> dict:
    """Build the full summary report (matches SummaryReportResponse)."""
    return {
        "accounts": await account_summaries(db),
        "failed_transactions": await failure_histogram(db),
    }
