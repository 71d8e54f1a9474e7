"""
Ledger service — the append-only transaction log.

Only two operations exist on purpose: append a row, and look one up by its
public transaction id. Nothing in the codebase updates or deletes a
Transaction.
"""

from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ledger_api.models.transaction import Transaction


async def append(
    db: AsyncSession,
    transaction_id: str,
    txn_type: str,
    amount: Decimal,
    status: str,
    source_account_id: int | None = None,
    destination_account_id: int | None = None,
    failure_reason: str | None = None,
) -> Transaction:
    """
    Insert one ledger row and flush it so the id and defaults are assigned.

    The row becomes durable when the caller commits the surrounding
    database transaction.
    """
    txn = Transaction(
        transaction_id=transaction_id,
        type=txn_type,
        amount=amount,
        source_account_id=source_account_id,
        destination_account_id=destination_account_id,
        status=status,
        failure_reason=failure_reason,
    )
    db.add(txn)
    await db.flush()
    return txn


async def find_by_transaction_id(db: AsyncSession, transaction_id: str) -> Transaction | None:
    result = await db.execute(
        select(Transaction).where(Transaction.transaction_id == transaction_id)
    )
    return result.scalar_one_or_none()
