"""
Transaction service — the money-movement engine.

THIS IS THE MOST CRITICAL FILE IN THE PROJECT. It handles:
  - Deposits, withdrawals and transfers against account balances
  - Balance enforcement (no negative balances)
  - Recording every attempt, completed or failed, in the ledger

Failed is a normal outcome:
  Business-rule violations (non-positive amount, missing account reference,
  insufficient funds, self-transfer) never raise. They produce a
  TransactionOutcome with status "failed" and a reason, and the ledger row
  is written exactly like a completed one. Only infrastructure problems
  (and account ids that don't exist at all) raise.

Atomicity:
  The balance changes and the ledger row are written inside the SAME
  database transaction, which submit_transaction() commits itself. If
  anything raises before the commit, the session is rolled back: no
  balance change without its ledger row, no ledger row without its
  balance change.

Serialization:
  Accounts are locked (SELECT ... FOR UPDATE, ascending id order) before
  their balances are checked, so two concurrent debits against the same
  account cannot both pass the check against a stale balance. The store's
  debit() is additionally a conditional UPDATE; if it still finds the
  balance too low, the attempt is recorded as "Insufficient funds".
"""

import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from ledger_api.exceptions import (
    AccountNotFoundError,
    InsufficientBalanceError,
    TransactionNotFoundError,
    UnauthorizedAccessError,
)
from ledger_api.models.transaction import Transaction, TransactionStatus, TransactionType
from ledger_api.schemas.money import to_money
from ledger_api.services import account_service, ledger_service

logger = logging.getLogger(__name__)

# Failure reasons stored on failed transactions (and counted by the report)
REASON_NON_POSITIVE_AMOUNT = "Negative or zero amount not allowed"
REASON_DESTINATION_REQUIRED = "Destination account required for deposit"
REASON_SOURCE_REQUIRED = "Source account required for withdrawal"
REASON_BOTH_REQUIRED = "Both source and destination accounts required for transfer"
REASON_SAME_ACCOUNT = "Source and destination accounts must differ"
REASON_INSUFFICIENT_FUNDS = "Insufficient funds"


@dataclass(frozen=True)
class TransactionOutcome:
    """Result of applying one money movement: completed, or failed with a reason."""

    status: TransactionStatus
    failure_reason: str | None = None

    @classmethod
    def completed(cls) -> "TransactionOutcome":
        return cls(TransactionStatus.COMPLETED)

    @classmethod
    def failed(cls, reason: str) -> "TransactionOutcome":
        return cls(TransactionStatus.FAILED, reason)


async def _lock_referenced_accounts(
    db: AsyncSession,
    source_account_id: int | None,
    destination_account_id: int | None,
) -> dict:
    """Lock every referenced account; raise if one doesn't exist."""
    referenced = {
        account_id: label
        for account_id, label in (
            (source_account_id, "Source account"),
            (destination_account_id, "Destination account"),
        )
        if account_id is not None
    }
    locked = await account_service.lock_accounts(db, list(referenced))
    for account_id, label in referenced.items():
        if account_id not in locked:
            raise AccountNotFoundError(account_id, label=label)
    return locked


async def _debit_source(
    db: AsyncSession,
    source_account_id: int,
    amount: Decimal,
    locked: dict,
) -> TransactionOutcome | None:
    """Check and debit the source; return a failed outcome instead of raising."""
    if locked[source_account_id].balance < amount:
        return TransactionOutcome.failed(REASON_INSUFFICIENT_FUNDS)
    try:
        await account_service.debit(db, source_account_id, amount)
    except InsufficientBalanceError:
        # The conditional UPDATE saw a lower balance than the locked read
        return TransactionOutcome.failed(REASON_INSUFFICIENT_FUNDS)
    return None


async def _apply(
    db: AsyncSession,
    txn_type: TransactionType,
    amount: Decimal,
    source_account_id: int | None,
    destination_account_id: int | None,
) -> TransactionOutcome:
    """Validate the movement and mutate balances; the caller records the result."""
    # Every submitted reference must exist, even when the attempt is about
    # to fail: the ledger row stores it as a foreign key.
    locked = await _lock_referenced_accounts(db, source_account_id, destination_account_id)

    if amount <= 0:
        return TransactionOutcome.failed(REASON_NON_POSITIVE_AMOUNT)

    if txn_type == TransactionType.DEPOSIT:
        if destination_account_id is None:
            return TransactionOutcome.failed(REASON_DESTINATION_REQUIRED)
        await account_service.credit(db, destination_account_id, amount)
        return TransactionOutcome.completed()

    if txn_type == TransactionType.WITHDRAWAL:
        if source_account_id is None:
            return TransactionOutcome.failed(REASON_SOURCE_REQUIRED)
        failure = await _debit_source(db, source_account_id, amount, locked)
        return failure or TransactionOutcome.completed()

    # Transfer
    if source_account_id is None or destination_account_id is None:
        return TransactionOutcome.failed(REASON_BOTH_REQUIRED)
    if source_account_id == destination_account_id:
        return TransactionOutcome.failed(REASON_SAME_ACCOUNT)
    failure = await _debit_source(db, source_account_id, amount, locked)
    if failure is not None:
        return failure
    await account_service.credit(db, destination_account_id, amount)
    return TransactionOutcome.completed()


async def submit_transaction(
    db: AsyncSession,
    txn_type: TransactionType | str,
    amount: Decimal,
    source_account_id: int | None = None,
    destination_account_id: int | None = None,
) -> Transaction:
    """
    Apply one deposit, withdrawal or transfer and record it in the ledger.

    The account references are stored as submitted, even on failed rows,
    so the audit trail shows what was attempted against which account.

    Args:
        db: Database session. Committed by this function on success and
            rolled back on any exception.
        txn_type: "deposit", "withdrawal" or "transfer".
        amount: Amount as submitted; non-positive amounts fail.
        source_account_id: Account to debit (withdrawal, transfer).
        destination_account_id: Account to credit (deposit, transfer).

    Returns:
        The freshly inserted Transaction, status "completed" or "failed".

    Raises:
        AccountNotFoundError: If a referenced account doesn't exist.
        SQLAlchemyError: If the database fails; nothing is persisted.
    """
    txn_type = TransactionType(txn_type)
    amount = to_money(amount)
    transaction_id = str(uuid.uuid4())

    try:
        outcome = await _apply(
            db, txn_type, amount, source_account_id, destination_account_id
        )
        await ledger_service.append(
            db,
            transaction_id=transaction_id,
            txn_type=txn_type.value,
            amount=amount,
            status=outcome.status.value,
            source_account_id=source_account_id,
            destination_account_id=destination_account_id,
            failure_reason=outcome.failure_reason,
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    if outcome.status == TransactionStatus.COMPLETED:
        logger.info(
            "Transaction %s completed: %s %s", transaction_id, txn_type.value, amount,
        )
    else:
        logger.info(
            "Transaction %s failed: %s %s (%s)",
            transaction_id, txn_type.value, amount, outcome.failure_reason,
        )

    return await ledger_service.find_by_transaction_id(db, transaction_id)


async def get_transaction(
    db: AsyncSession,
    transaction_id: str,
    user_id: int,
) -> Transaction:
    """
    Get a single ledger row, visible only to the owner of one of its accounts.

    Raises:
        TransactionNotFoundError: If the id is unknown.
        UnauthorizedAccessError: If the caller owns neither referenced account.
    """
    txn = await ledger_service.find_by_transaction_id(db, transaction_id)
    if txn is None:
        raise TransactionNotFoundError(transaction_id)

    for account_id in (txn.source_account_id, txn.destination_account_id):
        if account_id is None:
            continue
        account = await account_service.find_by_id(db, account_id)
        if account is not None and account.user_id == user_id:
            return txn

    raise UnauthorizedAccessError("Unauthorized access to transaction")
