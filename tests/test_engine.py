"""
Service-level tests for the money-movement engine and the account store.

These call the services directly on a session, below the HTTP layer and
its request validation and authorization, to pin down:
  - Missing account references are recorded as failed transactions
  - Nonexistent account ids raise and persist nothing
  - Mid-transaction failures roll back completely (no partial state)
  - The store never lets a balance go negative
  - Deleting an account leaves its ledger rows with a null reference
  - Reads don't change anything
"""

from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import patch, AsyncMock

import pytest
from sqlalchemy import delete, func, select, text, update
from sqlalchemy.exc import IntegrityError

from ledger_api.exceptions import AccountNotFoundError, InsufficientBalanceError
from ledger_api.models.account import Account
from ledger_api.models.transaction import Transaction
from ledger_api.services import account_service, ledger_service, report_service
from ledger_api.services import transaction_service
from ledger_api.services.transaction_service import (
    REASON_BOTH_REQUIRED,
    REASON_DESTINATION_REQUIRED,
    REASON_SOURCE_REQUIRED,
)


async def _balance(db, account_id):
    result = await db.execute(select(Account.balance).where(Account.id == account_id))
    return result.scalar_one()


async def _row_count(db):
    return (await db.execute(select(func.count(Transaction.id)))).scalar_one()


class TestMissingReferences:
    """Without the request schema in front, the engine records what's missing."""

    @pytest.mark.parametrize(
        "txn_type,kwargs,reason",
        [
            ("deposit", {}, REASON_DESTINATION_REQUIRED),
            ("withdrawal", {}, REASON_SOURCE_REQUIRED),
            ("withdrawal", {"destination_account_id": 1}, REASON_SOURCE_REQUIRED),
            ("transfer", {"source_account_id": 1}, REASON_BOTH_REQUIRED),
            ("transfer", {"destination_account_id": 2}, REASON_BOTH_REQUIRED),
        ],
    )
    async def test_missing_reference_fails(self, db_session, txn_type, kwargs, reason):
        txn = await transaction_service.submit_transaction(
            db_session, txn_type, Decimal("10.00"), **kwargs
        )

        assert txn.status == "failed"
        assert txn.failure_reason == reason
        assert await _balance(db_session, 1) == Decimal("1000.00")
        assert await _row_count(db_session) == 1

    async def test_amount_checked_before_references(self, db_session):
        txn = await transaction_service.submit_transaction(db_session, "deposit", 0)
        assert txn.failure_reason == "Negative or zero amount not allowed"

    async def test_unknown_type_raises(self, db_session):
        with pytest.raises(ValueError):
            await transaction_service.submit_transaction(
                db_session, "refund", Decimal("1"), destination_account_id=1
            )


class TestNonexistentAccounts:

    @pytest.mark.parametrize(
        "txn_type,kwargs",
        [
            ("deposit", {"destination_account_id": 999}),
            ("withdrawal", {"source_account_id": 999}),
            ("transfer", {"source_account_id": 1, "destination_account_id": 999}),
            ("transfer", {"source_account_id": 999, "destination_account_id": 1}),
            # Attempts that would fail a business rule still check existence
            ("deposit", {"destination_account_id": 999, "amount": Decimal("-5")}),
            ("withdrawal", {"source_account_id": 999, "amount": Decimal("0")}),
            ("transfer", {"source_account_id": 999, "destination_account_id": 999}),
            ("withdrawal", {"destination_account_id": 999}),
        ],
    )
    async def test_nonexistent_account_raises(self, db_session, txn_type, kwargs):
        with pytest.raises(AccountNotFoundError):
            await transaction_service.submit_transaction(
                db_session, txn_type, **{"amount": Decimal("10.00"), **kwargs}
            )

        assert await _row_count(db_session) == 0
        assert await _balance(db_session, 1) == Decimal("1000.00")

    async def test_error_code_names_the_side(self, db_session):
        with pytest.raises(AccountNotFoundError) as exc_info:
            await transaction_service.submit_transaction(
                db_session, "transfer", Decimal("1"),
                source_account_id=1, destination_account_id=999,
            )
        assert exc_info.value.error_code == "DESTINATION_ACCOUNT_NOT_FOUND"


class TestAtomicity:

    async def test_ledger_failure_rolls_back_transfer(self, db_session):
        """If writing the ledger row fails, neither balance changes."""
        with patch.object(
            ledger_service, "append", AsyncMock(side_effect=RuntimeError("disk full"))
        ):
            with pytest.raises(RuntimeError):
                await transaction_service.submit_transaction(
                    db_session, "transfer", Decimal("300.00"),
                    source_account_id=1, destination_account_id=2,
                )

        assert await _balance(db_session, 1) == Decimal("1000.00")
        assert await _balance(db_session, 2) == Decimal("500.00")
        assert await _row_count(db_session) == 0

    async def test_failed_outcome_is_committed(self, db_session, database):
        """A failed transaction is persisted just like a completed one."""
        txn = await transaction_service.submit_transaction(
            db_session, "withdrawal", Decimal("5000"), source_account_id=1
        )
        await db_session.commit()

        async with database.session_factory() as other:
            found = await ledger_service.find_by_transaction_id(other, txn.transaction_id)
            assert found is not None
            assert found.status == "failed"


class TestAccountStore:

    async def test_debit_refuses_overdraft(self, db_session):
        with pytest.raises(InsufficientBalanceError):
            await account_service.debit(db_session, 3, Decimal("250.01"))

        assert await _balance(db_session, 3) == Decimal("250.00")

    async def test_debit_and_credit(self, db_session):
        await account_service.debit(db_session, 3, Decimal("250.00"))
        await account_service.credit(db_session, 2, Decimal("250.00"))

        assert await _balance(db_session, 3) == Decimal("0.00")
        assert await _balance(db_session, 2) == Decimal("750.00")

    async def test_credit_missing_account(self, db_session):
        with pytest.raises(AccountNotFoundError):
            await account_service.credit(db_session, 999, Decimal("1.00"))

    async def test_lock_accounts_skips_missing(self, db_session):
        locked = await account_service.lock_accounts(db_session, [3, 999, 1])
        assert sorted(locked) == [1, 3]
        assert locked[1].balance == Decimal("1000.00")

    async def test_negative_balance_rejected_by_database(self, db_session):
        with pytest.raises(IntegrityError):
            await db_session.execute(
                update(Account).where(Account.id == 1).values(balance=Decimal("-0.01"))
            )
        await db_session.rollback()

    async def test_negative_opening_balance_rejected(self, db_session, seeded):
        with pytest.raises(ValueError):
            await account_service.create_account(db_session, seeded["alice_id"], "-1")

    async def test_generated_account_number(self, db_session, seeded):
        account = await account_service.create_account(db_session, seeded["bob_id"])
        assert len(account.account_number) == 10
        assert account.account_number.isdigit()
        assert account.balance == Decimal("0.00")


class TestStaleLockedBalance:

    async def test_conditional_debit_records_insufficient_funds(self, db_session):
        """If the locked read is stale, the conditional debit still refuses.

        The lock is replaced with one reporting 1000.00 for account 3, which
        actually holds 250.00. The pre-check passes, the UPDATE matches no
        row, and the attempt is recorded as failed with nothing debited.
        """
        stale = {3: SimpleNamespace(id=3, balance=Decimal("1000.00"))}
        with patch.object(account_service, "lock_accounts", AsyncMock(return_value=stale)):
            txn = await transaction_service.submit_transaction(
                db_session, "withdrawal", Decimal("300.00"), source_account_id=3
            )

        assert txn.status == "failed"
        assert txn.failure_reason == "Insufficient funds"
        assert await _balance(db_session, 3) == Decimal("250.00")
        assert await _row_count(db_session) == 1


class TestExactCents:
    """Balances are stored as integer cents, so fractional sums are exact."""

    async def test_withdraw_exact_balance_after_fractional_deposits(self, db_session, seeded):
        account = await account_service.create_account(db_session, seeded["bob_id"])
        for amount in ("0.70", "0.10"):
            await transaction_service.submit_transaction(
                db_session, "deposit", Decimal(amount), destination_account_id=account.id
            )

        stored = await db_session.execute(
            text("SELECT balance_cents, typeof(balance_cents) FROM accounts WHERE id = :id"),
            {"id": account.id},
        )
        assert tuple(stored.one()) == (80, "integer")

        txn = await transaction_service.submit_transaction(
            db_session, "withdrawal", Decimal("0.80"), source_account_id=account.id
        )

        assert txn.status == "completed"
        assert await _balance(db_session, account.id) == Decimal("0.00")

    async def test_amounts_stored_as_cents(self, db_session):
        txn = await transaction_service.submit_transaction(
            db_session, "deposit", Decimal("-10.25"), destination_account_id=1
        )

        stored = await db_session.execute(
            text("SELECT amount_cents FROM transactions WHERE transaction_id = :id"),
            {"id": txn.transaction_id},
        )
        assert stored.scalar_one() == -1025
        assert txn.amount == Decimal("-10.25")


class TestWeakReferences:

    async def test_deleting_account_keeps_ledger_rows(self, db_session):
        txn = await transaction_service.submit_transaction(
            db_session, "transfer", Decimal("100.00"),
            source_account_id=1, destination_account_id=2,
        )

        await db_session.execute(delete(Account).where(Account.id == 2))
        await db_session.commit()

        result = await db_session.execute(
            select(Transaction.source_account_id, Transaction.destination_account_id)
            .where(Transaction.transaction_id == txn.transaction_id)
        )
        assert result.one() == (1, None)


class TestReadsAreIdempotent:

    async def test_repeated_reads_return_same_state(self, db_session, seeded):
        await transaction_service.submit_transaction(
            db_session, "deposit", Decimal("12.34"), destination_account_id=1
        )

        first_report = await report_service.get_summary_report(db_session)
        first_balance = await account_service.get_balance(db_session, 1, seeded["alice_id"])
        second_report = await report_service.get_summary_report(db_session)
        second_balance = await account_service.get_balance(db_session, 1, seeded["alice_id"])

        assert first_report == second_report
        assert first_balance == second_balance == {"account_id": 1, "balance": Decimal("1012.34")}
        assert await _row_count(db_session) == 1
