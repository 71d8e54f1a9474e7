"""
Account service — the account store.

This module handles:
  - Account lookup (by id, by account number, owner-scoped)
  - Row locking for the money-movement engine
  - The two balance mutation primitives: credit() and debit()
  - Account provisioning (used by demo/seed.py and the test fixtures)

Ownership enforcement:
  get_owned_account() and get_balance() take the authenticated user's id
  and refuse accounts that belong to someone else. The engine itself trusts
  the ids it is given — the request handler authorizes before calling it.

Locking:
  lock_accounts() issues SELECT ... FOR UPDATE in ascending id order. Two
  transfers moving money in opposite directions between the same pair of
  accounts therefore acquire their locks in the same order and can't
  deadlock. On SQLite, FOR UPDATE is a no-op and the database-wide write
  lock serializes writers instead.
"""

import random
import string
from decimal import Decimal

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ledger_api.exceptions import (
    AccountNotFoundError,
    DuplicateAccountNumberError,
    InsufficientBalanceError,
    UnauthorizedAccessError,
)
from ledger_api.models.account import Account
from ledger_api.schemas.money import to_money


def _generate_account_number() -> str:
    """Generate a random 10-digit account number."""
    return "".join(random.choices(string.digits, k=10))


async def find_by_id(db: AsyncSession, account_id: int) -> Account | None:
    result = await db.execute(select(Account).where(Account.id == account_id))
    return result.scalar_one_or_none()


async def find_by_account_number(db: AsyncSession, account_number: str) -> Account | None:
    result = await db.execute(
        select(Account).where(Account.account_number == account_number)
    )
    return result.scalar_one_or_none()


async def lock_accounts(db: AsyncSession, account_ids: list[int]) -> dict[int, Account]:
    """
    Lock the given account rows for the rest of the database transaction.

    Rows are locked one by one in ascending id order (see module docstring).
    populate_existing makes sure the returned objects carry the balance as
    read under the lock, not a stale copy from the session's identity map.

    Returns:
        Mapping of account id to Account for every id that exists.
        Missing ids are simply absent from the mapping.
    """
    locked = {}
    for account_id in sorted(set(account_ids)):
        result = await db.execute(
            select(Account)
            .where(Account.id == account_id)
            .with_for_update()  # No-op on SQLite, locks row on PostgreSQL
            .execution_options(populate_existing=True)
        )
        account = result.scalar_one_or_none()
        if account is not None:
            locked[account_id] = account
    return locked


async def _reload(db: AsyncSession, account_id: int) -> None:
    # Bulk UPDATEs bypass the identity map; refresh any loaded copy so later
    # reads in this session see the new balance.
    await db.execute(
        select(Account)
        .where(Account.id == account_id)
        .execution_options(populate_existing=True)
    )


async def credit(db: AsyncSession, account_id: int, amount: Decimal) -> None:
    """
    Add amount to an account's balance.

    Raises:
        AccountNotFoundError: If no row was updated.
    """
    result = await db.execute(
        update(Account)
        .where(Account.id == account_id)
        .values(balance=Account.balance + amount)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise AccountNotFoundError(account_id)
    await _reload(db, account_id)


async def debit(db: AsyncSession, account_id: int, amount: Decimal) -> None:
    """
    Subtract amount from an account's balance, never going below zero.

    The balance check is part of the UPDATE's WHERE clause, so it is a
    compare-and-set against the value the database holds right now rather
    than whatever the caller read earlier.

    Raises:
        InsufficientBalanceError: If the account doesn't exist or the
            balance is lower than amount. Nothing is changed in that case.
    """
    result = await db.execute(
        update(Account)
        .where(Account.id == account_id)
        .where(Account.balance >= amount)
        .values(balance=Account.balance - amount)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise InsufficientBalanceError(account_id=account_id, requested=amount)
    await _reload(db, account_id)


async def get_owned_account(
    db: AsyncSession,
    account_id: int,
    user_id: int,
    label: str = "Account",
) -> Account:
    """
    Get a single account, verifying ownership.

    Args:
        db: Database session.
        account_id: The account to retrieve.
        user_id: The authenticated user's id.
        label: How the account is referred to in error messages
               ("Account", "Source account", "Destination account").

    Returns:
        The Account instance.

    Raises:
        AccountNotFoundError: If the account doesn't exist.
        UnauthorizedAccessError: If the account belongs to someone else.
    """
    account = await find_by_id(db, account_id)

    if account is None:
        raise AccountNotFoundError(account_id, label=label)

    if account.user_id != user_id:
        raise UnauthorizedAccessError(f"Unauthorized access to {label.lower()}")

    return account


async def get_balance(db: AsyncSession, account_id: int, user_id: int) -> dict:
    """
    Get the current balance of one of the caller's accounts.

    Returns:
        Dict with account_id and balance.
    """
    account = await get_owned_account(db, account_id, user_id)
    return {"account_id": account.id, "balance": account.balance}


async def create_account(
    db: AsyncSession,
    user_id: int,
    initial_balance: Decimal | int | str = 0,
    account_number: str | None = None,
) -> Account:
    """
    Provision a new account for a user.

    Args:
        db: Database session.
        user_id: The owner's user id.
        initial_balance: Opening balance (must not be negative).
        account_number: Explicit number, or None to generate a unique
                        random 10-digit one.

    Returns:
        The newly created Account instance.

    Raises:
        DuplicateAccountNumberError: If an explicit number is already taken.
        ValueError: If initial_balance is negative.
    """
    balance = to_money(initial_balance)
    if balance < 0:
        raise ValueError("initial_balance must not be negative")

    if account_number is None:
        # Retry on collision (extremely unlikely with 10 random digits)
        for _ in range(10):
            account_number = _generate_account_number()
            if await find_by_account_number(db, account_number) is None:
                break
        else:
            raise RuntimeError("Failed to generate a unique account number")
    elif await find_by_account_number(db, account_number) is not None:
        raise DuplicateAccountNumberError(account_number)

    account = Account(
        user_id=user_id,
        account_number=account_number,
        balance=balance,
    )
    db.add(account)
    await db.flush()
    return account
