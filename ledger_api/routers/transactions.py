"""
Transactions router — submit money movements and look them up.

Endpoints (all require X-Secret-Key):
  POST /transactions                   — Deposit, withdrawal or transfer
  GET  /transactions/{transaction_id}  — One ledger row

Request pipeline for POST:
  1. get_current_user authenticates the caller (401)
  2. The body is validated as a deposit/withdrawal/transfer variant (400)
  3. Referenced accounts are authorized (404 missing, 403 not owned)
  4. The money-movement engine applies and records the transaction

A transaction that fails a business rule (insufficient funds, non-positive
amount, ...) is still a successful request: it is recorded and returned
with status "failed" and a 201.
"""

from typing import Annotated

from fastapi import APIRouter, Body, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from ledger_api.database import get_db
from ledger_api.dependencies import get_current_user
from ledger_api.exceptions import AccountNotFoundError
from ledger_api.models.user import User
from ledger_api.schemas.error import ErrorResponse
from ledger_api.schemas.transaction import (
    DepositRequest,
    TransactionRequest,
    TransactionResponse,
)
from ledger_api.services import account_service, transaction_service

router = APIRouter()

_ERROR_RESPONSES = {
    code: {"model": ErrorResponse} for code in (400, 401, 403, 404)
}


async def _authorize(db: AsyncSession, body: TransactionRequest, user: User) -> None:
    """
    Check the caller may move money between the referenced accounts.

    - Source account (withdrawal, transfer): must exist and be the caller's.
    - Destination account: must exist; for deposits it must also be the
      caller's. Transfers may credit anyone's account.
    """
    source_account_id = getattr(body, "source_account_id", None)
    destination_account_id = getattr(body, "destination_account_id", None)

    if source_account_id is not None:
        await account_service.get_owned_account(
            db, source_account_id, user.id, label="Source account"
        )

    if destination_account_id is not None:
        if isinstance(body, DepositRequest):
            await account_service.get_owned_account(
                db, destination_account_id, user.id, label="Destination account"
            )
        elif await account_service.find_by_id(db, destination_account_id) is None:
            raise AccountNotFoundError(destination_account_id, label="Destination account")


@router.post(
    "",
    response_model=TransactionResponse,
    status_code=status.HTTP_201_CREATED,
    responses=_ERROR_RESPONSES,
    summary="Submit a deposit, withdrawal or transfer",
)
async def submit_transaction(
    body: Annotated[TransactionRequest, Body(discriminator="type")],
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Submit a money movement.

    - **deposit**: `amount`, `destination_account_id` (your account)
    - **withdrawal**: `amount`, `source_account_id` (your account)
    - **transfer**: `amount`, `source_account_id` (your account),
      `destination_account_id` (any account)

    Every submission is recorded. Check `status` in the response: a
    `"failed"` transaction carries its `failure_reason` and moved no money.
    """
    await _authorize(db, body, user)

    return await transaction_service.submit_transaction(
        db=db,
        txn_type=body.type,
        amount=body.amount,
        source_account_id=getattr(body, "source_account_id", None),
        destination_account_id=getattr(body, "destination_account_id", None),
    )


@router.get(
    "/{transaction_id}",
    response_model=TransactionResponse,
    responses={code: {"model": ErrorResponse} for code in (401, 403, 404)},
    summary="Get a single transaction",
)
async def get_transaction(
    transaction_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Get a ledger row involving one of your accounts."""
    return await transaction_service.get_transaction(db, transaction_id, user.id)
