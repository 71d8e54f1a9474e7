"""
Accounts router — balance queries.

Endpoints (require X-Secret-Key, scoped to the caller's own accounts):
  GET /accounts/{account_id}/balance — Current balance

Accounts are provisioned out of band (demo/seed.py); there is no endpoint
to create or modify one.
"""

from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from ledger_api.database import get_db
from ledger_api.dependencies import get_current_user
from ledger_api.models.user import User
from ledger_api.schemas.account import BalanceResponse
from ledger_api.schemas.error import ErrorResponse
from ledger_api.services import account_service

router = APIRouter()


@router.get(
    "/{account_id}/balance",
    response_model=BalanceResponse,
    responses={code: {"model": ErrorResponse} for code in (400, 401, 403, 404)},
    summary="Check account balance",
)
async def get_balance(
    account_id: int = Path(gt=0, description="Numeric account id"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Get the current balance of one of your accounts.

    Returns 403 if the account belongs to a different user, or 404 if
    the account doesn't exist.
    """
    return await account_service.get_balance(db, account_id, user.id)
